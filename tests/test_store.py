"""
test_store.py: bounded in-memory plan history.
"""
import pytest

from factories import make_intake, make_plan

from tas_builder.plans.store import PlanStore


@pytest.fixture
def store():
    return PlanStore(max_items=3)


class TestPlanStore:
    def test_save_and_get(self, store, plan, intake):
        plan_id = store.save(plan, intake, ["hours drift"])
        stored = store.get(plan_id)
        assert plan_id.startswith("plan_")
        assert stored.plan == plan
        assert stored.warnings == ("hours drift",)
        assert stored.title == "HLT23221 Certificate III in First Aid Response"

    def test_current_is_latest(self, store, plan, intake):
        store.save(plan, intake)
        latest = store.save(plan, intake)
        assert store.current().id == latest

    def test_newest_first_and_bounded(self, store, plan, intake):
        ids = [store.save(plan, intake) for _ in range(5)]
        assert len(store) == 3
        assert [s.id for s in store.all()] == list(reversed(ids))[:3]
        assert store.get(ids[0]) is None

    def test_delete(self, store, plan, intake):
        plan_id = store.save(plan, intake)
        assert store.delete(plan_id)
        assert store.get(plan_id) is None
        assert store.current() is None
        assert not store.delete(plan_id)

    def test_clear(self, store, plan, intake):
        store.save(plan, intake)
        store.clear()
        assert len(store) == 0
        assert store.all() == []

    def test_unknown_id(self, store):
        assert store.get("plan_missing") is None

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            PlanStore(max_items=0)

    def test_title_without_code(self, store):
        plan = make_plan()
        intake = make_intake()
        data = plan.model_dump(mode="json")
        data["meta"]["qualification"]["code"] = None
        plan_id = store.save(type(plan).model_validate(data), intake)
        assert store.get(plan_id).title == "Certificate III in First Aid Response"


class TestLastIntake:
    def test_empty_store_has_no_last_intake(self, store):
        assert store.last_intake() is None

    def test_save_records_the_intake(self, store, plan, intake):
        store.save(plan, intake)
        assert store.last_intake() == intake

    def test_remembered_without_a_plan(self, store):
        intake = make_intake(venue="Parramatta campus")
        store.remember_intake(intake)
        assert store.last_intake() == intake
        assert len(store) == 0

    def test_clear_forgets_it(self, store, intake):
        store.remember_intake(intake)
        store.clear()
        assert store.last_intake() is None
