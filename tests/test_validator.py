"""
test_validator.py: schema rules for generated plans and the advisory
hour-total check.
"""
import pytest

from factories import make_plan_dict, without

from tas_builder.agents.schemas import ValidatedPlan
from tas_builder.agents.validator import collect_issues, hour_total_warning, validate_plan


def _paths(issues):
    return [issue.path for issue in issues]


class TestValidPlan:
    def test_valid_candidate_has_zero_issues(self):
        plan, issues = collect_issues(make_plan_dict())
        assert issues == []
        assert isinstance(plan, ValidatedPlan)
        assert len(plan.weekly_plan) == 2

    def test_validate_plan_returns_typed_plan(self):
        result = validate_plan(make_plan_dict())
        assert isinstance(result, ValidatedPlan)
        assert result.meta.delivery_mode == "face_to_face"

    def test_revalidation_is_idempotent(self):
        first = validate_plan(make_plan_dict())
        second = validate_plan(first.model_dump(mode="json"))
        assert isinstance(second, ValidatedPlan)
        assert second == first

    def test_unknown_keys_are_ignored(self):
        result = validate_plan(make_plan_dict(extra_section={"anything": True}))
        assert isinstance(result, ValidatedPlan)

    @pytest.mark.parametrize("mode", ["face_to_face", "online", "blended", "workplace", "mixed"])
    def test_every_delivery_mode_accepted(self, mode):
        assert isinstance(validate_plan(make_plan_dict(delivery_mode=mode)), ValidatedPlan)


class TestMissingAndInvalidFields:
    def test_missing_required_field_reports_exact_path(self):
        issues = validate_plan(without(make_plan_dict(), "meta.delivery_mode"))
        assert isinstance(issues, list)
        assert _paths(issues) == ["meta.delivery_mode"]
        assert issues[0].received is None

    def test_missing_nested_list_item_field(self):
        issues = validate_plan(without(make_plan_dict(), "weekly_plan.1.activities.0.delivery_method"))
        assert "weekly_plan.1.activities.0.delivery_method" in _paths(issues)

    def test_missing_top_level_section(self):
        assert _paths(validate_plan(without(make_plan_dict(), "metadata"))) == ["metadata"]

    def test_bad_enum_value(self):
        issues = validate_plan(make_plan_dict(delivery_mode="in-person"))
        assert _paths(issues) == ["meta.delivery_mode"]
        assert issues[0].received == "'in-person'"

    def test_bad_unit_code_pattern(self):
        plan = make_plan_dict()
        plan["units"][0]["unit_code"] = "hlt-9"
        issues = validate_plan(plan)
        assert _paths(issues) == ["units.0.unit_code"]
        assert issues[0].expected is not None

    def test_confidence_out_of_range(self):
        issues = validate_plan(make_plan_dict(confidence_score=1.5))
        assert _paths(issues) == ["confidence_score"]

    def test_no_string_to_number_coercion(self):
        plan = make_plan_dict()
        plan["meta"]["duration"]["weeks"] = "2"
        assert "meta.duration.weeks" in _paths(validate_plan(plan))

    def test_empty_weekly_plan_rejected(self):
        assert "weekly_plan" in _paths(validate_plan(make_plan_dict(weekly_plan=[])))

    def test_bad_generated_at(self):
        plan = make_plan_dict()
        plan["metadata"]["generated_at"] = "last tuesday"
        assert _paths(validate_plan(plan)) == ["metadata.generated_at"]

    def test_all_issues_collected_in_one_pass(self):
        plan = without(make_plan_dict(), "meta.cohort_profile")
        plan["confidence_score"] = -1
        plan["units"][1]["nominal_hours"] = 0
        paths = _paths(validate_plan(plan))
        assert {"meta.cohort_profile", "confidence_score", "units.1.nominal_hours"} <= set(paths)

    @pytest.mark.parametrize("candidate", [None, "plan", 42, ["a"]])
    def test_non_object_candidate(self, candidate):
        issues = validate_plan(candidate)
        assert _paths(issues) == ["root"]
        assert issues[0].message == "Plan must be a JSON object"


class TestCrossRecordRules:
    def test_duplicate_week_numbers(self):
        plan = make_plan_dict()
        plan["weekly_plan"][1]["week_number"] = 1
        issues = validate_plan(plan)
        assert _paths(issues) == ["weekly_plan"]
        assert "duplicated: 1" in issues[0].message

    def test_duplicate_unit_codes(self):
        plan = make_plan_dict()
        plan["units"][1]["unit_code"] = "HLTAID009"
        issues = validate_plan(plan)
        assert _paths(issues) == ["units"]
        assert "HLTAID009" in issues[0].message

    def test_mistyped_week_numbers_are_not_reported_as_duplicates(self):
        plan = make_plan_dict()
        for week in plan["weekly_plan"]:
            week["week_number"] = "x"
        issues = validate_plan(plan)
        assert _paths(issues) == ["weekly_plan.0.week_number", "weekly_plan.1.week_number"]

    def test_mistyped_unit_codes_are_not_reported_as_duplicates(self):
        plan = make_plan_dict()
        for unit in plan["units"]:
            unit["unit_code"] = 9
        issues = validate_plan(plan)
        assert "units" not in _paths(issues)
        assert "units.0.unit_code" in _paths(issues)


class TestHourTotalWarning:
    def test_matching_totals_no_warning(self):
        assert hour_total_warning(validate_plan(make_plan_dict(total_hours=16))) is None

    def test_within_tolerance_no_warning(self):
        assert hour_total_warning(validate_plan(make_plan_dict(total_hours=17))) is None

    def test_large_drift_warns(self):
        warning = hour_total_warning(validate_plan(make_plan_dict(total_hours=80)))
        assert warning is not None
        assert "16h" in warning and "80h" in warning
