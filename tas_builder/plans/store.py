## In-process plan history (most recent N plans)
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from tas_builder.agents.schemas import IntakeRecord, ValidatedPlan


def new_plan_id() -> str:
    return f"plan_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class StoredPlan:
    id: str
    plan: ValidatedPlan
    intake: IntakeRecord
    warnings: tuple = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def title(self) -> str:
        q = self.plan.meta.qualification
        return f"{q.code} {q.title}" if q.code else q.title


class PlanStore:
    """
    Write-once sink for successful generations. Keeps the newest `max_items`
    plans in memory; nothing survives a restart.
    """

    def __init__(self, max_items: int = 10):
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        self.max_items = max_items
        self._items: "OrderedDict[str, StoredPlan]" = OrderedDict()
        self._current_id: str | None = None
        self._last_intake: IntakeRecord | None = None
        self._lock = threading.Lock()

    def save(self, plan: ValidatedPlan, intake: IntakeRecord, warnings: List[str] | None = None) -> str:
        stored = StoredPlan(id=new_plan_id(), plan=plan, intake=intake, warnings=tuple(warnings or ()))
        with self._lock:
            self._items[stored.id] = stored
            self._items.move_to_end(stored.id, last=False)  # newest first
            while len(self._items) > self.max_items:
                self._items.popitem(last=True)
            self._current_id = stored.id
            self._last_intake = intake
        return stored.id

    def remember_intake(self, intake: IntakeRecord) -> None:
        """Record a submitted intake even when its generation fails."""
        with self._lock:
            self._last_intake = intake

    def last_intake(self) -> IntakeRecord | None:
        with self._lock:
            return self._last_intake

    def get(self, plan_id: str) -> StoredPlan | None:
        with self._lock:
            return self._items.get(plan_id)

    def current(self) -> StoredPlan | None:
        with self._lock:
            if self._current_id is None:
                return None
            return self._items.get(self._current_id)

    def all(self) -> List[StoredPlan]:
        with self._lock:
            return list(self._items.values())

    def delete(self, plan_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(plan_id, None)
            if removed is None:
                return False
            if self._current_id == plan_id:
                self._current_id = None
            return True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._current_id = None
            self._last_intake = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
