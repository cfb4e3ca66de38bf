"""
Schema validation for generated unit plans.

One pass collects every problem: the pydantic field rules in schemas.py
(presence, types, enums, ranges, lengths, patterns) plus the cross-record
rules below. A ValidatedPlan is only returned when nothing was found.
"""
from collections import Counter
from typing import Any, Callable, List, Tuple

from pydantic import ValidationError

from tas_builder.agents.schemas import ValidatedPlan, ValidationIssue

RECEIVED_PREVIEW_CHARS = 80


def _duplicates(values: list, kind: type) -> list:
    # values of the wrong type are already reported by the field rules
    counts = Counter(v for v in values if isinstance(v, kind) and not isinstance(v, bool))
    return sorted((v for v, n in counts.items() if n > 1), key=str)


def _list_field(candidate: dict, section: str, field: str) -> list:
    items = candidate.get(section)
    if not isinstance(items, list):
        return []
    return [item.get(field) for item in items if isinstance(item, dict)]


def _duplicate_week_numbers(candidate: dict) -> list:
    return _duplicates(_list_field(candidate, "weekly_plan", "week_number"), int)


def _duplicate_unit_codes(candidate: dict) -> list:
    return _duplicates(_list_field(candidate, "units", "unit_code"), str)


# (path, finder, message template); finder returns the offending values
CROSS_RECORD_RULES: List[Tuple[str, Callable[[dict], list], str]] = [
    ("weekly_plan", _duplicate_week_numbers, "Week numbers must be unique, duplicated: {values}"),
    ("units", _duplicate_unit_codes, "Unit codes must be unique, duplicated: {values}"),
]


def _preview(value: Any) -> str:
    text = repr(value)
    if len(text) > RECEIVED_PREVIEW_CHARS:
        text = text[:RECEIVED_PREVIEW_CHARS - 3] + "..."
    return text


def _issue_from_error(err: dict) -> ValidationIssue:
    path = ".".join(str(p) for p in err.get("loc", ())) or "root"
    ctx = err.get("ctx") or {}
    expected = ctx.get("expected") or ctx.get("pattern")
    for bound in ("ge", "gt", "le", "lt", "min_length", "max_length"):
        if bound in ctx:
            expected = f"{bound} {ctx[bound]}"
            break

    received = None
    if err.get("type") != "missing":
        received = _preview(err.get("input"))

    return ValidationIssue(
        path=path,
        message=err.get("msg", "Invalid value"),
        expected=str(expected) if expected is not None else None,
        received=received,
    )


def collect_issues(candidate: Any) -> Tuple[ValidatedPlan | None, List[ValidationIssue]]:
    if not isinstance(candidate, dict):
        return None, [ValidationIssue(
            path="root",
            message="Plan must be a JSON object",
            expected="object",
            received=type(candidate).__name__,
        )]

    issues: List[ValidationIssue] = []
    plan: ValidatedPlan | None = None
    try:
        plan = ValidatedPlan.model_validate(candidate)
    except ValidationError as e:
        issues.extend(_issue_from_error(err) for err in e.errors())

    for path, finder, template in CROSS_RECORD_RULES:
        values = finder(candidate)
        if values:
            issues.append(ValidationIssue(
                path=path,
                message=template.format(values=", ".join(str(v) for v in values)),
            ))

    if issues:
        return None, issues
    return plan, []


def validate_plan(candidate: Any) -> ValidatedPlan | List[ValidationIssue]:
    """Return the typed plan when valid, otherwise every issue found."""
    plan, issues = collect_issues(candidate)
    if issues:
        return issues
    return plan


def hour_total_warning(plan: ValidatedPlan, tolerance: float = 0.10) -> str | None:
    """Advisory check: scheduled activity hours vs. the declared program total."""
    declared = plan.meta.duration.total_hours
    scheduled = plan.weekly_hours_total
    if declared <= 0:
        return None
    drift = abs(scheduled - declared) / declared
    if drift <= tolerance:
        return None
    return (
        f"Weekly activities total {scheduled:g}h but the program declares {declared:g}h "
        f"({drift:.0%} difference)"
    )
