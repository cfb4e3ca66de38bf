# tas_builder/agents/prompts.py
import json
from pathlib import Path
from typing import Iterable

from tas_builder.agents.schemas import IntakeRecord, ValidationIssue
from tas_builder.errors import ConfigurationError

DEFAULT_SYSTEM_PROMPT_PATH = Path(__file__).resolve().parent.parent / "prompts" / "system.md"

SYSTEM_REFLECT = """You are a quality assurance expert for Australian RTO training plans.
Your job is to review generated plans and identify any gaps, inconsistencies,
or areas that need improvement.
"""

JSON_ONLY_CORRECTION = (
    "The previous response did not contain a parseable JSON object. "
    "Respond with exactly one valid JSON object and nothing else: "
    "no markdown, no code fences, no commentary."
)

REFLECTION_PLAN_CHARS = 5000


def load_system_prompt(path: str | Path | None = None) -> str:
    prompt_path = Path(path) if path else DEFAULT_SYSTEM_PROMPT_PATH
    try:
        content = prompt_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Failed to load system prompt file {prompt_path}: {e.strerror or e}"
        ) from e
    if not content.strip():
        raise ConfigurationError(f"System prompt file {prompt_path} is empty")
    return content


def _join(items: Iterable[str]) -> str:
    return ", ".join(i for i in items if i)


def build_prompt(intake: IntakeRecord, prior_error: str | None = None) -> str:
    q = intake.qualification
    lines = [
        "Generate a comprehensive unit plan for the following Australian RTO training program:",
        "",
        "QUALIFICATION",
        f"Title: {q.title}",
    ]
    if q.code:
        lines.append(f"Code: {q.code}")
    if q.level:
        lines.append(f"Level: {q.level}")

    lines += [
        "",
        "DURATION",
        f"Weeks: {intake.duration.weeks}",
        f"Total Hours: {intake.duration.total_hours:g}",
        f"Hours per Week: {intake.hours_per_week:.1f}",
        "",
        "DELIVERY MODE",
        intake.delivery_mode.replace("_", " ").upper(),
        "",
        "COHORT PROFILE",
        intake.cohort_profile.strip(),
    ]

    extra = []
    if intake.start_date:
        extra.append(f"START DATE: {intake.start_date}")
    if intake.venue:
        extra.append(f"VENUE: {intake.venue}")
    if intake.class_size:
        cs = intake.class_size
        parts = [f"{label} {value}" for label, value in
                 (("Min", cs.min), ("Max", cs.max), ("Target", cs.target)) if value]
        if parts:
            extra.append(f"CLASS SIZE: {', '.join(parts)}")
    if intake.trainer_details and intake.trainer_details.primary_trainer:
        extra.append(f"PRIMARY TRAINER: {intake.trainer_details.primary_trainer}")
        if intake.trainer_details.additional_trainers:
            extra.append(f"ADDITIONAL TRAINERS: {_join(intake.trainer_details.additional_trainers)}")
    if extra:
        lines += [""] + extra

    if intake.resources:
        r = intake.resources
        resource_lines = [
            f"{label}: {_join(values)}"
            for label, values in (
                ("Facilities", r.facilities),
                ("Equipment", r.equipment),
                ("Materials", r.materials),
                ("Technology", r.technology),
            )
            if values
        ]
        if resource_lines:
            lines += ["", "AVAILABLE RESOURCES"] + resource_lines

    if intake.assessment_preferences:
        lines += ["", f"ASSESSMENT PREFERENCES: {_join(intake.assessment_preferences)}"]

    if intake.unit_list and intake.unit_list.strip():
        lines += ["", "UNIT LIST", intake.unit_list.strip()]

    if prior_error:
        lines += [
            "",
            "=== PREVIOUS GENERATION FAILED - PLEASE FIX ===",
            prior_error.strip(),
            "Fix exactly the issues listed above. Do not change content that is unrelated to them.",
            "=== END OF ISSUES ===",
        ]

    lines += [
        "",
        "Please generate a complete, audit-ready unit plan:",
        "1. Analyze the requirements carefully",
        "2. Plan a comprehensive delivery schedule",
        "3. Ensure all elements are realistic and practical",
        "4. Output valid JSON matching the required schema",
        "",
        "Return ONLY the JSON response, no additional text or markdown.",
    ]
    return "\n".join(lines)


def build_reflection_prompt(intake: IntakeRecord, plan: dict) -> str:
    plan_json = json.dumps(plan, indent=2, ensure_ascii=False)[:REFLECTION_PLAN_CHARS]
    return f"""
Review this generated unit plan and identify any issues, gaps, or improvements needed:

ORIGINAL REQUEST:
- Qualification: {intake.qualification.title}
- Duration: {intake.duration.weeks} weeks, {intake.duration.total_hours:g} hours
- Delivery Mode: {intake.delivery_mode}

GENERATED PLAN:
{plan_json}

Check for:
1. Completeness: Are all required fields populated with realistic values?
2. Consistency: Do hours add up correctly? Are dates logical?
3. Practicality: Is this plan actually deliverable by a real RTO?
4. Compliance: Does it align with Australian VET sector requirements?

If you find any issues, list them clearly. If the plan looks good, say "No issues found."
""".strip()


def format_issues(issues: list[ValidationIssue], limit: int | None = 5) -> str:
    """Short `path: message; ...` summary; limit=None lists every issue."""
    if not issues:
        return "No errors"
    shown = issues if limit is None else issues[:limit]
    text = "; ".join(str(i) for i in shown)
    hidden = len(issues) - len(shown)
    if hidden > 0:
        text += f" (+{hidden} more)"
    return text
