## Markdown export of a validated plan
from typing import List

from tas_builder.agents.schemas import ValidatedPlan


def _label(value: str | None) -> str:
    return (value or "").replace("_", " ").title()


def _cell(value) -> str:
    return str(value if value is not None else "").replace("|", "\\|").replace("\n", " ")


def plan_filename(plan: ValidatedPlan, extension: str) -> str:
    q = plan.meta.qualification
    base = q.code or q.title
    slug = "".join(c if c.isalnum() else "-" for c in base.lower()).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return f"unit-plan-{slug or 'export'}.{extension}"


def plan_to_markdown(plan: ValidatedPlan) -> str:
    meta = plan.meta
    q = meta.qualification
    title = f"{q.code} {q.title}" if q.code else q.title

    out: List[str] = [
        f"# Unit Plan: {title}",
        "",
        f"- **Delivery mode:** {_label(meta.delivery_mode)}",
        f"- **Duration:** {meta.duration.weeks} weeks, {meta.duration.total_hours:g} hours",
    ]
    if meta.duration.hours_per_week is not None:
        out.append(f"- **Hours per week:** {meta.duration.hours_per_week:g}")
    if q.level:
        out.append(f"- **Level:** {q.level}")
    if meta.start_date or meta.end_date:
        out.append(f"- **Dates:** {meta.start_date or '?'} to {meta.end_date or '?'}")
    if meta.venue:
        out.append(f"- **Venue:** {meta.venue}")
    if meta.trainer_details and meta.trainer_details.primary_trainer:
        out.append(f"- **Primary trainer:** {meta.trainer_details.primary_trainer}")
    out.append(f"- **Confidence score:** {plan.confidence_score:.0%}")
    out += ["", "## Cohort profile", "", meta.cohort_profile.strip(), ""]

    out += ["## Units of competency", "",
            "| Code | Title | Nominal hours | Type | Weeks |",
            "|---|---|---|---|---|"]
    for u in plan.units:
        weeks = ", ".join(str(w) for w in u.weeks_scheduled or [])
        out.append(f"| {_cell(u.unit_code)} | {_cell(u.unit_title)} | {u.nominal_hours:g} "
                   f"| {_cell(_label(u.unit_type))} | {_cell(weeks)} |")
    out.append("")

    out += ["## Weekly delivery plan", ""]
    for week in sorted(plan.weekly_plan, key=lambda w: w.week_number):
        heading = f"### Week {week.week_number}"
        if week.week_theme:
            heading += f": {week.week_theme}"
        out += [heading, ""]
        if week.units_covered:
            out += [f"*Units covered:* {', '.join(week.units_covered)}", ""]
        if week.activities:
            out += ["| Activity | Method | Hours |", "|---|---|---|"]
            for a in week.activities:
                out.append(f"| {_cell(a.title)} | {_label(a.delivery_method)} | {a.duration_hours:g} |")
            out.append("")
        for assessment in week.assessments or []:
            line = (f"- **Assessment:** {assessment.title} ({_label(assessment.type)}) "
                    f"for {', '.join(assessment.units_assessed)}")
            if assessment.due_date:
                line += f", due {assessment.due_date}"
            out.append(line)
        if week.assessments:
            out.append("")
        if week.notes:
            out += [f"> {week.notes}", ""]

    if plan.resources:
        r = plan.resources
        groups = [("Facilities", r.facilities), ("Equipment", r.equipment),
                  ("Materials", r.materials), ("Technology", r.technology),
                  ("External", r.external)]
        groups = [(label, items) for label, items in groups if items]
        if groups:
            out += ["## Resources", ""]
            for label, items in groups:
                out.append(f"- **{label}:** {', '.join(items)}")
            out.append("")

    if plan.risks:
        out += ["## Risks", "", "| Risk | Likelihood | Impact | Mitigation |", "|---|---|---|---|"]
        for risk in plan.risks:
            out.append(f"| {_cell(risk.risk_description)} | {_label(risk.likelihood)} "
                       f"| {_label(risk.impact)} | {_cell(risk.mitigation)} |")
        out.append("")

    if plan.assumptions:
        out += ["## Assumptions", ""]
        for a in plan.assumptions:
            suffix = " *(needs validation)*" if a.validation_required else ""
            out.append(f"- {a.assumption}{suffix}")
        out.append("")

    if plan.compliance_notes:
        notes = plan.compliance_notes.model_dump(exclude_none=True)
        if notes:
            out += ["## Compliance notes", ""]
            for key, value in notes.items():
                out.append(f"- **{_label(key)}:** {value}")
            out.append("")

    if plan.generation_notes:
        out += ["## Generation notes", "", plan.generation_notes.strip(), ""]

    out.append(f"---\n*Generated {plan.metadata.generated_at} "
               f"(schema {plan.metadata.schema_version})*")
    return "\n".join(out) + "\n"
