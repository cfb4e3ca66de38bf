## DOCX export of a validated plan
import io

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from tas_builder.agents.schemas import ValidatedPlan


def _label(value: str | None) -> str:
    return (value or "").replace("_", " ").title()


def _add_table(doc, header: list[str], rows: list[list[str]]):
    table = doc.add_table(rows=1, cols=len(header))
    table.style = "Light Grid Accent 1"
    for cell, text in zip(table.rows[0].cells, header):
        cell.text = text
        for p in cell.paragraphs:
            for run in p.runs:
                run.bold = True
    for row in rows:
        cells = table.add_row().cells
        for cell, text in zip(cells, row):
            cell.text = text
    return table


def _add_field(doc, label: str, value: str):
    p = doc.add_paragraph(style="List Bullet")
    run = p.add_run(f"{label}: ")
    run.bold = True
    p.add_run(value)


def plan_to_docx(plan: ValidatedPlan) -> bytes:
    meta = plan.meta
    q = meta.qualification

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    title = doc.add_heading(f"Unit Plan: {q.title}", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    if q.code:
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(q.code)
        run.italic = True

    doc.add_heading("Program overview", level=1)
    _add_field(doc, "Delivery mode", _label(meta.delivery_mode))
    _add_field(doc, "Duration", f"{meta.duration.weeks} weeks, {meta.duration.total_hours:g} hours")
    if q.level:
        _add_field(doc, "Level", q.level)
    if meta.venue:
        _add_field(doc, "Venue", meta.venue)
    if meta.start_date or meta.end_date:
        _add_field(doc, "Dates", f"{meta.start_date or '?'} to {meta.end_date or '?'}")
    _add_field(doc, "Confidence score", f"{plan.confidence_score:.0%}")

    doc.add_heading("Cohort profile", level=2)
    doc.add_paragraph(meta.cohort_profile)

    doc.add_heading("Units of competency", level=1)
    _add_table(doc, ["Code", "Title", "Nominal hours", "Type"], [
        [u.unit_code, u.unit_title, f"{u.nominal_hours:g}", _label(u.unit_type)]
        for u in plan.units
    ])

    doc.add_heading("Weekly delivery plan", level=1)
    for week in sorted(plan.weekly_plan, key=lambda w: w.week_number):
        heading = f"Week {week.week_number}"
        if week.week_theme:
            heading += f": {week.week_theme}"
        doc.add_heading(heading, level=2)
        if week.activities:
            _add_table(doc, ["Activity", "Method", "Hours"], [
                [a.title, _label(a.delivery_method), f"{a.duration_hours:g}"]
                for a in week.activities
            ])
        for assessment in week.assessments or []:
            _add_field(doc, "Assessment",
                       f"{assessment.title} ({_label(assessment.type)}), "
                       f"units: {', '.join(assessment.units_assessed)}")
        if week.notes:
            p = doc.add_paragraph()
            p.add_run(week.notes).italic = True

    if plan.resources:
        r = plan.resources
        groups = [("Facilities", r.facilities), ("Equipment", r.equipment),
                  ("Materials", r.materials), ("Technology", r.technology),
                  ("External", r.external)]
        groups = [(label, items) for label, items in groups if items]
        if groups:
            doc.add_heading("Resources", level=1)
            for label, items in groups:
                _add_field(doc, label, ", ".join(items))

    if plan.risks:
        doc.add_heading("Risks", level=1)
        _add_table(doc, ["Risk", "Likelihood", "Impact", "Mitigation"], [
            [r.risk_description, _label(r.likelihood), _label(r.impact), r.mitigation or ""]
            for r in plan.risks
        ])

    if plan.assumptions:
        doc.add_heading("Assumptions", level=1)
        for a in plan.assumptions:
            doc.add_paragraph(a.assumption, style="List Bullet")

    if plan.compliance_notes:
        notes = plan.compliance_notes.model_dump(exclude_none=True)
        if notes:
            doc.add_heading("Compliance notes", level=1)
            for key, value in notes.items():
                _add_field(doc, _label(key), value)

    if plan.generation_notes:
        doc.add_heading("Generation notes", level=1)
        doc.add_paragraph(plan.generation_notes.strip())

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
