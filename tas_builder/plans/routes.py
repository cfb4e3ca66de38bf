# Plan pages: intake submission, history, print view and downloads
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from tas_builder.deps import get_orchestrator, get_plan_store
from tas_builder.agents.schemas import IntakeRecord
from tas_builder.agents.workflow import RepairOrchestrator
from tas_builder.errors import user_message_for
from tas_builder.export.markdown import plan_filename, plan_to_markdown
from tas_builder.export.print_view import render_print_html
from tas_builder.export.word import plan_to_docx
from tas_builder.plans.store import PlanStore

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

DELIVERY_MODES = [
    ("face_to_face", "Face to face"),
    ("online", "Online"),
    ("blended", "Blended"),
    ("workplace", "Workplace"),
    ("mixed", "Mixed"),
]
ASSESSMENT_OPTIONS = [
    "written", "practical", "project", "portfolio", "observation",
    "presentation", "roleplay", "case_study",
]

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
router = APIRouter(prefix="/plans")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _split_lines(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [line.strip() for line in value.replace(",", "\n").splitlines() if line.strip()]


def intake_from_form(form: dict) -> IntakeRecord:
    """Map flat form fields onto the nested intake record. Raises ValidationError."""
    trainer = _blank_to_none(form.get("primary_trainer"))
    extra_trainers = _split_lines(form.get("additional_trainers"))
    resources = {
        "facilities": _split_lines(form.get("facilities")),
        "equipment": _split_lines(form.get("equipment")),
        "materials": _split_lines(form.get("materials")),
        "technology": _split_lines(form.get("technology")),
    }
    class_size = _blank_to_none(form.get("class_size_target"))

    return IntakeRecord.model_validate({
        "qualification": {
            "title": (form.get("qualification_title") or "").strip(),
            "code": _blank_to_none(form.get("qualification_code")),
            "level": _blank_to_none(form.get("qualification_level")),
        },
        "duration": {
            "weeks": form.get("duration_weeks"),
            "total_hours": form.get("total_hours"),
        },
        "delivery_mode": form.get("delivery_mode"),
        "cohort_profile": (form.get("cohort_profile") or "").strip(),
        "resources": resources if any(resources.values()) else None,
        "assessment_preferences": form.get("assessment_preferences") or [],
        "unit_list": _blank_to_none(form.get("unit_list")),
        "trainer_details": (
            {"primary_trainer": trainer, "additional_trainers": extra_trainers}
            if trainer or extra_trainers else None
        ),
        "start_date": _blank_to_none(form.get("start_date")),
        "venue": _blank_to_none(form.get("venue")),
        "class_size": {"target": class_size} if class_size else None,
    })


def form_from_intake(intake: IntakeRecord) -> dict:
    """Inverse of intake_from_form, used to pre-fill the form."""
    q = intake.qualification
    r = intake.resources
    t = intake.trainer_details
    target = intake.class_size.target if intake.class_size else None
    return {
        "qualification_title": q.title,
        "qualification_code": q.code or "",
        "qualification_level": q.level or "",
        "duration_weeks": str(intake.duration.weeks),
        "total_hours": f"{intake.duration.total_hours:g}",
        "delivery_mode": intake.delivery_mode,
        "cohort_profile": intake.cohort_profile,
        "assessment_preferences": list(intake.assessment_preferences),
        "unit_list": intake.unit_list or "",
        "start_date": intake.start_date or "",
        "venue": intake.venue or "",
        "class_size_target": str(target) if target else "",
        "primary_trainer": (t.primary_trainer or "") if t else "",
        "additional_trainers": ", ".join(t.additional_trainers) if t else "",
        "facilities": "\n".join(r.facilities) if r else "",
        "equipment": "\n".join(r.equipment) if r else "",
        "materials": "\n".join(r.materials) if r else "",
        "technology": "\n".join(r.technology) if r else "",
    }


def render_intake_form(request: Request, *, form: dict | None = None,
                       errors: List[str] | None = None, status_code: int = 200):
    return templates.TemplateResponse(request, "intake_form.html", {
        "form": form or {},
        "errors": errors or [],
        "delivery_modes": DELIVERY_MODES,
        "assessment_options": ASSESSMENT_OPTIONS,
    }, status_code=status_code)


@router.get("", response_class=HTMLResponse)
def list_plans(request: Request, store: PlanStore = Depends(get_plan_store)):
    return templates.TemplateResponse(request, "plans_list.html", {
        "plans": store.all(),
        "error": request.query_params.get("error"),
        "deleted": request.query_params.get("deleted"),
    })


@router.post("")
def create_plan(
    request: Request,
    qualification_title: str = Form(""),
    qualification_code: str = Form(""),
    qualification_level: str = Form(""),
    duration_weeks: str = Form(""),
    total_hours: str = Form(""),
    delivery_mode: str = Form(""),
    cohort_profile: str = Form(""),
    assessment_preferences: List[str] = Form([]),
    unit_list: str = Form(""),
    start_date: str = Form(""),
    venue: str = Form(""),
    class_size_target: str = Form(""),
    primary_trainer: str = Form(""),
    additional_trainers: str = Form(""),
    facilities: str = Form(""),
    equipment: str = Form(""),
    materials: str = Form(""),
    technology: str = Form(""),
    orchestrator: RepairOrchestrator = Depends(get_orchestrator),
    store: PlanStore = Depends(get_plan_store),
):
    form = {
        "qualification_title": qualification_title,
        "qualification_code": qualification_code,
        "qualification_level": qualification_level,
        "duration_weeks": duration_weeks,
        "total_hours": total_hours,
        "delivery_mode": delivery_mode,
        "cohort_profile": cohort_profile,
        "assessment_preferences": assessment_preferences,
        "unit_list": unit_list,
        "start_date": start_date,
        "venue": venue,
        "class_size_target": class_size_target,
        "primary_trainer": primary_trainer,
        "additional_trainers": additional_trainers,
        "facilities": facilities,
        "equipment": equipment,
        "materials": materials,
        "technology": technology,
    }
    try:
        intake = intake_from_form(form)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        return render_intake_form(request, form=form, errors=errors, status_code=400)

    store.remember_intake(intake)
    result = orchestrator.run(intake)
    if not result.success:
        logger.warning("Generation failed (%s) after %d attempt(s)",
                       result.error_category, len(result.attempts))
        return templates.TemplateResponse(request, "generation_failed.html", {
            "result": result,
            "message": user_message_for(result.error_category),
        }, status_code=422)

    plan_id = store.save(result.plan, intake, result.warnings)
    return RedirectResponse(url=f"/plans/{plan_id}", status_code=303)


@router.get("/{plan_id}", response_class=HTMLResponse)
def plan_detail(plan_id: str, request: Request, store: PlanStore = Depends(get_plan_store)):
    stored = store.get(plan_id)
    if not stored:
        return RedirectResponse(url="/plans?error=not_found", status_code=303)
    return templates.TemplateResponse(request, "plan_view.html", {
        "stored": stored,
        "plan": stored.plan,
        "body": render_print_html(stored.plan),
    })


@router.get("/{plan_id}/export.docx")
def export_docx(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    stored = store.get(plan_id)
    if not stored:
        return RedirectResponse(url="/plans?error=not_found", status_code=303)
    filename = plan_filename(stored.plan, "docx")
    return Response(
        content=plan_to_docx(stored.plan),
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{plan_id}/export.md")
def export_markdown(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    stored = store.get(plan_id)
    if not stored:
        return RedirectResponse(url="/plans?error=not_found", status_code=303)
    filename = plan_filename(stored.plan, "md")
    return Response(
        content=plan_to_markdown(stored.plan),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{plan_id}/export.json")
def export_json(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    stored = store.get(plan_id)
    if not stored:
        return RedirectResponse(url="/plans?error=not_found", status_code=303)
    filename = plan_filename(stored.plan, "json")
    return Response(
        content=stored.plan.model_dump_json(indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{plan_id}/delete")
def delete_plan(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    if not store.delete(plan_id):
        return RedirectResponse(url="/plans?error=not_found", status_code=303)
    return RedirectResponse(url="/plans?deleted=1", status_code=303)
