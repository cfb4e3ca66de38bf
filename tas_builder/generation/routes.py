# tas_builder/generation/routes.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tas_builder.settings import APP_VERSION, Settings
from tas_builder.deps import get_orchestrator, get_plan_store, get_settings
from tas_builder.errors import ConfigurationError
from tas_builder.agents.llm.client import validate_configuration
from tas_builder.agents.prompts import load_system_prompt
from tas_builder.agents.schemas import IntakeRecord
from tas_builder.agents.workflow import RepairOrchestrator
from tas_builder.plans.store import PlanStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "TAS Builder API",
        "version": APP_VERSION,
    }


@router.get("/generate")
def generation_status(s: Settings = Depends(get_settings)):
    try:
        validate_configuration(s)
        load_system_prompt(s.system_prompt_path)
    except ConfigurationError as e:
        return JSONResponse({"status": "error", "error": str(e)}, status_code=500)

    model = s.ollama_model if s.llm_provider == "ollama" else s.llm_model
    return {
        "status": "ready",
        "provider": s.llm_provider,
        "model": model,
        "max_attempts": s.max_attempts,
        "reflect_enabled": s.reflect_enabled,
    }


@router.post("/generate")
def generate_plan(
    intake: IntakeRecord,
    orchestrator: RepairOrchestrator = Depends(get_orchestrator),
    store: PlanStore = Depends(get_plan_store),
):
    logger.info(
        "Generation requested: qualification=%r weeks=%s mode=%s",
        intake.qualification.title, intake.duration.weeks, intake.delivery_mode,
    )
    result = orchestrator.run(intake)
    body = result.to_dict()

    if not result.success:
        body.pop("plan", None)
        return JSONResponse(body, status_code=422)

    body["plan_id"] = store.save(result.plan, intake, result.warnings)
    return body
