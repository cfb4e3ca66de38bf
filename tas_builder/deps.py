## Request dependencies
from fastapi import Depends

from tas_builder.settings import Settings, settings
from tas_builder.agents.llm.base import LLMClient
from tas_builder.agents.llm.client import build_llm_client
from tas_builder.agents.prompts import load_system_prompt
from tas_builder.agents.workflow import RepairOrchestrator
from tas_builder.plans.store import PlanStore

plan_store = PlanStore(max_items=settings.history_size)


def get_settings() -> Settings:
    return settings


def get_llm_client(s: Settings = Depends(get_settings)) -> LLMClient:
    # raises ConfigurationError before any network call
    return build_llm_client(s)


def get_system_prompt(s: Settings = Depends(get_settings)) -> str:
    return load_system_prompt(s.system_prompt_path)


def get_orchestrator(
    s: Settings = Depends(get_settings),
    system_prompt: str = Depends(get_system_prompt),
    client: LLMClient = Depends(get_llm_client),
) -> RepairOrchestrator:
    return RepairOrchestrator(
        client,
        system_prompt,
        max_attempts=s.max_attempts,
        reflect=s.reflect_enabled,
        reflect_max_tokens=s.reflect_max_tokens,
        max_total_seconds=s.max_total_seconds,
    )


def get_plan_store() -> PlanStore:
    return plan_store
