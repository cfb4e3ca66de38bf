# tas_builder/agents/workflow.py
"""
Generate -> Reflect -> Verify repair loop.

Each attempt builds the prompt (with the previous attempt's problems when
there were any), asks the model for JSON, optionally asks it to review its
own draft, and validates the result. The loop stops on the first valid plan
or when the attempt budget runs out.
"""
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal

from tas_builder.agents.llm.base import LLMClient
from tas_builder.agents.prompts import (
    JSON_ONLY_CORRECTION,
    SYSTEM_REFLECT,
    build_prompt,
    build_reflection_prompt,
    format_issues,
)
from tas_builder.agents.schemas import IntakeRecord, ValidatedPlan, ValidationIssue
from tas_builder.agents.validator import hour_total_warning, validate_plan
from tas_builder.errors import (
    LLMRequestError,
    OrchestrationTimeout,
    TransientLLMError,
    user_message_for,
)

logger = logging.getLogger(__name__)

Phase = Literal["analyze", "plan", "reflect", "verify", "repair"]
Status = Literal["success", "warning", "failure"]

REFLECTION_KEYWORDS = re.compile(r"\b(issues?|gaps?|missing|incomplete)\b", re.IGNORECASE)
CLEAN_REFLECTION = re.compile(r"\bno (issues|gaps|problems) (were )?found\b", re.IGNORECASE)
REFLECTION_NOTE_CHARS = 500


@dataclass
class PhaseLog:
    phase: Phase
    status: Status
    details: str
    timestamp: str
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GenerationAttempt:
    index: int
    prompt: str
    raw_text: str | None = None
    parsed: dict | None = None
    issues: List[ValidationIssue] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "parsed": self.parsed is not None,
            "issues": [i.model_dump() for i in self.issues],
            "error": self.error,
        }


@dataclass
class OrchestrationResult:
    success: bool
    plan: ValidatedPlan | None = None
    issues: List[ValidationIssue] = field(default_factory=list)
    error: str | None = None
    error_category: str | None = None
    attempts: List[GenerationAttempt] = field(default_factory=list)
    logs: List[PhaseLog] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "plan": self.plan.model_dump(mode="json") if self.plan else None,
            "issues": [i.model_dump() for i in self.issues],
            "error": self.error,
            "error_category": self.error_category,
            "attempts": len(self.attempts),
            "logs": [log.to_dict() for log in self.logs],
            "warnings": list(self.warnings),
        }


def has_reflection_issues(text: str) -> bool:
    """Keyword heuristic over the reviewer's free text. Advisory only."""
    remainder = CLEAN_REFLECTION.sub("", text or "")
    return bool(REFLECTION_KEYWORDS.search(remainder))


class RepairOrchestrator:
    def __init__(
        self,
        client: LLMClient,
        system_prompt: str,
        *,
        max_attempts: int = 3,
        reflect: bool = True,
        reflect_max_tokens: int = 2000,
        max_total_seconds: float | None = None,
        validator: Callable[[Any], ValidatedPlan | List[ValidationIssue]] = validate_plan,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.client = client
        self.system_prompt = system_prompt
        self.max_attempts = max_attempts
        self.reflect = reflect
        self.reflect_max_tokens = reflect_max_tokens
        self.max_total_seconds = max_total_seconds
        self.validator = validator
        self._clock = clock

    # -------------------------
    # helpers
    # -------------------------
    def _log(self, logs: List[PhaseLog], phase: Phase, status: Status, details: str,
             started: float | None = None) -> None:
        duration_ms = int((self._clock() - started) * 1000) if started is not None else 0
        logs.append(PhaseLog(
            phase=phase,
            status=status,
            details=details,
            timestamp=datetime.now(timezone.utc).isoformat(),
            duration_ms=max(duration_ms, 0),
        ))
        level = {"success": logging.INFO, "warning": logging.WARNING}.get(status, logging.ERROR)
        logger.log(level, "[APRV:%s] %s: %s", phase.upper(), status.upper(), details)

    def _check_deadline(self, run_started: float) -> None:
        if self.max_total_seconds is None:
            return
        elapsed = self._clock() - run_started
        if elapsed > self.max_total_seconds:
            raise OrchestrationTimeout(
                f"Time budget of {self.max_total_seconds:g}s exceeded after {elapsed:.1f}s"
            )

    def _reflect(self, intake: IntakeRecord, draft: dict, logs: List[PhaseLog]) -> str | None:
        """Returns reviewer notes when the draft looks incomplete, otherwise None."""
        started = self._clock()
        try:
            text = self.client.generate_text(
                system=SYSTEM_REFLECT,
                user=build_reflection_prompt(intake, draft),
                temperature=self.client.json_temperature,
                max_tokens=self.reflect_max_tokens,
            )
        except Exception as e:
            # advisory step: any failure counts as "no issues"
            self._log(logs, "reflect", "warning",
                      f"Reflection failed: {type(e).__name__}: {e}. Continuing...", started)
            return None

        if has_reflection_issues(text):
            notes = text.strip()[:REFLECTION_NOTE_CHARS]
            self._log(logs, "reflect", "warning", "Reviewer reported issues", started)
            return notes

        self._log(logs, "reflect", "success", "No issues found", started)
        return None

    def _failure(self, category: str, *, issues: List[ValidationIssue],
                 attempts: List[GenerationAttempt], logs: List[PhaseLog],
                 warnings: List[str]) -> OrchestrationResult:
        return OrchestrationResult(
            success=False,
            issues=issues,
            error=user_message_for(category),
            error_category=category,
            attempts=attempts,
            logs=logs,
            warnings=warnings,
        )

    # -------------------------
    # main loop
    # -------------------------
    def run(self, intake: IntakeRecord) -> OrchestrationResult:
        logs: List[PhaseLog] = []
        attempts: List[GenerationAttempt] = []
        warnings: List[str] = []

        run_started = self._clock()
        self._log(logs, "analyze", "success",
                  f"Starting generation for '{intake.qualification.title}' "
                  f"(max {self.max_attempts} attempts, model={self.client.model_name})")

        prior_error: str | None = None
        last_issues: List[ValidationIssue] = []
        last_category: str | None = None
        fallback_plan: ValidatedPlan | None = None

        try:
            for index in range(1, self.max_attempts + 1):
                has_more = index < self.max_attempts
                self._check_deadline(run_started)

                attempt = GenerationAttempt(index=index, prompt=build_prompt(intake, prior_error))
                attempts.append(attempt)

                # Generate
                started = self._clock()
                try:
                    completion = self.client.complete_json(
                        system=self.system_prompt, user=attempt.prompt,
                    )
                except TransientLLMError as e:
                    attempt.error = str(e)
                    last_issues, last_category = [], "generation"
                    self._log(logs, "plan", "failure",
                              f"Attempt {index}: generation failed: {e}", started)
                    if has_more:
                        self._log(logs, "repair", "warning",
                                  f"Attempt {index} failed, retrying ({index + 1}/{self.max_attempts})")
                    continue
                except LLMRequestError as e:
                    # rejected request: sending it again cannot succeed
                    attempt.error = str(e)
                    last_issues = []
                    last_category = "configuration" if e.status_code in (401, 403) else "generation"
                    self._log(logs, "plan", "failure",
                              f"Attempt {index}: request rejected (status={e.status_code}): {e}",
                              started)
                    break

                attempt.raw_text = completion.raw_text
                attempt.parsed = completion.parsed

                if completion.parsed is None:
                    issue = ValidationIssue(path="root",
                                            message="No parseable JSON object in model output")
                    attempt.issues = [issue]
                    last_issues, last_category = [issue], "malformed_output"
                    prior_error = JSON_ONLY_CORRECTION
                    self._log(logs, "plan", "failure",
                              f"Attempt {index}: no JSON object in {len(completion.raw_text)} chars",
                              started)
                    if has_more:
                        self._log(logs, "repair", "warning",
                                  f"Requesting JSON-only output ({index + 1}/{self.max_attempts})")
                    continue

                self._log(logs, "plan", "success", f"Attempt {index}: draft plan generated", started)

                # Reflect
                notes = None
                if self.reflect and has_more:
                    self._check_deadline(run_started)
                    notes = self._reflect(intake, completion.parsed, logs)

                # Verify
                started = self._clock()
                result = self.validator(completion.parsed)
                if isinstance(result, list):
                    attempt.issues = list(result)
                    last_issues, last_category = attempt.issues, "validation"
                    # every defect goes back to the model; logs keep the short summary
                    prior_error = f"Schema validation errors: {format_issues(attempt.issues, limit=None)}"
                    if notes:
                        prior_error += f"\nReviewer notes: {notes}"
                    self._log(logs, "verify", "failure",
                              f"{len(attempt.issues)} schema issue(s): "
                              f"{format_issues(attempt.issues)}", started)
                    if has_more:
                        self._log(logs, "repair", "warning",
                                  f"Re-prompting with validation errors ({index + 1}/{self.max_attempts})")
                    continue

                plan = result
                if notes and has_more:
                    # valid but flagged by the reviewer: keep it and try one more pass
                    fallback_plan = plan
                    prior_error = f"Reviewer notes: {notes}"
                    self._log(logs, "verify", "success", "Schema validation passed", started)
                    self._log(logs, "repair", "warning",
                              f"Revising plan after review ({index + 1}/{self.max_attempts})")
                    continue

                self._log(logs, "verify", "success", "Schema validation passed", started)
                return self._success(plan, attempts, logs, warnings)

        except OrchestrationTimeout as e:
            self._log(logs, "repair", "failure", str(e))
            if fallback_plan is not None:
                warnings.append("Time budget exceeded; returning the last valid plan")
                return self._success(fallback_plan, attempts, logs, warnings)
            return self._failure("timeout", issues=last_issues,
                                 attempts=attempts, logs=logs, warnings=warnings)

        if fallback_plan is not None:
            warnings.append("Revision attempts did not validate; returning the last valid plan")
            self._log(logs, "verify", "warning", "Using last valid plan after failed revisions")
            return self._success(fallback_plan, attempts, logs, warnings)

        self._log(logs, "verify", "failure",
                  f"Generation failed after {len(attempts)} attempt(s)")
        return self._failure(last_category or "validation", issues=last_issues,
                             attempts=attempts, logs=logs, warnings=warnings)

    def _success(self, plan: ValidatedPlan, attempts: List[GenerationAttempt],
                 logs: List[PhaseLog], warnings: List[str]) -> OrchestrationResult:
        hours_note = hour_total_warning(plan)
        if hours_note:
            warnings.append(hours_note)
            self._log(logs, "verify", "warning", hours_note)
        return OrchestrationResult(
            success=True,
            plan=plan,
            attempts=attempts,
            logs=logs,
            warnings=warnings,
        )
