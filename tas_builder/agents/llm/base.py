## Base LLM Client Interface
import json
import logging
import random
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from tas_builder.errors import LLMRequestError, TransientLLMError, friendly_status_message

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 429, 503, 504}

JSON_SYSTEM_SUFFIX = (
    "\n\nIMPORTANT: You must respond with valid JSON only. "
    "Do not include any explanatory text before or after the JSON."
)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)


class ProviderCallError(Exception):
    """One failed provider call. status_code is None for transport failures."""

    def __init__(self, message: str, *, status_code: int | None = None,
                 request_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id


@dataclass(frozen=True)
class JSONCompletion:
    raw_text: str
    parsed: dict | None


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: float = 0.2

    def is_retryable(self, status_code: int | None) -> bool:
        if status_code is None:
            # timeouts / connection resets never reached the server's error path
            return True
        return status_code in RETRYABLE_STATUS or 500 <= status_code < 600

    def delay_for(self, attempt: int, rand: Callable[[float, float], float] = random.uniform) -> float:
        base = min(self.max_delay, self.initial_delay * (self.multiplier ** attempt))
        return max(0.0, base + base * self.jitter * rand(-1.0, 1.0))


def _loads_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _balanced_spans(text: str):
    """Yield every top-level balanced { ... } substring, skipping braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end is None:
            return
        yield text[start:end + 1]
        start = text.find("{", start + 1)


def extract_first_json_object(text: str | None) -> dict | None:
    """
    Pull the first JSON object out of model output.
    Handles bare JSON, fenced ```json blocks and JSON surrounded by prose.
    Returns None instead of raising when nothing parses.
    """
    if not text or not text.strip():
        return None

    whole = _loads_object(text.strip())
    if whole is not None:
        return whole

    for block in _FENCED_BLOCK.findall(text):
        parsed = _loads_object(block.strip())
        if parsed is not None:
            return parsed

    for span in _balanced_spans(text):
        parsed = _loads_object(span)
        if parsed is not None:
            return parsed

    return None


class LLMClient(ABC):
    """
    Provider-neutral client. Subclasses implement one raw call (_send_chat);
    retries, backoff and error translation live here so every provider
    behaves the same way.
    """

    def __init__(self, *, retry: RetryPolicy | None = None, max_tokens: int = 4096,
                 json_temperature: float = 0.3, text_temperature: float = 0.7,
                 sleep: Callable[[float], None] = time.sleep):
        self.retry = retry or RetryPolicy()
        self.max_tokens = max_tokens
        self.json_temperature = json_temperature
        self.text_temperature = text_temperature
        self._sleep = sleep

    @property
    @abstractmethod
    def model_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def _send_chat(self, *, system: str, user: str, temperature: float, max_tokens: int) -> str:
        """Single provider call. Raise ProviderCallError on any failure."""
        raise NotImplementedError

    def generate_text(self, *, system: str, user: str, temperature: float | None = None,
                      max_tokens: int | None = None) -> str:
        temperature = self.text_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.max_tokens

        last_err: ProviderCallError | None = None
        total = self.retry.max_retries + 1
        for attempt in range(total):
            started = time.monotonic()
            try:
                text = self._send_chat(system=system, user=user,
                                       temperature=temperature, max_tokens=max_tokens)
            except ProviderCallError as e:
                last_err = e
                if not self.retry.is_retryable(e.status_code):
                    logger.error("LLM call rejected (status=%s): %s", e.status_code, e.message)
                    raise LLMRequestError(
                        friendly_status_message(e.status_code, e.message),
                        status_code=e.status_code,
                        request_id=e.request_id,
                    ) from e

                if attempt < total - 1:
                    delay = self.retry.delay_for(attempt)
                    logger.warning(
                        "LLM call failed (status=%s, attempt %d/%d), retrying in %.2fs",
                        e.status_code, attempt + 1, total, delay,
                    )
                    self._sleep(delay)
                continue

            logger.debug(
                "LLM call succeeded on attempt %d in %dms (%d chars)",
                attempt + 1, int((time.monotonic() - started) * 1000), len(text),
            )
            return text

        logger.error("LLM call failed after %d attempts", total)
        status = last_err.status_code if last_err else None
        if status is None:
            message = "The AI service could not be reached. Please try again shortly."
        else:
            message = friendly_status_message(status)
        raise TransientLLMError(
            message,
            status_code=status,
            request_id=last_err.request_id if last_err else None,
        ) from last_err

    def generate_json(self, *, system: str, user: str, schema_hint: Any = None,
                      max_tokens: int | None = None) -> dict | None:
        """
        Default strategy: ask model to output JSON only, then extract the first
        JSON object. None means the output held no parseable object.
        """
        return self.complete_json(
            system=system, user=user, schema_hint=schema_hint, max_tokens=max_tokens,
        ).parsed

    def complete_json(self, *, system: str, user: str, schema_hint: Any = None,
                      max_tokens: int | None = None) -> JSONCompletion:
        enhanced_user = user
        if schema_hint is not None:
            hint = schema_hint if isinstance(schema_hint, str) else json.dumps(schema_hint, indent=2)
            enhanced_user = (
                f"{user}\n\nResponse format: valid JSON conforming to this schema:\n{hint}\n\n"
                "Respond with JSON only, no other text."
            )

        text = self.generate_text(
            system=system + JSON_SYSTEM_SUFFIX,
            user=enhanced_user,
            temperature=self.json_temperature,
            max_tokens=max_tokens,
        )
        parsed = extract_first_json_object(text)
        if parsed is None:
            logger.warning("No JSON object found in model output (%d chars)", len(text))
        return JSONCompletion(raw_text=text, parsed=parsed)
