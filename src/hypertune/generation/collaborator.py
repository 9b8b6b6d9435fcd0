from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Protocol

import openai

from ..config import Settings
from ..errors import ErrorCategory, RemoteError, ValidationError
from ..models import DatasetPreview, GenerationResult, TuningConfig
from .prompts import SYSTEM_PROMPT, build_shap_prompt, build_suggestion_prompt, build_training_prompt

logger = logging.getLogger(__name__)

# A reply whose script starts with this marker is an error reply.
ERROR_MARKER = "# Error"

USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMIT: "Service is busy (Rate Limit). Please wait a moment and try again.",
    ErrorCategory.AUTH: "Access denied. Please check your API key or billing status.",
    ErrorCategory.UNAVAILABLE: "The generation service is temporarily unavailable. Please try again.",
    ErrorCategory.BLOCKED: "The request was blocked by safety filters.",
    ErrorCategory.MALFORMED: "Failed to parse AI response. The model output was not valid JSON.",
    ErrorCategory.GENERIC: "Optimization failed due to an unexpected error.",
}

SHAP_ERROR = "# Error generating SHAP script. Please try again."
SHAP_EMPTY = "# Failed to generate SHAP script."
SUGGESTION_FALLBACK = "Ready to configure parameters."
SUGGESTION_EMPTY = "Analysis unavailable."

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


class GenerationCollaborator(Protocol):
    """The remote script/log generator. Implementations must not raise for
    service failures; they return an error-flagged GenerationResult instead."""

    async def generate(self, dataset: DatasetPreview, config: TuningConfig) -> GenerationResult: ...

    async def generate_shap_script(self, dataset: DatasetPreview, config: TuningConfig) -> str: ...

    async def suggest_model(self, dataset: DatasetPreview) -> str: ...


def is_error_result(result: GenerationResult) -> bool:
    return result.script.startswith(ERROR_MARKER)


def error_result(category: ErrorCategory, detail: str = "") -> GenerationResult:
    message = USER_MESSAGES[category]
    script = f"{ERROR_MARKER}: {message}"
    if detail:
        script += f"\n# Details: {detail}"
    return GenerationResult(script=script, logs=[f"Error: {message}"], best_params={}, best_score=0.0, metric="Error")


def classify_exception(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, RemoteError):
        return exc.category
    if isinstance(exc, openai.RateLimitError):
        return ErrorCategory.RATE_LIMIT
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorCategory.AUTH
    if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
        return ErrorCategory.UNAVAILABLE
    if isinstance(exc, openai.BadRequestError) and getattr(exc, "code", None) == "content_policy_violation":
        return ErrorCategory.BLOCKED

    # Providers and proxies do not always raise typed errors.
    text = str(exc)
    if "429" in text:
        return ErrorCategory.RATE_LIMIT
    if "401" in text or "403" in text:
        return ErrorCategory.AUTH
    if "503" in text or "502" in text or "timed out" in text.lower():
        return ErrorCategory.UNAVAILABLE
    if "SAFETY" in text or "content_filter" in text:
        return ErrorCategory.BLOCKED
    return ErrorCategory.GENERIC


def normalize_reply(data: Any) -> GenerationResult:
    """
    Turn a decoded JSON reply into a GenerationResult.

    Raises RemoteError(MALFORMED) when `script` or `logs` is missing.
    """
    if not isinstance(data, dict):
        raise RemoteError("AI response is not a JSON object.", ErrorCategory.MALFORMED)
    script = data.get("script")
    logs = data.get("logs")
    if not isinstance(script, str) or not script or not isinstance(logs, list):
        raise RemoteError("Invalid AI response structure: Missing script or logs.", ErrorCategory.MALFORMED)

    best_params = data.get("best_params")
    if not isinstance(best_params, dict):
        best_params = {}
    try:
        best_score = float(data.get("best_score") or 0.0)
    except (TypeError, ValueError):
        best_score = 0.0

    return GenerationResult(
        script=script,
        logs=[str(line) for line in logs],
        best_params=best_params,
        best_score=best_score,
        metric=str(data.get("metric") or "Score"),
    )


def parse_reply_text(text: str) -> GenerationResult:
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise RemoteError(f"Model output was not valid JSON: {e}", ErrorCategory.MALFORMED) from e
    return normalize_reply(data)


def validate_request(dataset: DatasetPreview, config: TuningConfig) -> None:
    if not dataset.columns:
        raise ValidationError("Dataset is empty or invalid.")
    if not config.target_column or config.target_column not in dataset.columns:
        raise ValidationError(f'Target column "{config.target_column}" not found in dataset.')


def strip_code_fences(text: str) -> str:
    m = _FENCE_RE.match(text.strip())
    return m.group(1).strip() if m else text.strip()


class OpenAICollaborator:
    """
    GenerationCollaborator backed by the OpenAI chat completions API.

    `client` may be any object exposing an async `chat.completions.create`;
    by default an AsyncOpenAI client is created on first use.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4o-mini",
        client: Any = None,
        temperature: float = 0.2,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "OpenAICollaborator":
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.llm_model,
            **kwargs,
        )

    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise RemoteError("API key missing.", ErrorCategory.AUTH)
            self._client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def _complete(self, prompt: str, *, json_mode: bool = False) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        resp = await self.client().chat.completions.create(**kwargs)
        choice = resp.choices[0]
        if getattr(choice, "finish_reason", None) == "content_filter":
            raise RemoteError("Response withheld by content_filter.", ErrorCategory.BLOCKED)
        return choice.message.content or ""

    async def generate(self, dataset: DatasetPreview, config: TuningConfig) -> GenerationResult:
        validate_request(dataset, config)
        try:
            text = await self._complete(build_training_prompt(dataset, config), json_mode=True)
            result = parse_reply_text(text)
        except Exception as exc:
            category = classify_exception(exc)
            logger.warning("Generation failed (%s): %s", category.value, exc)
            return error_result(category, str(exc))
        logger.info("Generation succeeded: metric=%s best_score=%s logs=%d", result.metric, result.best_score, len(result.logs))
        return result

    async def generate_shap_script(self, dataset: DatasetPreview, config: TuningConfig) -> str:
        try:
            text = await self._complete(build_shap_prompt(dataset, config))
        except Exception as exc:
            logger.warning("SHAP generation failed: %s", exc)
            return SHAP_ERROR
        return strip_code_fences(text) or SHAP_EMPTY

    async def suggest_model(self, dataset: DatasetPreview) -> str:
        try:
            text = await self._complete(build_suggestion_prompt(dataset))
        except Exception as exc:
            logger.info("Dataset suggestion unavailable: %s", exc)
            return SUGGESTION_FALLBACK
        return text.strip() or SUGGESTION_EMPTY
