from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from hypertune.errors import ErrorCategory, RemoteError, ValidationError
from hypertune.generation import (
    ERROR_MARKER,
    OpenAICollaborator,
    classify_exception,
    error_result,
    is_error_result,
    normalize_reply,
    parse_reply_text,
)
from hypertune.generation.collaborator import SHAP_ERROR, SUGGESTION_FALLBACK, strip_code_fences
from hypertune.generation.prompts import build_shap_prompt, build_training_prompt, dataset_summary
from hypertune.models import DatasetPreview, TuningConfig

GOOD_REPLY = {
    "script": "import pandas as pd\n",
    "logs": ["Loading data...", "Best score: 0.91"],
    "best_params": {"C": 10},
    "best_score": 0.91,
    "metric": "F1",
}


class FakeCompletions:
    def __init__(self, content: str = "", *, finish_reason: str = "stop", error: Exception | None = None):
        self.content = content
        self.finish_reason = finish_reason
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=self.finish_reason)])


def _collaborator(completions: FakeCompletions) -> OpenAICollaborator:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAICollaborator(api_key="sk-test", client=client)


def test_normalize_reply_fills_optional_fields() -> None:
    result = normalize_reply({"script": "x = 1", "logs": ["a", 2]})
    assert result.logs == ["a", "2"]
    assert result.best_params == {}
    assert result.best_score == 0.0
    assert result.metric == "Score"


@pytest.mark.parametrize(
    "data",
    [[], {"logs": []}, {"script": "", "logs": []}, {"script": "x", "logs": "nope"}],
)
def test_normalize_reply_rejects_missing_script_or_logs(data) -> None:
    with pytest.raises(RemoteError) as info:
        normalize_reply(data)
    assert info.value.category == ErrorCategory.MALFORMED


def test_parse_reply_text_invalid_json() -> None:
    with pytest.raises(RemoteError) as info:
        parse_reply_text("Sure! Here is your script:")
    assert info.value.category == ErrorCategory.MALFORMED


@pytest.mark.parametrize(
    "message,category",
    [
        ("Error 429: quota exceeded", ErrorCategory.RATE_LIMIT),
        ("401 Unauthorized", ErrorCategory.AUTH),
        ("upstream returned 503", ErrorCategory.UNAVAILABLE),
        ("Request timed out", ErrorCategory.UNAVAILABLE),
        ("finish_reason=SAFETY", ErrorCategory.BLOCKED),
        ("something odd", ErrorCategory.GENERIC),
    ],
)
def test_classify_exception_from_message(message: str, category: ErrorCategory) -> None:
    assert classify_exception(RuntimeError(message)) == category


def test_classify_keeps_remote_error_category() -> None:
    assert classify_exception(RemoteError("x", ErrorCategory.MALFORMED)) == ErrorCategory.MALFORMED


def test_error_result_shape() -> None:
    result = error_result(ErrorCategory.RATE_LIMIT, "429")
    assert result.script.startswith(ERROR_MARKER)
    assert "# Details: 429" in result.script
    assert result.logs == ["Error: Service is busy (Rate Limit). Please wait a moment and try again."]
    assert is_error_result(result)
    assert not is_error_result(normalize_reply(GOOD_REPLY))


def test_strip_code_fences() -> None:
    assert strip_code_fences("```python\nimport shap\n```") == "import shap"
    assert strip_code_fences("```\nx = 1\n```\n") == "x = 1"
    assert strip_code_fences("  plain = True  ") == "plain = True"


def test_generate_success_uses_json_mode(dataset: DatasetPreview, config: TuningConfig) -> None:
    completions = FakeCompletions(json.dumps(GOOD_REPLY))

    result = asyncio.run(_collaborator(completions).generate(dataset, config))

    assert not is_error_result(result)
    assert result.best_params == {"C": 10}
    assert result.metric == "F1"
    call = completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert '"c"' in call["messages"][1]["content"]


def test_generate_content_filter_is_blocked(dataset: DatasetPreview, config: TuningConfig) -> None:
    completions = FakeCompletions(json.dumps(GOOD_REPLY), finish_reason="content_filter")
    result = asyncio.run(_collaborator(completions).generate(dataset, config))
    assert is_error_result(result)
    assert "safety filters" in result.logs[0]


def test_generate_malformed_reply_becomes_error_payload(dataset: DatasetPreview, config: TuningConfig) -> None:
    result = asyncio.run(_collaborator(FakeCompletions("not json")).generate(dataset, config))
    assert is_error_result(result)
    assert "not valid JSON" in result.logs[0]


def test_generate_service_failure_becomes_error_payload(dataset: DatasetPreview, config: TuningConfig) -> None:
    completions = FakeCompletions(error=RuntimeError("HTTP 429 Too Many Requests"))
    result = asyncio.run(_collaborator(completions).generate(dataset, config))
    assert is_error_result(result)
    assert result.metric == "Error"
    assert "Rate Limit" in result.logs[0]


def test_generate_without_api_key_reports_auth(dataset: DatasetPreview, config: TuningConfig) -> None:
    result = asyncio.run(OpenAICollaborator(api_key=None).generate(dataset, config))
    assert is_error_result(result)
    assert "API key" in result.logs[0]


def test_generate_validates_request_before_calling(dataset: DatasetPreview, config: TuningConfig) -> None:
    completions = FakeCompletions(json.dumps(GOOD_REPLY))
    bad = config.model_copy(update={"target_column": "nope"})
    with pytest.raises(ValidationError):
        asyncio.run(_collaborator(completions).generate(dataset, bad))
    assert completions.calls == []


def test_shap_script_fences_stripped_and_failures_fall_back(dataset: DatasetPreview, config: TuningConfig) -> None:
    ok = _collaborator(FakeCompletions("```python\nimport shap\n```"))
    assert asyncio.run(ok.generate_shap_script(dataset, config)) == "import shap"

    broken = _collaborator(FakeCompletions(error=RuntimeError("boom")))
    assert asyncio.run(broken.generate_shap_script(dataset, config)) == SHAP_ERROR


def test_suggestion_falls_back_on_failure(dataset: DatasetPreview) -> None:
    ok = _collaborator(FakeCompletions("  Try XGBoost.  "))
    assert asyncio.run(ok.suggest_model(dataset)) == "Try XGBoost."

    broken = _collaborator(FakeCompletions(error=RuntimeError("boom")))
    assert asyncio.run(broken.suggest_model(dataset)) == SUGGESTION_FALLBACK


def test_prompts_describe_the_experiment(dataset: DatasetPreview, config: TuningConfig) -> None:
    prompt = build_training_prompt(dataset, config)
    assert config.model_type.value in prompt
    assert config.tuning_method.value in prompt
    assert f"{config.cv_folds}-fold CV" in prompt
    assert "# Error: Invalid Hyperparameter Configuration" in prompt
    assert config.target_column in build_shap_prompt(dataset, config)


def test_summary_hides_sentinel_row_count() -> None:
    ds = DatasetPreview(filename="big.csv", columns=["a"], row_count=-1, sample_data=[{"a": "1"}] * 5, row_count_exact=False)
    summary = dataset_summary(ds)
    assert summary["row_count"] == "unknown (large file)"
    assert len(summary["sample"]) == 3
