"""
Usage 映射与 Gemini 响应计费测试
"""

import json
from typing import Any

import pytest

from costbook.core.exceptions import UsagePayloadError
from costbook.services.pricing import (
    BATCH_GROUNDING_WARNING,
    CostCalculator,
    TokenUsage,
    UsageMapper,
    calculate_gemini_response_cost,
    count_grounding_queries,
    parse_gemini_response,
)

GROUNDED_RESPONSE: dict[str, Any] = {
    "candidates": [
        {
            "content": {"parts": [{"text": "Some response text"}], "role": "model"},
            "finishReason": "STOP",
            "groundingMetadata": {
                "webSearchQueries": [
                    "",
                    "fortress investment group board",
                    "fortress investment group donations",
                    "charity philanthropy report",
                    "annual report 2024",
                    "",
                    "hellenic initiative",
                    "charitable foundation annual report",
                    "cathedral of the holy trinity",
                    "investment group philanthropy",
                    "university alumni giving",
                    "university donor list",
                    "",
                    "endowed fund for pediatric research",
                ]
            },
        }
    ],
    "usageMetadata": {
        "promptTokenCount": 427,
        "candidatesTokenCount": 486,
        "totalTokenCount": 2790,
        "cachedContentTokenCount": 280,
        "toolUsePromptTokenCount": 1399,
        "thoughtsTokenCount": 478,
    },
    "modelVersion": "gemini-3-pro-preview",
}


class TestUsageMapper:
    def test_gemini(self) -> None:
        usage = UsageMapper.map(GROUNDED_RESPONSE["usageMetadata"], "GEMINI")
        assert usage == TokenUsage(
            prompt_tokens=427,
            completion_tokens=486,
            cached_tokens=280,
            thinking_tokens=478,
            tool_use_tokens=1399,
        )

    def test_gemini_nested_usage(self) -> None:
        usage = UsageMapper.map({"usageMetadata": {"promptTokenCount": 10}}, "gemini_cli")
        assert usage.prompt_tokens == 10

    def test_openai(self) -> None:
        raw = {
            "prompt_tokens": 100,
            "completion_tokens": 50,
            "prompt_tokens_details": {"cached_tokens": 20},
            "completion_tokens_details": {"reasoning_tokens": 10},
        }
        usage = UsageMapper.map(raw, "OPENAI")
        assert usage.prompt_tokens == 100
        assert usage.completion_tokens == 50
        assert usage.cached_tokens == 20
        # reasoning_tokens 已包含在 completion_tokens 中
        assert usage.thinking_tokens == 0

    def test_claude_adds_cache_reads_to_prompt(self) -> None:
        raw = {"input_tokens": 100, "output_tokens": 50, "cache_read_input_tokens": 20}
        usage = UsageMapper.map(raw, "CLAUDE")
        assert usage.prompt_tokens == 120
        assert usage.cached_tokens == 20

    def test_empty_usage(self) -> None:
        assert UsageMapper.map({}, "OPENAI") == TokenUsage()
        assert UsageMapper.map(None, "OPENAI") == TokenUsage()

    def test_unknown_format(self) -> None:
        with pytest.raises(UsagePayloadError, match="unsupported usage format"):
            UsageMapper.map({"tokens": 1}, "COHERE")

    def test_non_integer_value(self) -> None:
        with pytest.raises(UsagePayloadError, match="prompt_tokens"):
            UsageMapper.map({"prompt_tokens": "many"}, "OPENAI")

    def test_map_from_response(self) -> None:
        usage = UsageMapper.map_from_response({"usage": {"prompt_tokens": 7, "completion_tokens": 3}}, "OPENAI")
        assert (usage.prompt_tokens, usage.completion_tokens) == (7, 3)
        usage = UsageMapper.map_from_response(GROUNDED_RESPONSE, "GEMINI")
        assert usage.tool_use_tokens == 1399


class TestParseGeminiResponse:
    def test_from_bytes(self) -> None:
        response = parse_gemini_response(json.dumps(GROUNDED_RESPONSE).encode())
        assert response.model_version == "gemini-3-pro-preview"
        assert response.usage_metadata.tool_use_prompt_token_count == 1399

    def test_from_dict(self) -> None:
        response = parse_gemini_response(GROUNDED_RESPONSE)
        assert response.candidates[0].finish_reason == "STOP"

    def test_invalid_json(self) -> None:
        with pytest.raises(UsagePayloadError):
            parse_gemini_response(b"{invalid json")

    def test_empty_payload(self) -> None:
        with pytest.raises(UsagePayloadError, match="no input provided"):
            parse_gemini_response(b"")

    def test_count_non_empty_queries(self) -> None:
        """14 条查询中 3 条为空"""
        assert count_grounding_queries(parse_gemini_response(GROUNDED_RESPONSE)) == 11

    def test_count_without_grounding(self) -> None:
        response = parse_gemini_response({"candidates": [{"finishReason": "STOP"}]})
        assert count_grounding_queries(response) == 0


class TestCalculateGeminiResponseCost:
    def test_grounded_response(self, calculator: CostCalculator) -> None:
        details = calculate_gemini_response_cost(json.dumps(GROUNDED_RESPONSE), calculator)
        assert details.found is True
        # 11 * $14/1000
        assert details.grounding_cost == pytest.approx(0.154)
        assert details.standard_input_cost == pytest.approx(1546 * 2.0 / 1_000_000)
        assert details.cached_input_cost == pytest.approx(280 * 2.0 * 0.10 / 1_000_000)
        assert details.output_cost == pytest.approx(486 * 12.0 / 1_000_000)
        assert details.thinking_cost == pytest.approx(478 * 12.0 / 1_000_000)

    def test_batch_mode_warning(self, calculator: CostCalculator) -> None:
        details = calculate_gemini_response_cost(GROUNDED_RESPONSE, calculator, batch_mode=True)
        assert details.grounding_cost == 0.0
        assert details.warnings == (BATCH_GROUNDING_WARNING,)

    def test_no_grounding(self, calculator: CostCalculator) -> None:
        payload = {
            "candidates": [{"content": {"parts": [{"text": "Hello"}], "role": "model"}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 100, "candidatesTokenCount": 50},
            "modelVersion": "gemini-2.5-flash",
        }
        details = calculate_gemini_response_cost(payload, calculator)
        assert details.grounding_cost == 0.0
        assert details.standard_input_cost == pytest.approx(100 * 0.30 / 1_000_000)
        assert details.output_cost == pytest.approx(50 * 2.50 / 1_000_000)

    def test_missing_model_version(self, calculator: CostCalculator) -> None:
        payload = {"usageMetadata": {"promptTokenCount": 100, "candidatesTokenCount": 50}, "modelVersion": ""}
        assert calculate_gemini_response_cost(payload, calculator).found is False

        details = calculate_gemini_response_cost(payload, calculator, model="gemini-2.5-flash")
        assert details.found is True
        assert details.standard_input_cost == pytest.approx(100 * 0.30 / 1_000_000)

    def test_model_override_wins(self, calculator: CostCalculator) -> None:
        details = calculate_gemini_response_cost(GROUNDED_RESPONSE, calculator, model="gemini-2.5-flash")
        # gemini-2.5 grounding 按请求计费
        assert details.grounding_cost == pytest.approx(0.035)
