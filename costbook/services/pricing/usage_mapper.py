"""
Usage 字段映射器

将不同 API 格式的原始 usage 数据映射为 TokenUsage，并提供 Gemini 响应的
一站式计费入口。

支持的格式：
- GEMINI: Google Gemini API（usageMetadata）
- OPENAI: OpenAI Chat Completions API
- CLAUDE: Anthropic Messages API
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from costbook.core.exceptions import UsagePayloadError
from costbook.core.logger import logger
from costbook.models.gemini import GeminiResponse
from costbook.services.pricing.calculator import CostCalculator
from costbook.services.pricing.models import CostDetails, TokenUsage


class UsageMapper:
    """
    Usage 字段映射器

    示例:
        # Gemini 格式
        raw_usage = {
            "promptTokenCount": 427,
            "candidatesTokenCount": 486,
            "cachedContentTokenCount": 280,
            "toolUsePromptTokenCount": 1399,
            "thoughtsTokenCount": 478,
        }
        usage = UsageMapper.map(raw_usage, "GEMINI")

        # Claude 格式（cache_read_input_tokens 不包含在 input_tokens 中，映射时会合并）
        raw_usage = {"input_tokens": 100, "output_tokens": 50, "cache_read_input_tokens": 20}
        usage = UsageMapper.map(raw_usage, "CLAUDE")
    """

    # 格式: "source_path" -> "target_field"，source_path 支持点号分隔的嵌套路径

    GEMINI_MAPPING: dict[str, str] = {
        "promptTokenCount": "prompt_tokens",
        "candidatesTokenCount": "completion_tokens",
        "cachedContentTokenCount": "cached_tokens",
        "thoughtsTokenCount": "thinking_tokens",
        "toolUsePromptTokenCount": "tool_use_tokens",
        "usageMetadata.promptTokenCount": "prompt_tokens",
        "usageMetadata.candidatesTokenCount": "completion_tokens",
        "usageMetadata.cachedContentTokenCount": "cached_tokens",
        "usageMetadata.thoughtsTokenCount": "thinking_tokens",
        "usageMetadata.toolUsePromptTokenCount": "tool_use_tokens",
    }

    # completion_tokens 已包含 reasoning_tokens，不再单独映射
    OPENAI_MAPPING: dict[str, str] = {
        "prompt_tokens": "prompt_tokens",
        "completion_tokens": "completion_tokens",
        "prompt_tokens_details.cached_tokens": "cached_tokens",
    }

    CLAUDE_MAPPING: dict[str, str] = {
        "input_tokens": "prompt_tokens",
        "output_tokens": "completion_tokens",
        "cache_read_input_tokens": "cached_tokens",
    }

    FORMAT_MAPPINGS: dict[str, dict[str, str]] = {
        "GEMINI": GEMINI_MAPPING,
        "OPENAI": OPENAI_MAPPING,
        "CLAUDE": CLAUDE_MAPPING,
    }

    # 这些格式的输入 token 不含缓存命中部分
    CACHE_EXCLUDED_FORMATS: frozenset[str] = frozenset({"CLAUDE"})

    @classmethod
    def map(cls, raw_usage: dict[str, Any] | None, api_format: str) -> TokenUsage:
        """
        将原始 usage 映射为 TokenUsage

        Raises:
            UsagePayloadError: 格式未知，或字段值不是整数
        """
        if not raw_usage:
            return TokenUsage()

        format_upper = cls._normalize_format(api_format)
        mapping = cls.FORMAT_MAPPINGS[format_upper]

        result = TokenUsage()
        for source_path, target_field in mapping.items():
            value = cls._get_nested_value(raw_usage, source_path)
            if value is not None:
                setattr(result, target_field, cls._to_int(source_path, value))

        if format_upper in cls.CACHE_EXCLUDED_FORMATS:
            result.prompt_tokens += result.cached_tokens
        return result

    @classmethod
    def map_from_response(cls, response: dict[str, Any], api_format: str) -> TokenUsage:
        """
        从完整响应中提取并映射 usage

        - Gemini: response["usageMetadata"]
        - OpenAI/Claude: response["usage"]
        """
        format_upper = cls._normalize_format(api_format)
        if format_upper == "GEMINI":
            usage_data = response.get("usageMetadata") or {}
        else:
            usage_data = response.get("usage") or {}
        return cls.map(usage_data, format_upper)

    @classmethod
    def _normalize_format(cls, api_format: str) -> str:
        format_upper = (api_format or "").upper()
        if format_upper in cls.FORMAT_MAPPINGS:
            return format_upper
        # GEMINI_CLI / OPENAI_CLI 等变体按前缀归类
        base = format_upper.split("_")[0]
        if base in cls.FORMAT_MAPPINGS:
            return base
        raise UsagePayloadError(f"unsupported usage format: {api_format!r}")

    @staticmethod
    def _to_int(path: str, value: Any) -> int:
        if isinstance(value, bool):
            raise UsagePayloadError(f"usage field {path} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise UsagePayloadError(f"usage field {path} must be an integer, got {value!r}") from None

    @staticmethod
    def _get_nested_value(data: dict[str, Any], path: str) -> Any:
        value: Any = data
        for key in path.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(key)
            if value is None:
                return None
        return value


# =========================================================================
# Gemini 响应
# =========================================================================


def parse_gemini_response(payload: bytes | str | dict[str, Any] | GeminiResponse) -> GeminiResponse:
    """
    解析 Gemini 响应

    Args:
        payload: JSON 字节串/字符串，或已反序列化的字典

    Raises:
        UsagePayloadError: 载荷为空或不是合法的 Gemini 响应
    """
    if isinstance(payload, GeminiResponse):
        return payload
    if not payload:
        raise UsagePayloadError("no input provided")
    try:
        if isinstance(payload, (bytes, str)):
            return GeminiResponse.model_validate_json(payload)
        return GeminiResponse.model_validate(payload)
    except ValidationError as exc:
        raise UsagePayloadError(f"failed to parse Gemini response: {exc}") from exc


def count_grounding_queries(response: GeminiResponse) -> int:
    """统计所有候选中非空的 webSearchQueries 数量"""
    count = 0
    for candidate in response.candidates:
        if candidate.grounding_metadata is None:
            continue
        count += sum(1 for query in candidate.grounding_metadata.web_search_queries if query)
    return count


def calculate_gemini_response_cost(
    response: bytes | str | dict[str, Any] | GeminiResponse,
    calculator: CostCalculator,
    model: str | None = None,
    batch_mode: bool = False,
) -> CostDetails:
    """
    计算 Gemini 响应的费用

    Args:
        response: Gemini 响应（原始载荷或已解析模型）
        calculator: 费用计算器
        model: 指定模型，优先于响应中的 modelVersion
        batch_mode: 是否按批处理价格计费

    Returns:
        CostDetails；模型为空或未找到时 found=False

    Raises:
        UsagePayloadError: 载荷无法解析
    """
    parsed = parse_gemini_response(response)
    model_name = model or parsed.model_version
    if not model_name:
        logger.debug("Gemini 响应缺少 modelVersion，且未指定模型")
        return CostDetails(batch_mode=batch_mode, found=False)

    usage = UsageMapper.map(parsed.usage_dict(), "GEMINI")
    queries = count_grounding_queries(parsed)
    logger.debug(f"Gemini 用量: model={model_name}, usage={usage.to_dict()}, grounding_queries={queries}")
    return calculator.calculate_usage(model_name, usage, grounding_queries=queries, batch_mode=batch_mode)


__all__ = [
    "TokenUsage",
    "UsageMapper",
    "calculate_gemini_response_cost",
    "count_grounding_queries",
    "parse_gemini_response",
]
