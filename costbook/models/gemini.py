"""
Google Gemini API 响应模型

只解析计费需要的字段（usageMetadata、modelVersion、grounding 查询），
其余字段通过 extra="allow" 保留，不做结构验证
"""

from typing import Any

from pydantic import ConfigDict, Field

from costbook.models.pricing_file import BaseModelWithExtras


class GeminiPart(BaseModelWithExtras):
    text: str | None = None
    thought_signature: str | None = Field(default=None, alias="thoughtSignature")


class GeminiContent(BaseModelWithExtras):
    role: str | None = None
    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiGroundingMetadata(BaseModelWithExtras):
    """搜索 grounding 信息"""

    web_search_queries: list[str] = Field(default_factory=list, alias="webSearchQueries")


class GeminiCandidate(BaseModelWithExtras):
    content: GeminiContent | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")
    grounding_metadata: GeminiGroundingMetadata | None = Field(default=None, alias="groundingMetadata")


class GeminiUsageMetadata(BaseModelWithExtras):
    """Token 使用量 - 用于计费统计"""

    prompt_token_count: int = Field(default=0, alias="promptTokenCount")
    candidates_token_count: int = Field(default=0, alias="candidatesTokenCount")
    cached_content_token_count: int = Field(default=0, alias="cachedContentTokenCount")
    tool_use_prompt_token_count: int = Field(default=0, alias="toolUsePromptTokenCount")
    thoughts_token_count: int = Field(default=0, alias="thoughtsTokenCount")
    total_token_count: int = Field(default=0, alias="totalTokenCount")


class GeminiResponse(BaseModelWithExtras):
    """
    Gemini generateContent 响应

    modelVersion 可能缺失（例如部分代理或流式聚合结果），此时需由调用方指定模型
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    candidates: list[GeminiCandidate] = Field(default_factory=list)
    usage_metadata: GeminiUsageMetadata = Field(default_factory=GeminiUsageMetadata, alias="usageMetadata")
    model_version: str = Field(default="", alias="modelVersion")

    def usage_dict(self) -> dict[str, Any]:
        """以 API 原始字段名导出 usageMetadata"""
        return self.usage_metadata.model_dump(by_alias=True)


__all__ = [
    "GeminiCandidate",
    "GeminiContent",
    "GeminiGroundingMetadata",
    "GeminiPart",
    "GeminiResponse",
    "GeminiUsageMetadata",
]
