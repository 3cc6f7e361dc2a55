"""
定价配置文件模型

描述单个 *_pricing.json 文件的原始结构，仅做类型层面的解析；
取值范围、枚举值与日期格式等业务规则由 services.pricing.validator 负责。
枚举类字段在此保持为原始字符串，以便校验器给出明确的失败原因。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseModelWithExtras(BaseModel):
    """允许额外字段的基础模型（新版配置字段向后兼容）"""

    model_config = ConfigDict(extra="allow")


class RawPricingTier(BaseModelWithExtras):
    threshold_tokens: int
    input_per_million: float = 0.0
    output_per_million: float = 0.0


class RawModelPricing(BaseModelWithExtras):
    input_per_million: float = 0.0
    output_per_million: float = 0.0
    tiers: list[RawPricingTier] = Field(default_factory=list)
    cache_read_multiplier: float | None = None
    batch_multiplier: float | None = None
    batch_cache_rule: str | None = None
    batch_grounding_ok: bool = False
    audio_input_per_million: float | None = None


class RawImageModelPricing(BaseModelWithExtras):
    price_per_image: float = 0.0


class RawGroundingPricing(BaseModelWithExtras):
    per_thousand_queries: float = 0.0
    billing_model: str | None = None


class RawCreditPricing(BaseModelWithExtras):
    base_cost_per_request: int = 0
    multipliers: dict[str, int] = Field(default_factory=dict)


class RawSubscriptionTier(BaseModelWithExtras):
    credits: int = 0
    price_usd: float = 0.0


class RawPricingMetadata(BaseModelWithExtras):
    updated: str | None = None
    source: str | None = None  # 旧字段
    source_urls: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class ProviderPricingFile(BaseModelWithExtras):
    """单个厂商定价文件"""

    provider: str | None = None
    billing_type: str | None = None  # "token" / "credit" / "image"，仅作说明
    models: dict[str, RawModelPricing] = Field(default_factory=dict)
    image_models: dict[str, RawImageModelPricing] = Field(default_factory=dict)
    grounding: dict[str, RawGroundingPricing] = Field(default_factory=dict)
    credit_pricing: RawCreditPricing | None = None
    subscription_tiers: dict[str, RawSubscriptionTier] = Field(default_factory=dict)
    metadata: RawPricingMetadata = Field(default_factory=RawPricingMetadata)


class RawPricingRecord(BaseModel):
    """
    待校验的定价记录

    source 为来源名称（通常是文件名），用于错误信息定位，
    以及在配置未声明 provider 时从 "<provider>_pricing.json" 推断厂商名。
    """

    source: str
    data: dict[str, Any]
