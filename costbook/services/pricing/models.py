"""
定价模块数据模型

定义定价目录与计费结果的核心数据结构：
- BatchCacheRule / GroundingBillingModel: 配置中的枚举字段
- PricingTier / ModelPricing: 按 token 计费的模型价格（每百万 token）
- GroundingPricing: 搜索/grounding 价格（每千次查询）
- ImageModelPricing: 按张计费的图片模型价格
- CreditPricing: 非 token 厂商的积分计费
- ProviderPricing: 单个厂商的完整定价配置
- Cost / CostDetails: 计费结果（不可变，每次调用新建）
- TokenUsage: 多维度 token 用量（计费输入）

目录中的价格对象均为 frozen dataclass；含可变容器的对象在对外返回前会深拷贝。
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from costbook.config.constants import PricingDefaults


class BatchCacheRule(str, Enum):
    """批处理折扣与缓存折扣的叠加规则"""

    # 折扣相乘：缓存 token 费用 = 单价 * cache_mult * batch_mult（Anthropic/OpenAI）
    STACK = "stack"
    # 缓存优先：缓存 token 只享受缓存折扣，批处理折扣仅作用于非缓存 token（Gemini）
    CACHE_PRECEDENCE = "cache_precedence"


class GroundingBillingModel(str, Enum):
    """Grounding 计费方式"""

    PER_QUERY = "per_query"  # 按实际查询次数
    PER_PROMPT = "per_prompt"  # 每次请求计一次，与查询次数无关


@dataclass(frozen=True)
class PricingTier:
    """阶梯价格：标准输入 token 数达到 threshold_tokens（含）时生效"""

    threshold_tokens: int
    input_per_million: float
    output_per_million: float

    @property
    def label(self) -> str:
        """阶梯名称，例如 ">200K"、">128.5K" """
        if self.threshold_tokens % 1000 == 0:
            return f">{self.threshold_tokens // 1000}K"
        return f">{self.threshold_tokens / 1000:.1f}K".replace(".0K", "K")

    def to_dict(self) -> dict[str, Any]:
        return {
            "threshold_tokens": self.threshold_tokens,
            "input_per_million": self.input_per_million,
            "output_per_million": self.output_per_million,
        }


@dataclass(frozen=True)
class ModelPricing:
    """单个模型的 token 价格（每百万 token）"""

    input_per_million: float
    output_per_million: float
    tiers: tuple[PricingTier, ...] = ()  # 按 threshold 升序
    cache_read_multiplier: float | None = None  # 未配置时按默认 10% 计
    batch_multiplier: float | None = None  # 未配置（或为 0）表示无批处理折扣
    batch_cache_rule: BatchCacheRule = BatchCacheRule.STACK
    batch_grounding_ok: bool = False
    # 仅作为元数据保存，不参与计费
    audio_input_per_million: float | None = None

    @property
    def effective_cache_read_multiplier(self) -> float:
        if self.cache_read_multiplier is None:
            return PricingDefaults.DEFAULT_CACHE_READ_MULTIPLIER
        return self.cache_read_multiplier

    @property
    def supports_batch(self) -> bool:
        return bool(self.batch_multiplier)

    def select_tier(self, standard_input_tokens: int) -> PricingTier | None:
        """
        选择适用阶梯

        返回 threshold <= token 数的最高阶梯；恰好等于 threshold 也算进入该阶梯。
        """
        applied: PricingTier | None = None
        for tier in self.tiers:
            if standard_input_tokens >= tier.threshold_tokens:
                applied = tier
        return applied

    def rates_for(self, standard_input_tokens: int) -> tuple[float, float]:
        """返回 (输入单价, 输出单价)，无适用阶梯时使用基础价格"""
        tier = self.select_tier(standard_input_tokens)
        if tier is None:
            return self.input_per_million, self.output_per_million
        return tier.input_per_million, tier.output_per_million

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "input_per_million": self.input_per_million,
            "output_per_million": self.output_per_million,
            "batch_cache_rule": self.batch_cache_rule.value,
            "batch_grounding_ok": self.batch_grounding_ok,
        }
        if self.tiers:
            result["tiers"] = [t.to_dict() for t in self.tiers]
        if self.cache_read_multiplier is not None:
            result["cache_read_multiplier"] = self.cache_read_multiplier
        if self.batch_multiplier is not None:
            result["batch_multiplier"] = self.batch_multiplier
        if self.audio_input_per_million is not None:
            result["audio_input_per_million"] = self.audio_input_per_million
        return result


@dataclass(frozen=True)
class GroundingPricing:
    """Grounding 价格（每千次查询）"""

    per_thousand_queries: float
    billing_model: GroundingBillingModel = GroundingBillingModel.PER_QUERY


@dataclass(frozen=True)
class ImageModelPricing:
    """图片生成价格（每张）"""

    price_per_image: float


@dataclass(frozen=True)
class CreditPricing:
    """
    积分计费

    multipliers 中值为 0 的倍率视为"未配置"，按基础积分计费，而不是免费。
    """

    base_cost_per_request: int
    multipliers: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SubscriptionTier:
    """订阅套餐（仅元数据）"""

    credits: int
    price_usd: float


@dataclass
class PricingMetadata:
    """定价来源与更新信息"""

    updated: date | None = None
    source: str | None = None
    source_urls: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


@dataclass
class ProviderPricing:
    """单个厂商的完整定价配置"""

    provider: str
    billing_type: str | None = None
    models: dict[str, ModelPricing] = field(default_factory=dict)
    image_models: dict[str, ImageModelPricing] = field(default_factory=dict)
    grounding: dict[str, GroundingPricing] = field(default_factory=dict)
    credit_pricing: CreditPricing | None = None
    subscription_tiers: dict[str, SubscriptionTier] = field(default_factory=dict)
    metadata: PricingMetadata = field(default_factory=PricingMetadata)

    def deep_copy(self) -> ProviderPricing:
        """深拷贝，防止调用方通过返回值修改目录内部状态"""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class Cost:
    """简单 token 计费结果"""

    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0
    found: bool = True  # False 表示模型不在定价目录中（区别于合法的 0 费用）

    def format(self) -> str:
        """可读的费用明细"""
        if not self.found:
            return f"Cost: unknown (model {self.model!r} not in pricing data)"
        return (
            f"Input: ${self.input_cost:.4f} ({self.input_tokens} tokens) | "
            f"Output: ${self.output_cost:.4f} ({self.output_tokens} tokens) | "
            f"Total: ${self.total_cost:.4f}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "input_cost": self.input_cost,
            "output_cost": self.output_cost,
            "total_cost": self.total_cost,
            "found": self.found,
        }


@dataclass(frozen=True)
class CostDetails:
    """
    详细计费结果

    warnings 是对成功结果的附加说明（例如费用被排除），调用方需要严格准确时必须检查。
    """

    standard_input_cost: float = 0.0
    cached_input_cost: float = 0.0
    output_cost: float = 0.0
    thinking_cost: float = 0.0  # 按输出单价计，单独列出，不并入 output_cost
    grounding_cost: float = 0.0
    tier_applied: str = "standard"
    batch_discount: float = 0.0  # 相对非批处理价格节省的金额，仅用于展示
    total_cost: float = 0.0
    batch_mode: bool = False
    warnings: tuple[str, ...] = ()
    found: bool = True

    @property
    def input_cost(self) -> float:
        """输入费用（标准 + 缓存）"""
        return self.standard_input_cost + self.cached_input_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "standard_input_cost": self.standard_input_cost,
            "cached_input_cost": self.cached_input_cost,
            "output_cost": self.output_cost,
            "thinking_cost": self.thinking_cost,
            "grounding_cost": self.grounding_cost,
            "tier_applied": self.tier_applied,
            "batch_discount": self.batch_discount,
            "total_cost": self.total_cost,
            "batch_mode": self.batch_mode,
            "warnings": list(self.warnings),
            "unknown": not self.found,
        }


@dataclass
class TokenUsage:
    """
    多维度 token 用量

    - prompt_tokens: 提示词 token
    - completion_tokens: 输出 token
    - cached_tokens: 缓存命中 token（属于输入的一部分）
    - thinking_tokens: 思考 token，按输出单价计费
    - tool_use_tokens: 工具调用 token，计入输入
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0
    thinking_tokens: int = 0
    tool_use_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "cached_tokens": self.cached_tokens,
            "thinking_tokens": self.thinking_tokens,
            "tool_use_tokens": self.tool_use_tokens,
        }
