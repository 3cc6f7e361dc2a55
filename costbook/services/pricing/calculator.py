"""
费用计算器

基于只读定价目录计算请求费用：
- calculate: 简单 input/output 计费
- calculate_with_options: 考虑缓存 token、阶梯价格与批处理折扣
- calculate_usage: 多维度用量（工具调用、思考 token、grounding）
- calculate_grounding / calculate_image / calculate_credit: 非 token 计费

所有金额在 Decimal 中计算，结果统一保留 6 位小数。
调用方传入的异常数值（负数、缓存 token 超过输入）会被截断而不是报错；
模型未找到时返回 found=False 的结果，与合法的 0 费用区分。
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from costbook.config.constants import PricingDefaults
from costbook.core.logger import logger
from costbook.services.pricing.catalog import PricingCatalog
from costbook.services.pricing.models import (
    BatchCacheRule,
    Cost,
    CostDetails,
    GroundingBillingModel,
    ModelPricing,
    TokenUsage,
)
from costbook.services.pricing.precision import (
    add_checked,
    clamp_non_negative,
    multiply_checked,
    round_cost,
    to_decimal,
)

TOKEN_OVERFLOW_WARNING = "token count overflow detected - using clamped value"
BATCH_GROUNDING_WARNING = "grounding/search not supported in batch mode - cost excluded"

_PER_MILLION = Decimal(PricingDefaults.TOKENS_PER_MILLION)
_PER_THOUSAND = Decimal(PricingDefaults.QUERIES_PER_THOUSAND)
_ONE = Decimal(1)


@dataclass
class _TokenCosts:
    """未取整的 token 费用分项"""

    standard_input: Decimal
    cached_input: Decimal
    output: Decimal
    thinking: Decimal
    batch_discount: Decimal
    tier_applied: str

    @property
    def total(self) -> Decimal:
        return self.standard_input + self.cached_input + self.output + self.thinking


def _token_costs(
    pricing: ModelPricing,
    input_tokens: int,
    cached_tokens: int,
    output_tokens: int,
    thinking_tokens: int,
    batch_mode: bool,
) -> _TokenCosts:
    """
    按缓存/批处理规则拆分 token 费用

    input_tokens 为总输入（含缓存），cached_tokens 需已截断到不超过 input_tokens。
    """
    standard_tokens = input_tokens - cached_tokens
    tier = pricing.select_tier(standard_tokens)
    input_rate, output_rate = pricing.rates_for(standard_tokens)

    unit_input = to_decimal(input_rate) / _PER_MILLION
    unit_output = to_decimal(output_rate) / _PER_MILLION
    cache_mult = to_decimal(pricing.effective_cache_read_multiplier)
    batch_mult = to_decimal(pricing.batch_multiplier) if batch_mode and pricing.supports_batch else _ONE

    standard_full = Decimal(standard_tokens) * unit_input
    cached_full = Decimal(cached_tokens) * unit_input * cache_mult
    output_full = Decimal(output_tokens) * unit_output
    thinking_full = Decimal(thinking_tokens) * unit_output

    # 缓存优先规则下，缓存 token 不享受批处理折扣
    cached_batch_mult = _ONE if pricing.batch_cache_rule is BatchCacheRule.CACHE_PRECEDENCE else batch_mult

    costs = _TokenCosts(
        standard_input=standard_full * batch_mult,
        cached_input=cached_full * cached_batch_mult,
        output=output_full * batch_mult,
        thinking=thinking_full * batch_mult,
        batch_discount=Decimal(0),
        tier_applied=tier.label if tier is not None else "standard",
    )
    costs.batch_discount = (standard_full + cached_full + output_full + thinking_full) - costs.total
    return costs


class CostCalculator:
    """
    费用计算器

    只持有目录引用，本身无状态；多个线程可共享同一实例。
    每次目录访问都独立获取读锁，方法内部不嵌套加锁。

    示例:
        calculator = CostCalculator(catalog)
        cost = calculator.calculate("gpt-4o-2024-08-06", 1000, 500)
        details = calculator.calculate_with_options("claude-sonnet-4", 10000, 2000,
                                                    cached_tokens=5000, batch_mode=True)
    """

    def __init__(self, catalog: PricingCatalog):
        self._catalog = catalog

    @property
    def catalog(self) -> PricingCatalog:
        return self._catalog

    def get_pricing(self, identifier: str) -> tuple[ModelPricing | None, bool]:
        return self._catalog.resolve(identifier)

    # ------------------------------------------------------------------
    # token 计费
    # ------------------------------------------------------------------

    def calculate(self, identifier: str, input_tokens: int, output_tokens: int) -> Cost:
        """
        简单 token 计费

        Args:
            identifier: 模型标识符（支持带版本/日期后缀）
            input_tokens: 输入 token 数，负数按 0 计
            output_tokens: 输出 token 数，负数按 0 计

        Returns:
            Cost；模型未找到时 found=False，金额均为 0
        """
        input_tokens = clamp_non_negative(input_tokens)
        output_tokens = clamp_non_negative(output_tokens)

        pricing, found = self._catalog.resolve(identifier)
        if not found or pricing is None:
            logger.debug(f"未找到模型定价: {identifier}")
            return Cost(
                model=identifier,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                found=False,
            )

        input_cost = Decimal(input_tokens) * to_decimal(pricing.input_per_million) / _PER_MILLION
        output_cost = Decimal(output_tokens) * to_decimal(pricing.output_per_million) / _PER_MILLION
        return Cost(
            model=identifier,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost=round_cost(input_cost),
            output_cost=round_cost(output_cost),
            total_cost=round_cost(input_cost + output_cost),
        )

    def calculate_with_options(
        self,
        identifier: str,
        input_tokens: int,
        output_tokens: int,
        cached_tokens: int = 0,
        batch_mode: bool = False,
    ) -> CostDetails:
        """
        考虑缓存与批处理的 token 计费

        cached_tokens 属于 input_tokens 的一部分，超出部分会被截断；
        阶梯价格按非缓存输入 token 数选择。
        """
        input_tokens = clamp_non_negative(input_tokens)
        output_tokens = clamp_non_negative(output_tokens)
        cached_tokens = clamp_non_negative(cached_tokens)
        if cached_tokens > input_tokens:
            logger.debug(f"缓存 token 超过输入 token，已截断: cached={cached_tokens}, input={input_tokens}")
            cached_tokens = input_tokens

        pricing, found = self._catalog.resolve(identifier)
        if not found or pricing is None:
            logger.debug(f"未找到模型定价: {identifier}")
            return CostDetails(batch_mode=batch_mode, found=False)

        costs = _token_costs(pricing, input_tokens, cached_tokens, output_tokens, 0, batch_mode)
        return CostDetails(
            standard_input_cost=round_cost(costs.standard_input),
            cached_input_cost=round_cost(costs.cached_input),
            output_cost=round_cost(costs.output),
            tier_applied=costs.tier_applied,
            batch_discount=round_cost(costs.batch_discount),
            total_cost=round_cost(costs.total),
            batch_mode=batch_mode,
        )

    def calculate_usage(
        self,
        identifier: str,
        usage: TokenUsage,
        grounding_queries: int = 0,
        batch_mode: bool = False,
    ) -> CostDetails:
        """
        多维度用量计费

        - 总输入 = prompt_tokens + tool_use_tokens（溢出时饱和并附加警告）
        - thinking_tokens 按输出单价计费，单独列为 thinking_cost
        - grounding_queries > 0 时按 grounding 前缀匹配计费；
          批处理模式下模型不支持 grounding 时，grounding 费用不计入总价并附加警告

        Returns:
            CostDetails；调用方需要严格准确时必须检查 warnings
        """
        warnings: list[str] = []

        prompt_tokens = clamp_non_negative(usage.prompt_tokens)
        tool_use_tokens = clamp_non_negative(usage.tool_use_tokens)
        output_tokens = clamp_non_negative(usage.completion_tokens)
        thinking_tokens = clamp_non_negative(usage.thinking_tokens)
        cached_tokens = clamp_non_negative(usage.cached_tokens)
        grounding_queries = clamp_non_negative(grounding_queries)

        input_tokens, overflowed = add_checked(prompt_tokens, tool_use_tokens)
        if overflowed:
            logger.warning(f"token 计数溢出，已截断: prompt={prompt_tokens}, tool_use={tool_use_tokens}")
            warnings.append(TOKEN_OVERFLOW_WARNING)
        if cached_tokens > input_tokens:
            logger.debug(f"缓存 token 超过输入 token，已截断: cached={cached_tokens}, input={input_tokens}")
            cached_tokens = input_tokens

        pricing, found = self._catalog.resolve(identifier)
        if not found or pricing is None:
            logger.debug(f"未找到模型定价: {identifier}")
            return CostDetails(batch_mode=batch_mode, warnings=tuple(warnings), found=False)

        costs = _token_costs(pricing, input_tokens, cached_tokens, output_tokens, thinking_tokens, batch_mode)

        grounding_cost = Decimal(0)
        if grounding_queries > 0:
            if batch_mode and not pricing.batch_grounding_ok:
                logger.warning(f"批处理模式不支持 grounding，费用未计入: model={identifier}")
                warnings.append(BATCH_GROUNDING_WARNING)
            else:
                grounding_cost = self._grounding_cost(identifier, grounding_queries)

        return CostDetails(
            standard_input_cost=round_cost(costs.standard_input),
            cached_input_cost=round_cost(costs.cached_input),
            output_cost=round_cost(costs.output),
            thinking_cost=round_cost(costs.thinking),
            grounding_cost=round_cost(grounding_cost),
            tier_applied=costs.tier_applied,
            batch_discount=round_cost(costs.batch_discount),
            total_cost=round_cost(costs.total + grounding_cost),
            batch_mode=batch_mode,
            warnings=tuple(warnings),
        )

    # ------------------------------------------------------------------
    # 非 token 计费
    # ------------------------------------------------------------------

    def _grounding_cost(self, identifier: str, query_count: int) -> Decimal:
        grounding, found = self._catalog.resolve_grounding(identifier)
        if not found or grounding is None:
            logger.debug(f"未找到 grounding 定价: {identifier}")
            return Decimal(0)
        if grounding.billing_model is GroundingBillingModel.PER_PROMPT:
            query_count = 1
        return Decimal(query_count) * to_decimal(grounding.per_thousand_queries) / _PER_THOUSAND

    def calculate_grounding(self, identifier: str, query_count: int) -> float:
        """
        Grounding 费用

        per_prompt 计费的模型只要有查询即按一次计；未找到定价或无查询时返回 0。
        """
        query_count = clamp_non_negative(query_count)
        if query_count == 0:
            return 0.0
        return round_cost(self._grounding_cost(identifier, query_count))

    def calculate_image(self, identifier: str, image_count: int) -> tuple[float, bool]:
        """图片生成费用，返回 (费用, 是否找到定价)"""
        pricing, found = self._catalog.resolve_image(identifier)
        if not found or pricing is None:
            logger.debug(f"未找到图片模型定价: {identifier}")
            return 0.0, False
        image_count = clamp_non_negative(image_count)
        return round_cost(Decimal(image_count) * to_decimal(pricing.price_per_image)), True

    def calculate_credit(self, provider: str, variant: str = "base") -> tuple[int, bool]:
        """
        积分计费

        - 厂商未知: (0, False)
        - variant 为 "base"、未配置或倍率为 0: 返回基础积分
        - 乘法溢出: 饱和到最大整数并记录警告

        Returns:
            (积分, 是否找到厂商)
        """
        credit = self._catalog.get_credit_pricing(provider)
        if credit is None:
            logger.debug(f"未找到积分定价: {provider}")
            return 0, False

        base = credit.base_cost_per_request
        if variant == "base":
            return base, True
        multiplier = credit.multipliers.get(variant, 0)
        if multiplier == 0:
            return base, True

        credits, overflowed = multiply_checked(base, multiplier)
        if overflowed:
            logger.warning(
                f"积分计算溢出，已饱和到上限: provider={provider}, variant={variant}, "
                f"base={base}, multiplier={multiplier}"
            )
        return credits, True


__all__ = [
    "BATCH_GROUNDING_WARNING",
    "TOKEN_OVERFLOW_WARNING",
    "CostCalculator",
]
