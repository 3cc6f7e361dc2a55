"""
定价配置校验器

在记录进入定价目录之前拦截结构或取值非法的配置。任何一条失败都会抛出
PricingValidationError（携带来源、字段路径、取值与失败原因），由目录构建方
中止整个构建，不会发布部分目录。

校验规则：
- 模型：输入/输出单价 >= 0 且不超过上限；阶梯 threshold >= 0，阶梯单价同样受限；
  cache_read_multiplier / batch_multiplier 取值 [0, 1]；batch_cache_rule 必须为已知枚举
- Grounding：单价 >= 0 且不超过 grounding 上限；billing_model 必须为已知枚举
- 积分：基础积分与各倍率 >= 0
- 图片：单价 >= 0 且不超过图片上限
- 元数据：updated 必须是 YYYY-MM-DD 格式的合法日期
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import PurePath
from typing import Any

from pydantic import ValidationError

from costbook.config.constants import ConfigFileDefaults, ValidationDefaults
from costbook.core.exceptions import PricingValidationError, ValidationFailure
from costbook.core.logger import logger
from costbook.models.pricing_file import (
    ProviderPricingFile,
    RawGroundingPricing,
    RawModelPricing,
    RawPricingMetadata,
    RawPricingRecord,
)
from costbook.services.pricing.models import (
    BatchCacheRule,
    CreditPricing,
    GroundingBillingModel,
    GroundingPricing,
    ImageModelPricing,
    ModelPricing,
    PricingMetadata,
    PricingTier,
    ProviderPricing,
    SubscriptionTier,
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ValidationLimits:
    """配置校验上限"""

    max_token_rate: float = ValidationDefaults.MAX_TOKEN_RATE
    max_grounding_rate: float = ValidationDefaults.MAX_GROUNDING_RATE
    max_image_price: float = ValidationDefaults.MAX_IMAGE_PRICE

    @classmethod
    def from_settings(cls) -> ValidationLimits:
        from costbook.config.settings import get_settings

        settings = get_settings()
        return cls(
            max_token_rate=settings.max_token_rate,
            max_grounding_rate=settings.max_grounding_rate,
            max_image_price=settings.max_image_price,
        )


def infer_provider_name(source: str) -> str:
    """从 "<provider>_pricing.json" 形式的来源名推断厂商名"""
    name = PurePath(source).name
    suffix = ConfigFileDefaults.FILE_SUFFIX
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return PurePath(name).stem


class _RecordValidator:
    """单条记录的校验上下文"""

    def __init__(self, source: str, limits: ValidationLimits):
        self.source = source
        self.limits = limits

    def fail(
        self,
        field: str,
        value: Any,
        reason: ValidationFailure,
        detail: str | None = None,
    ) -> PricingValidationError:
        error = PricingValidationError(self.source, field, value, reason, detail)
        logger.error(f"定价配置校验失败: {error}")
        return error

    # ------------------------------------------------------------------
    # 通用规则
    # ------------------------------------------------------------------

    def check_amount(self, field: str, value: float, ceiling: float | None = None) -> float:
        if not math.isfinite(value):
            raise self.fail(field, value, ValidationFailure.MALFORMED_RECORD, "value must be finite")
        if value < 0:
            raise self.fail(field, value, ValidationFailure.NEGATIVE_VALUE)
        if ceiling is not None and value > ceiling:
            raise self.fail(
                field,
                value,
                ValidationFailure.EXCEEDS_CEILING,
                f"suspiciously high price (max {ceiling})",
            )
        return value

    def check_multiplier(self, field: str, value: float | None) -> float | None:
        if value is None:
            return None
        if not math.isfinite(value) or value < 0 or value > 1.0:
            raise self.fail(
                field,
                value,
                ValidationFailure.MULTIPLIER_OUT_OF_RANGE,
                "multiplier must be within [0, 1]; a value above 1.0 would increase cost",
            )
        return value

    def check_count(self, field: str, value: int) -> int:
        if value < 0:
            raise self.fail(field, value, ValidationFailure.NEGATIVE_VALUE)
        return value

    # ------------------------------------------------------------------
    # 各类条目
    # ------------------------------------------------------------------

    def model(self, name: str, raw: RawModelPricing) -> ModelPricing:
        prefix = f"models.{name}"
        ceiling = self.limits.max_token_rate
        input_rate = self.check_amount(f"{prefix}.input_per_million", raw.input_per_million, ceiling)
        output_rate = self.check_amount(f"{prefix}.output_per_million", raw.output_per_million, ceiling)

        tiers: list[PricingTier] = []
        for idx, tier in enumerate(raw.tiers):
            tier_prefix = f"{prefix}.tiers[{idx}]"
            tiers.append(
                PricingTier(
                    threshold_tokens=self.check_count(f"{tier_prefix}.threshold_tokens", tier.threshold_tokens),
                    input_per_million=self.check_amount(
                        f"{tier_prefix}.input_per_million", tier.input_per_million, ceiling
                    ),
                    output_per_million=self.check_amount(
                        f"{tier_prefix}.output_per_million", tier.output_per_million, ceiling
                    ),
                )
            )
        tiers.sort(key=lambda t: t.threshold_tokens)

        rule = BatchCacheRule.STACK
        if raw.batch_cache_rule:
            try:
                rule = BatchCacheRule(raw.batch_cache_rule)
            except ValueError:
                raise self.fail(
                    f"{prefix}.batch_cache_rule",
                    raw.batch_cache_rule,
                    ValidationFailure.INVALID_BATCH_CACHE_RULE,
                    f"must be {BatchCacheRule.STACK.value!r} or {BatchCacheRule.CACHE_PRECEDENCE.value!r}",
                ) from None

        audio_rate = raw.audio_input_per_million
        if audio_rate is not None:
            audio_rate = self.check_amount(f"{prefix}.audio_input_per_million", audio_rate, ceiling)

        return ModelPricing(
            input_per_million=input_rate,
            output_per_million=output_rate,
            tiers=tuple(tiers),
            cache_read_multiplier=self.check_multiplier(
                f"{prefix}.cache_read_multiplier", raw.cache_read_multiplier
            ),
            batch_multiplier=self.check_multiplier(f"{prefix}.batch_multiplier", raw.batch_multiplier),
            batch_cache_rule=rule,
            batch_grounding_ok=raw.batch_grounding_ok,
            audio_input_per_million=audio_rate,
        )

    def grounding(self, prefix_key: str, raw: RawGroundingPricing) -> GroundingPricing:
        prefix = f"grounding.{prefix_key}"
        rate = self.check_amount(
            f"{prefix}.per_thousand_queries", raw.per_thousand_queries, self.limits.max_grounding_rate
        )
        billing_model = GroundingBillingModel.PER_QUERY
        if raw.billing_model:
            try:
                billing_model = GroundingBillingModel(raw.billing_model)
            except ValueError:
                raise self.fail(
                    f"{prefix}.billing_model",
                    raw.billing_model,
                    ValidationFailure.INVALID_BILLING_MODEL,
                    'must be "per_query" or "per_prompt"',
                ) from None
        return GroundingPricing(per_thousand_queries=rate, billing_model=billing_model)

    def metadata(self, raw: RawPricingMetadata) -> PricingMetadata:
        updated: date | None = None
        if raw.updated:
            if not _DATE_RE.match(raw.updated):
                raise self.fail("metadata.updated", raw.updated, ValidationFailure.INVALID_DATE, "expected YYYY-MM-DD")
            try:
                updated = datetime.strptime(raw.updated, "%Y-%m-%d").date()
            except ValueError as exc:
                raise self.fail("metadata.updated", raw.updated, ValidationFailure.INVALID_DATE, str(exc)) from exc
        return PricingMetadata(
            updated=updated,
            source=raw.source,
            source_urls=list(raw.source_urls),
            notes=list(raw.notes),
        )

    def provider(self, raw: ProviderPricingFile) -> ProviderPricing:
        name = raw.provider or infer_provider_name(self.source)
        if not name:
            raise self.fail("provider", raw.provider, ValidationFailure.MALFORMED_RECORD, "provider name is empty")

        models = {key: self.model(key, value) for key, value in raw.models.items()}
        grounding = {key: self.grounding(key, value) for key, value in raw.grounding.items()}
        image_models = {
            key: ImageModelPricing(
                price_per_image=self.check_amount(
                    f"image_models.{key}.price_per_image", value.price_per_image, self.limits.max_image_price
                )
            )
            for key, value in raw.image_models.items()
        }

        credit: CreditPricing | None = None
        if raw.credit_pricing is not None:
            base = self.check_count("credit_pricing.base_cost_per_request", raw.credit_pricing.base_cost_per_request)
            multipliers = {
                key: self.check_count(f"credit_pricing.multipliers.{key}", value)
                for key, value in raw.credit_pricing.multipliers.items()
            }
            credit = CreditPricing(base_cost_per_request=base, multipliers=multipliers)

        subscriptions = {
            key: SubscriptionTier(
                credits=self.check_count(f"subscription_tiers.{key}.credits", value.credits),
                price_usd=self.check_amount(f"subscription_tiers.{key}.price_usd", value.price_usd),
            )
            for key, value in raw.subscription_tiers.items()
        }

        return ProviderPricing(
            provider=name,
            billing_type=raw.billing_type,
            models=models,
            image_models=image_models,
            grounding=grounding,
            credit_pricing=credit,
            subscription_tiers=subscriptions,
            metadata=self.metadata(raw.metadata),
        )


def validate_provider_record(
    record: RawPricingRecord,
    limits: ValidationLimits | None = None,
) -> ProviderPricing:
    """
    校验单条原始定价记录并转换为 ProviderPricing

    Args:
        record: 原始记录（来源名 + 反序列化后的 JSON 对象）
        limits: 校验上限，默认取自 Settings

    Returns:
        校验通过的厂商定价

    Raises:
        PricingValidationError: 第一条不合法的字段
    """
    checker = _RecordValidator(record.source, limits or ValidationLimits.from_settings())
    try:
        parsed = ProviderPricingFile.model_validate(record.data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        raise checker.fail(
            field,
            first.get("input"),
            ValidationFailure.MALFORMED_RECORD,
            first.get("msg"),
        ) from exc
    return checker.provider(parsed)


__all__ = ["ValidationLimits", "infer_provider_name", "validate_provider_record"]
