"""
定价目录

由一批原始定价记录一次性构建，构建完成后只读：
- 三张扁平查找表：模型、grounding 前缀、积分厂商（另有图片模型表）
- 模型与 grounding 前缀的长度降序索引，作为前缀匹配的基础

重名处理：记录按厂商名字母序处理，未带命名空间的 key 归属第一个注册它的厂商；
"厂商名/key" 形式的命名空间 key 总是可用。

更新定价需要构建新的目录实例并整体替换，不支持原地修改。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from costbook.core.exceptions import CatalogLoadError, PricingValidationError, ValidationFailure
from costbook.core.logger import logger
from costbook.models.pricing_file import RawPricingRecord
from costbook.services.pricing.models import (
    CreditPricing,
    GroundingPricing,
    ImageModelPricing,
    ModelPricing,
    ProviderPricing,
)
from costbook.services.pricing.resolver import PrefixResolver
from costbook.services.pricing.validator import ValidationLimits, validate_provider_record
from costbook.utils.rwlock import ReadWriteLock


def _coerce_record(record: RawPricingRecord | Mapping[str, Any], index: int) -> RawPricingRecord:
    if isinstance(record, RawPricingRecord):
        return record
    data = dict(record)
    provider = data.get("provider")
    if not provider:
        raise PricingValidationError(
            f"record[{index}]",
            "provider",
            provider,
            ValidationFailure.MALFORMED_RECORD,
            "provider name required for non-file records",
        )
    return RawPricingRecord(source=str(provider), data=data)


class PricingCatalog:
    """只读定价目录，可被多个线程并发读取"""

    def __init__(self, providers: Iterable[ProviderPricing]):
        """
        从已校验的厂商定价构建目录

        一般通过 from_records() 构建；直接调用时调用方需保证数据已校验。
        """
        self._lock = ReadWriteLock()
        with self._lock.write():
            self._build(list(providers))

    def _build(self, providers: list[ProviderPricing]) -> None:
        models: dict[str, ModelPricing] = {}
        image_models: dict[str, ImageModelPricing] = {}
        grounding: dict[str, GroundingPricing] = {}
        credits: dict[str, CreditPricing] = {}
        registry: dict[str, ProviderPricing] = {}

        for provider in sorted(providers, key=lambda p: p.provider):
            name = provider.provider
            if name in registry:
                raise PricingValidationError(
                    name,
                    "provider",
                    name,
                    ValidationFailure.DUPLICATE_PROVIDER,
                    "provider defined more than once",
                )
            provider = provider.deep_copy()
            registry[name] = provider

            for key, pricing in provider.models.items():
                models.setdefault(key, pricing)
                models[f"{name}/{key}"] = pricing
            for key, pricing in provider.image_models.items():
                image_models.setdefault(key, pricing)
                image_models[f"{name}/{key}"] = pricing
            for key, pricing in provider.grounding.items():
                grounding.setdefault(key, pricing)
                grounding[f"{name}/{key}"] = pricing
            if provider.credit_pricing is not None:
                credits[name] = provider.credit_pricing

        self._providers = registry
        self._models = PrefixResolver(models)
        self._image_models = PrefixResolver(image_models)
        self._grounding = PrefixResolver(grounding)
        self._credits = credits

    # ------------------------------------------------------------------
    # 构建
    # ------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        records: Iterable[RawPricingRecord | Mapping[str, Any]],
        limits: ValidationLimits | None = None,
    ) -> PricingCatalog:
        """
        校验原始记录并构建目录

        任何一条记录校验失败即中止，不产生部分目录。

        Args:
            records: 原始定价记录（RawPricingRecord，或带 provider 字段的字典）
            limits: 校验上限，默认取自 Settings

        Raises:
            CatalogLoadError: 输入为空
            PricingValidationError: 任一记录不合法，或厂商名重复
        """
        raw_records = [_coerce_record(r, i) for i, r in enumerate(records)]
        if not raw_records:
            raise CatalogLoadError("no pricing records provided")

        limits = limits or ValidationLimits.from_settings()
        logger.info(f"开始构建定价目录: {len(raw_records)} 条记录")
        providers = [validate_provider_record(r, limits) for r in raw_records]
        catalog = cls(providers)
        logger.info(
            f"定价目录构建完成: providers={catalog.provider_count()}, models={catalog.model_count()}"
        )
        return catalog

    @classmethod
    def empty(cls) -> PricingCatalog:
        """空目录（默认目录构建失败时的降级实例）"""
        return cls([])

    # ------------------------------------------------------------------
    # 查找
    # ------------------------------------------------------------------

    def resolve(self, identifier: str) -> tuple[ModelPricing | None, bool]:
        """解析模型标识符：精确匹配，否则最长边界前缀匹配"""
        with self._lock.read():
            return self._models.resolve(identifier)

    def resolve_grounding(self, identifier: str) -> tuple[GroundingPricing | None, bool]:
        with self._lock.read():
            return self._grounding.resolve(identifier)

    def resolve_image(self, identifier: str) -> tuple[ImageModelPricing | None, bool]:
        with self._lock.read():
            return self._image_models.resolve(identifier)

    def get_credit_pricing(self, provider: str) -> CreditPricing | None:
        with self._lock.read():
            credit = self._credits.get(provider)
            if credit is None:
                return None
            return CreditPricing(
                base_cost_per_request=credit.base_cost_per_request,
                multipliers=dict(credit.multipliers),
            )

    def get_provider(self, provider: str) -> ProviderPricing | None:
        """返回厂商定价的深拷贝"""
        with self._lock.read():
            pricing = self._providers.get(provider)
            return pricing.deep_copy() if pricing is not None else None

    # ------------------------------------------------------------------
    # 枚举
    # ------------------------------------------------------------------

    def list_providers(self) -> list[str]:
        with self._lock.read():
            return sorted(self._providers)

    def model_count(self) -> int:
        """模型 key 数量（含命名空间 key）"""
        with self._lock.read():
            return len(self._models)

    def image_model_count(self) -> int:
        with self._lock.read():
            return len(self._image_models)

    def provider_count(self) -> int:
        with self._lock.read():
            return len(self._providers)

    @property
    def model_keys(self) -> tuple[str, ...]:
        with self._lock.read():
            return self._models.keys

    @property
    def grounding_keys(self) -> tuple[str, ...]:
        with self._lock.read():
            return self._grounding.keys


__all__ = ["PricingCatalog"]
