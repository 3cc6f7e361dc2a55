"""
异常定义

两类错误：
- 构建期配置错误（PricingConfigError 及子类）：定价目录构建直接失败，不产生部分目录
- 调用方数据错误（UsagePayloadError）：仅在无法解析 usage/响应载荷时抛出

查询期的降级（模型未找到、输入钳制、溢出饱和）不抛异常，而是体现在返回结果中。
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ValidationFailure(str, Enum):
    """配置校验失败原因"""

    NEGATIVE_VALUE = "negative_value"
    EXCEEDS_CEILING = "exceeds_ceiling"
    MULTIPLIER_OUT_OF_RANGE = "multiplier_out_of_range"
    INVALID_BATCH_CACHE_RULE = "invalid_batch_cache_rule"
    INVALID_BILLING_MODEL = "invalid_billing_model"
    INVALID_DATE = "invalid_date"
    DUPLICATE_PROVIDER = "duplicate_provider"
    MALFORMED_RECORD = "malformed_record"


class CostbookError(Exception):
    """基础异常"""


class PricingConfigError(CostbookError):
    """定价配置错误（构建期，致命）"""


class PricingValidationError(PricingConfigError, ValueError):
    """单条定价配置未通过校验"""

    def __init__(
        self,
        source: str,
        field: str,
        value: Any,
        reason: ValidationFailure,
        detail: str | None = None,
    ):
        self.source = source
        self.field = field
        self.value = value
        self.reason = reason
        message = f"{source}: {field} has {reason.value.replace('_', ' ')} ({value!r})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CatalogLoadError(PricingConfigError):
    """定价配置无法读取、解析，或输入为空"""


class UsagePayloadError(CostbookError, ValueError):
    """usage / 响应载荷无法解析"""


__all__ = [
    "CatalogLoadError",
    "CostbookError",
    "PricingConfigError",
    "PricingValidationError",
    "UsagePayloadError",
    "ValidationFailure",
]
