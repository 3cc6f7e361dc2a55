"""
默认定价目录

进程内只构建一次（首次访问时），构建结果或构建错误都会被缓存：
- get_default_catalog / get_default_calculator: 构建失败时抛出缓存的错误
- init_error: 返回缓存的错误，未失败时为 None
- 便捷函数（calculate_cost 等）: 构建失败时降级为空目录，返回"未找到"结果
"""

from __future__ import annotations

import threading

from costbook.core.exceptions import PricingConfigError
from costbook.core.logger import logger
from costbook.services.pricing.calculator import CostCalculator
from costbook.services.pricing.catalog import PricingCatalog
from costbook.services.pricing.loader import load_catalog
from costbook.services.pricing.models import ModelPricing

_lock = threading.Lock()
_calculator: CostCalculator | None = None
_error: PricingConfigError | None = None


def _ensure_initialized() -> CostCalculator:
    """首次调用时构建默认目录，之后返回缓存的计算器（构建失败时为空目录）"""
    global _calculator, _error
    with _lock:
        if _calculator is None:
            try:
                catalog = load_catalog()
            except PricingConfigError as exc:
                logger.error(f"默认定价目录构建失败: {exc}")
                _error = exc
                catalog = PricingCatalog.empty()
            _calculator = CostCalculator(catalog)
        return _calculator


def init_error() -> PricingConfigError | None:
    """默认目录的构建错误"""
    _ensure_initialized()
    return _error


def get_default_catalog() -> PricingCatalog:
    """
    默认定价目录

    Raises:
        PricingConfigError: 默认目录构建失败
    """
    return get_default_calculator().catalog


def get_default_calculator() -> CostCalculator:
    calculator = _ensure_initialized()
    if _error is not None:
        raise _error
    return calculator


def reset_default_catalog() -> None:
    """清除缓存，下次访问时重新构建（测试用）"""
    global _calculator, _error
    with _lock:
        _calculator = None
        _error = None


def _calculator_or_empty() -> CostCalculator:
    return _ensure_initialized()


# =========================================================================
# 便捷函数
# =========================================================================


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """总费用（美元），模型未找到时为 0"""
    return _calculator_or_empty().calculate(model, input_tokens, output_tokens).total_cost


def calculate_grounding_cost(model: str, query_count: int) -> float:
    return _calculator_or_empty().calculate_grounding(model, query_count)


def calculate_credit_cost(provider: str, variant: str = "base") -> int:
    """积分消耗，厂商未知时为 0"""
    credits, _ = _calculator_or_empty().calculate_credit(provider, variant)
    return credits


def get_pricing(model: str) -> tuple[ModelPricing | None, bool]:
    return _calculator_or_empty().get_pricing(model)


def list_providers() -> list[str]:
    return _calculator_or_empty().catalog.list_providers()


def model_count() -> int:
    return _calculator_or_empty().catalog.model_count()


def provider_count() -> int:
    return _calculator_or_empty().catalog.provider_count()


__all__ = [
    "calculate_cost",
    "calculate_credit_cost",
    "calculate_grounding_cost",
    "get_default_calculator",
    "get_default_catalog",
    "get_pricing",
    "init_error",
    "list_providers",
    "model_count",
    "provider_count",
    "reset_default_catalog",
]
