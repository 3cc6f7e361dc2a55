"""
数值安全层

- to_decimal: 统一转换为 Decimal，避免二进制浮点误差在计算链中累积
- multiply_checked / add_checked: 带溢出检测的整数运算，溢出时饱和到上/下限
- round_cost: 金额统一保留 6 位小数（ROUND_HALF_UP），保证重复计算结果可比较
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from costbook.config.constants import PricingDefaults

DECIMAL_CONTEXT_PRECISION = 28

MAX_INT = PricingDefaults.MAX_INT
MIN_INT = -PricingDefaults.MAX_INT - 1

_COST_QUANTUM = Decimal(1).scaleb(-PricingDefaults.COST_PRECISION)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(str(value).strip())


def multiply_checked(a: int, b: int, max_value: int = MAX_INT) -> tuple[int, bool]:
    """
    带溢出检测的整数乘法

    先比较 |a| 与 max_value // |b|，判断乘积是否越界，越界时不做乘法，
    直接返回饱和值（同号取上限，异号取下限）。

    Returns:
        (结果, 是否溢出)
    """
    if a == 0 or b == 0:
        return 0, False
    if abs(a) > max_value // abs(b):
        if (a > 0) == (b > 0):
            return max_value, True
        return -max_value - 1, True
    return a * b, False


def add_checked(a: int, b: int, max_value: int = MAX_INT) -> tuple[int, bool]:
    """
    带溢出检测的整数加法

    Returns:
        (结果, 是否溢出)；溢出时返回上限或下限
    """
    min_value = -max_value - 1
    if b > 0 and a > max_value - b:
        return max_value, True
    if b < 0 and a < min_value - b:
        return min_value, True
    return a + b, False


def round_cost(value: Any) -> float:
    """金额四舍五入到固定精度并转为 float"""
    return float(to_decimal(value).quantize(_COST_QUANTUM, rounding=ROUND_HALF_UP))


def clamp_non_negative(value: int) -> int:
    """负数钳制为 0"""
    return value if value > 0 else 0


__all__ = [
    "DECIMAL_CONTEXT_PRECISION",
    "MAX_INT",
    "MIN_INT",
    "add_checked",
    "clamp_non_negative",
    "multiply_checked",
    "round_cost",
    "to_decimal",
]
