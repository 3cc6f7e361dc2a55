"""
定价计算常量

集中定义计费换算单位、默认折扣与配置校验上限，供校验器与计算器共用。
"""

import sys


class PricingDefaults:
    """计费换算与默认折扣"""

    # 单价按每百万 token 计
    TOKENS_PER_MILLION = 1_000_000
    # Grounding 单价按每千次查询计
    QUERIES_PER_THOUSAND = 1_000
    # 未配置 cache_read_multiplier 时，缓存命中 token 按 10% 计费
    DEFAULT_CACHE_READ_MULTIPLIER = 0.10
    # 金额统一保留 6 位小数
    COST_PRECISION = 6
    # 前缀匹配允许的边界字符
    BOUNDARY_DELIMITERS = frozenset("-_/.")
    # 整数运算饱和上限
    MAX_INT = sys.maxsize


class ValidationDefaults:
    """配置校验上限（用于拦截小数点错位等配置错误）"""

    MAX_TOKEN_RATE = 10_000.0  # 每百万 token
    MAX_GROUNDING_RATE = 1_000.0  # 每千次查询
    MAX_IMAGE_PRICE = 100.0  # 每张图片


class ConfigFileDefaults:
    """定价配置文件约定"""

    FILE_SUFFIX = "_pricing.json"
    BUNDLED_PACKAGE = "costbook.configs"
