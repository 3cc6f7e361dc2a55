"""
定价模块

由厂商定价配置构建只读目录，按模型标识符计算请求费用：
- token 计费：输入/输出、缓存 token、阶梯价格、批处理折扣（stack / cache_precedence 两种叠加规则）
- 多维度用量：工具调用 token、思考 token、grounding 搜索
- 非 token 计费：图片按张、积分按请求

使用方式:
    from costbook.services.pricing import CostCalculator, PricingCatalog, load_records_from_dir

    # 1. 构建目录（任何一条记录不合法都会抛出 PricingValidationError）
    catalog = PricingCatalog.from_records(load_records_from_dir("configs/"))

    # 2. 计算费用
    calculator = CostCalculator(catalog)
    details = calculator.calculate_with_options("claude-sonnet-4", 10000, 2000, cached_tokens=5000)

    # 3. 获取费用明细
    print(details.total_cost)
    print(details.warnings)
"""

from costbook.services.pricing.calculator import (
    BATCH_GROUNDING_WARNING,
    TOKEN_OVERFLOW_WARNING,
    CostCalculator,
)
from costbook.services.pricing.catalog import PricingCatalog
from costbook.services.pricing.loader import load_bundled_records, load_catalog, load_records_from_dir
from costbook.services.pricing.models import (
    BatchCacheRule,
    Cost,
    CostDetails,
    CreditPricing,
    GroundingBillingModel,
    GroundingPricing,
    ImageModelPricing,
    ModelPricing,
    PricingMetadata,
    PricingTier,
    ProviderPricing,
    SubscriptionTier,
    TokenUsage,
)
from costbook.services.pricing.registry import (
    calculate_cost,
    calculate_credit_cost,
    calculate_grounding_cost,
    get_default_calculator,
    get_default_catalog,
    get_pricing,
    init_error,
    list_providers,
    model_count,
    provider_count,
    reset_default_catalog,
)
from costbook.services.pricing.usage_mapper import (
    UsageMapper,
    calculate_gemini_response_cost,
    count_grounding_queries,
    parse_gemini_response,
)
from costbook.services.pricing.validator import ValidationLimits, validate_provider_record

__all__ = [
    # 数据模型
    "BatchCacheRule",
    "Cost",
    "CostDetails",
    "CreditPricing",
    "GroundingBillingModel",
    "GroundingPricing",
    "ImageModelPricing",
    "ModelPricing",
    "PricingMetadata",
    "PricingTier",
    "ProviderPricing",
    "SubscriptionTier",
    "TokenUsage",
    # 目录与加载
    "PricingCatalog",
    "ValidationLimits",
    "validate_provider_record",
    "load_bundled_records",
    "load_catalog",
    "load_records_from_dir",
    # 计算器
    "CostCalculator",
    "BATCH_GROUNDING_WARNING",
    "TOKEN_OVERFLOW_WARNING",
    # 映射器
    "UsageMapper",
    "calculate_gemini_response_cost",
    "count_grounding_queries",
    "parse_gemini_response",
    # 默认目录
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
