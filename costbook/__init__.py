"""costbook - LLM API 定价目录与费用计算"""

__version__ = "1.0.7"

from costbook.core.exceptions import (  # noqa: E402
    CatalogLoadError,
    CostbookError,
    PricingConfigError,
    PricingValidationError,
    UsagePayloadError,
    ValidationFailure,
)
from costbook.services.pricing import (  # noqa: E402
    Cost,
    CostCalculator,
    CostDetails,
    PricingCatalog,
    TokenUsage,
    calculate_cost,
    calculate_credit_cost,
    calculate_grounding_cost,
    get_pricing,
    init_error,
    list_providers,
    model_count,
    provider_count,
)

__all__ = [
    "__version__",
    "CatalogLoadError",
    "Cost",
    "CostCalculator",
    "CostDetails",
    "CostbookError",
    "PricingCatalog",
    "PricingConfigError",
    "PricingValidationError",
    "TokenUsage",
    "UsagePayloadError",
    "ValidationFailure",
    "calculate_cost",
    "calculate_credit_cost",
    "calculate_grounding_cost",
    "get_pricing",
    "init_error",
    "list_providers",
    "model_count",
    "provider_count",
]
