"""测试公共 fixture：以内存记录构建的小型定价目录"""

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from costbook.services.pricing import CostCalculator, PricingCatalog

SAMPLE_RECORDS: list[dict[str, Any]] = [
    {
        "provider": "anthropic",
        "billing_type": "token",
        "models": {
            "claude-opus-4-5": {
                "input_per_million": 5.0,
                "output_per_million": 25.0,
                "cache_read_multiplier": 0.10,
                "batch_multiplier": 0.50,
                "batch_cache_rule": "stack",
            },
            "claude-sonnet-4": {
                "input_per_million": 3.0,
                "output_per_million": 15.0,
                "cache_read_multiplier": 0.10,
                "batch_multiplier": 0.50,
            },
        },
        "metadata": {"updated": "2025-12-01", "source_urls": ["https://www.anthropic.com/pricing"]},
    },
    {
        "provider": "google",
        "billing_type": "token",
        "models": {
            "gemini-3-pro-preview": {
                "input_per_million": 2.0,
                "output_per_million": 12.0,
                "cache_read_multiplier": 0.10,
                "batch_multiplier": 0.50,
                "batch_cache_rule": "cache_precedence",
                "tiers": [{"threshold_tokens": 200000, "input_per_million": 4.0, "output_per_million": 18.0}],
            },
            "gemini-2.5-flash": {
                "input_per_million": 0.30,
                "output_per_million": 2.50,
                "cache_read_multiplier": 0.10,
                "batch_multiplier": 0.50,
                "batch_cache_rule": "cache_precedence",
            },
        },
        "image_models": {"imagen-4": {"price_per_image": 0.04}},
        "grounding": {
            "gemini-3": {"per_thousand_queries": 14.0, "billing_model": "per_query"},
            "gemini-2.5": {"per_thousand_queries": 35.0, "billing_model": "per_prompt"},
        },
        "metadata": {"updated": "2025-12-01", "notes": ["batch API does not support grounding"]},
    },
    {
        "provider": "openai",
        "billing_type": "token",
        "models": {
            "gpt-4o": {
                "input_per_million": 2.50,
                "output_per_million": 10.0,
                "cache_read_multiplier": 0.50,
                "batch_multiplier": 0.50,
            },
            "gpt-4o-mini": {"input_per_million": 0.15, "output_per_million": 0.60},
            "gpt-4": {"input_per_million": 30.0, "output_per_million": 60.0},
        },
        "image_models": {"dall-e-3": {"price_per_image": 0.04}},
    },
    {
        "provider": "mistral",
        "models": {
            "mistral-large-latest": {
                "input_per_million": 2.0,
                "output_per_million": 6.0,
                "batch_multiplier": 0.50,
            },
        },
    },
    {
        "provider": "scrapedo",
        "billing_type": "credit",
        "credit_pricing": {
            "base_cost_per_request": 1,
            "multipliers": {"js_rendering": 5, "premium_proxy": 10, "js_premium": 25},
        },
        "subscription_tiers": {"hobby": {"credits": 250000, "price_usd": 29.0}},
    },
]


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    return copy.deepcopy(SAMPLE_RECORDS)


@pytest.fixture
def catalog(sample_records: list[dict[str, Any]]) -> PricingCatalog:
    return PricingCatalog.from_records(sample_records)


@pytest.fixture
def calculator(catalog: PricingCatalog) -> CostCalculator:
    return CostCalculator(catalog)


@pytest.fixture
def make_calculator() -> Callable[..., CostCalculator]:
    """由若干条记录构建计算器"""

    def _make(*records: dict[str, Any]) -> CostCalculator:
        return CostCalculator(PricingCatalog.from_records(list(records)))

    return _make


@pytest.fixture
def config_dir(tmp_path: Path, sample_records: list[dict[str, Any]]) -> Path:
    """把样例记录写成 <provider>_pricing.json 文件"""
    for record in sample_records:
        path = tmp_path / f"{record['provider']}_pricing.json"
        path.write_text(json.dumps(record), encoding="utf-8")
    return tmp_path
