"""
默认定价目录测试

- 默认使用内置配置，可由 COSTBOOK_CONFIG_DIR 覆盖
- 构建错误被缓存：严格入口抛出，便捷函数降级为空目录
"""

from pathlib import Path
from typing import Iterator

import pytest

from costbook.config.settings import get_settings
from costbook.core.exceptions import CatalogLoadError, PricingValidationError
from costbook.services.pricing import registry


@pytest.fixture(autouse=True)
def fresh_registry(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("COSTBOOK_CONFIG_DIR", raising=False)
    get_settings.cache_clear()
    registry.reset_default_catalog()
    yield
    get_settings.cache_clear()
    registry.reset_default_catalog()


class TestBundledDefault:
    def test_helpers(self) -> None:
        assert registry.init_error() is None
        assert registry.calculate_cost("gpt-4o", 1000, 500) == pytest.approx(0.0075)
        assert registry.calculate_grounding_cost("gemini-3-pro-preview", 5) == pytest.approx(0.07)
        assert registry.calculate_credit_cost("scrapedo", "js_rendering") == 5
        assert registry.calculate_credit_cost("nobody") == 0

    def test_enumeration(self) -> None:
        providers = registry.list_providers()
        assert providers == sorted(providers)
        assert "anthropic" in providers
        assert registry.provider_count() == len(providers)
        assert registry.model_count() > 0

    def test_get_pricing(self) -> None:
        pricing, found = registry.get_pricing("claude-sonnet-4-20250514")
        assert found is True
        assert pricing is not None
        assert pricing.input_per_million == 3.0

    def test_built_once(self) -> None:
        assert registry.get_default_catalog() is registry.get_default_catalog()
        assert registry.get_default_calculator().catalog is registry.get_default_catalog()


class TestConfigDirOverride:
    def test_env_config_dir(self, monkeypatch: pytest.MonkeyPatch, config_dir: Path) -> None:
        monkeypatch.setenv("COSTBOOK_CONFIG_DIR", str(config_dir))
        get_settings.cache_clear()
        assert registry.provider_count() == 5


class TestInitFailure:
    @pytest.fixture
    def broken_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
        (tmp_path / "bad_pricing.json").write_text(
            '{"models": {"m": {"input_per_million": -1}}}', encoding="utf-8"
        )
        monkeypatch.setenv("COSTBOOK_CONFIG_DIR", str(tmp_path))
        get_settings.cache_clear()
        return tmp_path

    def test_error_is_memoized(self, broken_dir: Path) -> None:
        error = registry.init_error()
        assert isinstance(error, PricingValidationError)
        assert registry.init_error() is error

    def test_undecodable_file_is_memoized(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "bad_pricing.json").write_bytes(b'{"models": "\xff"}')
        monkeypatch.setenv("COSTBOOK_CONFIG_DIR", str(tmp_path))
        get_settings.cache_clear()

        error = registry.init_error()
        assert isinstance(error, CatalogLoadError)
        assert "bad_pricing.json" in str(error)
        assert registry.init_error() is error
        assert registry.model_count() == 0

    def test_reset_rebuilds(self, broken_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        assert registry.init_error() is not None
        monkeypatch.delenv("COSTBOOK_CONFIG_DIR")
        get_settings.cache_clear()
        registry.reset_default_catalog()

        assert registry.init_error() is None
        assert registry.get_default_catalog().model_count() > 0

    def test_strict_accessors_raise(self, broken_dir: Path) -> None:
        with pytest.raises(PricingValidationError):
            registry.get_default_catalog()
        with pytest.raises(PricingValidationError):
            registry.get_default_calculator()

    def test_helpers_degrade(self, broken_dir: Path) -> None:
        assert registry.calculate_cost("gpt-4o", 1000, 500) == 0.0
        assert registry.get_pricing("gpt-4o") == (None, False)
        assert registry.list_providers() == []
        assert registry.model_count() == 0
        assert registry.provider_count() == 0
