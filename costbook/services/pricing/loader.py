"""
定价配置加载

从目录或包内置资源读取 *_pricing.json，生成待校验的 RawPricingRecord，
再交给 PricingCatalog.from_records 构建目录。文件按文件名排序读取。
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

from costbook.config.constants import ConfigFileDefaults
from costbook.core.exceptions import CatalogLoadError, PricingValidationError, ValidationFailure
from costbook.core.logger import logger
from costbook.models.pricing_file import RawPricingRecord
from costbook.services.pricing.catalog import PricingCatalog
from costbook.services.pricing.validator import ValidationLimits


def _parse_record(source: str, text: str) -> RawPricingRecord:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"failed to parse {source}: {exc}") from exc
    if not isinstance(data, dict):
        raise PricingValidationError(
            source, "<root>", type(data).__name__, ValidationFailure.MALFORMED_RECORD, "expected a JSON object"
        )
    return RawPricingRecord(source=source, data=data)


def _read_text(entry: Any) -> str:
    try:
        return entry.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogLoadError(f"failed to read {entry}: {exc}") from exc


def load_records_from_dir(path: str | Path) -> list[RawPricingRecord]:
    """
    读取目录下所有 *_pricing.json

    Raises:
        CatalogLoadError: 目录不存在，或文件无法读取/解析
        PricingValidationError: 文件内容不是 JSON 对象
    """
    directory = Path(path)
    if not directory.is_dir():
        raise CatalogLoadError(f"pricing config directory not found: {directory}")

    records = []
    for file in sorted(directory.glob(f"*{ConfigFileDefaults.FILE_SUFFIX}")):
        records.append(_parse_record(file.name, _read_text(file)))
    logger.debug(f"从 {directory} 读取 {len(records)} 个定价文件")
    return records


def load_bundled_records() -> list[RawPricingRecord]:
    """读取包内置的定价文件"""
    package = resources.files(ConfigFileDefaults.BUNDLED_PACKAGE)
    files = sorted(
        (entry for entry in package.iterdir() if entry.name.endswith(ConfigFileDefaults.FILE_SUFFIX)),
        key=lambda entry: entry.name,
    )
    return [_parse_record(entry.name, _read_text(entry)) for entry in files]


def load_catalog(path: str | Path | None = None, limits: ValidationLimits | None = None) -> PricingCatalog:
    """
    加载定价目录

    Args:
        path: 配置目录；为空时依次使用 Settings.config_dir 与内置配置
        limits: 校验上限，默认取自 Settings
    """
    if path is None:
        from costbook.config.settings import get_settings

        path = get_settings().config_dir

    records = load_records_from_dir(path) if path is not None else load_bundled_records()
    return PricingCatalog.from_records(records, limits)


__all__ = ["load_bundled_records", "load_catalog", "load_records_from_dir"]
