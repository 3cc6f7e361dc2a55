"""
运行配置

所有配置项均可通过 COSTBOOK_ 前缀的环境变量或 .env 文件覆盖。
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from costbook.config.constants import ValidationDefaults


class Settings(BaseSettings):
    # 定价配置目录（为空时使用内置配置）
    config_dir: Path | None = None

    # 配置校验上限
    max_token_rate: float = ValidationDefaults.MAX_TOKEN_RATE
    max_grounding_rate: float = ValidationDefaults.MAX_GROUNDING_RATE
    max_image_price: float = ValidationDefaults.MAX_IMAGE_PRICE

    # CLI 默认值（命令行参数优先）
    default_model: str | None = None
    batch_mode: bool = False

    # 日志
    log_level: str = "WARNING"
    log_file: Path | None = None
    log_json: bool = False

    model_config = SettingsConfigDict(env_prefix="COSTBOOK_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
