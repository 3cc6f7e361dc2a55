"""
配置模块
"""

from costbook.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
