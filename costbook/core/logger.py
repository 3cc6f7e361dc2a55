"""
统一日志系统 - 基于 loguru

日志级别策略:
- DEBUG: 价格查找未命中、调用方输入被钳制、溢出饱和等细节
- INFO:  定价目录构建开始/完成
- WARNING: 计算结果被降级（如批处理模式下排除 grounding 费用）
- ERROR: 配置校验失败（随后抛出异常）

输出策略:
- 控制台: 输出到 stderr，级别由 COSTBOOK_LOG_LEVEL 控制（默认 WARNING）
- 文件: 仅当配置 COSTBOOK_LOG_FILE 时启用，按大小轮转

使用方式:
    from costbook.core.logger import logger

    logger.info("消息")
    logger.debug("调试信息")
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from costbook.config.settings import get_settings

# ============================================================================
# 日志格式定义
# ============================================================================

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{message}</cyan>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

# ============================================================================
# 日志配置
# ============================================================================


def setup_logger(
    level: str | None = None,
    log_file: Path | None = None,
    serialize: bool | None = None,
) -> None:
    """
    (重新)配置日志输出

    未传入的参数使用 Settings 中的值。可重复调用，每次都会先移除已有 sink。

    Args:
        level: 控制台日志级别
        log_file: 文件日志路径（为空则不写文件）
        serialize: 是否以 JSON 结构化格式输出
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_file = log_file if log_file is not None else settings.log_file
    serialize = settings.log_json if serialize is None else serialize

    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=not serialize,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        # enqueue=False 使用同步模式，避免多进程信号量泄漏
        logger.add(  # type: ignore[call-overload]
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="50 MB",
            retention="14 days",
            enqueue=False,
            encoding="utf-8",
            serialize=serialize,
            catch=True,
        )


setup_logger()

# ============================================================================
# 导出
# ============================================================================

__all__ = ["logger", "setup_logger"]
