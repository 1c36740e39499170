"""
日志配置模块

提供控制台和文件日志功能，支持彩色输出和日志轮转。
"""

import logging
import logging.handlers
import os
import sys
import traceback
from pathlib import Path

from savings_backend.core.config import settings


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器，用于控制台输出"""

    COLORS = {
        "DEBUG": "\033[36m",  # 青色
        "INFO": "\033[32m",  # 绿色
        "WARNING": "\033[33m",  # 黄色
        "ERROR": "\033[31m",  # 红色
        "CRITICAL": "\033[35m",  # 紫色
    }
    RESET = "\033[0m"

    def format(self, record):
        # 复制一份记录，避免颜色码泄漏到文件处理器
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logger(
    name: str = "savings",
    level: str = "INFO",
    log_dir: str = "./logs",
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True,
) -> logging.Logger:
    """
    配置日志记录器，支持控制台和文件输出。

    Args:
        name: 日志记录器名称
        level: 日志级别（DEBUG、INFO、WARNING、ERROR、CRITICAL）
        log_dir: 日志文件目录
        max_file_size: 单个日志文件最大大小
        backup_count: 保留的备份日志文件数量
        console_output: 是否输出到控制台

    Returns:
        配置好的日志记录器实例
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # 避免重复添加处理器
    if logger.handlers:
        return logger

    detailed_format = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    simple_format = "%(asctime)s - %(levelname)s - %(message)s"

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ColoredFormatter(simple_format))
        logger.addHandler(console_handler)

    # 文件处理器 - 全部日志
    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, f"{name}.log"), maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(detailed_format))
    logger.addHandler(file_handler)

    # 文件处理器 - 仅错误日志
    error_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, f"{name}_error.log"), maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(detailed_format))
    logger.addHandler(error_handler)

    return logger


def log_exception(
    logger: logging.Logger, message: str, exception: Exception | None = None, reraise: bool = False
) -> None:
    """
    记录异常信息。

    Args:
        logger: 日志记录器实例
        message: 错误消息
        exception: 异常对象
        reraise: 是否重新抛出异常
    """
    if exception is None:
        logger.error(message)
        return

    exc_type, exc_value, _ = sys.exc_info()
    if exc_type is None:
        logger.error(f"{message}: {type(exception).__name__}: {exception}")
        if reraise:
            raise exception
    else:
        logger.error(f"{message}: {exc_type.__name__}: {exc_value}")
        logger.debug(traceback.format_exc())
        if reraise:
            raise


def setup_cache_logging(level: str = "INFO", log_dir: str = "./logs") -> logging.Logger:
    """缓存子系统日志单独落盘，不输出到控制台"""
    return setup_logger("savings_backend.core.cache", level=level, log_dir=log_dir, console_output=False)


# 创建全局日志记录器实例
app_logger = setup_logger("savings", level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
app_logger.info(f"日志系统已初始化 (级别: {settings.LOG_LEVEL})")
