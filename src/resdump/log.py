import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level.icon} {level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {elapsed} | {level.icon} {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(level: str = "WARNING", log_dir: Optional[Path] = None, app_name: str = "resdump"):
    """配置 Loguru 日志系统

    Args:
        level: 控制台日志级别
        log_dir: 日志根目录；为 None 时不写文件
        app_name: 应用名称，用于日志目录

    Returns:
        Path | None: 日志文件路径
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    if log_dir is None:
        return None

    now = datetime.now()
    target_dir = Path(log_dir).expanduser() / app_name / now.strftime("%Y-%m-%d")
    target_dir.mkdir(parents=True, exist_ok=True)
    log_file = target_dir / f"{now.strftime('%H%M%S')}.log"
    logger.add(
        log_file,
        level="DEBUG",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        format=FILE_FORMAT,
    )
    logger.debug(f"log file: {log_file}")
    return log_file
