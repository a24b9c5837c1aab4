"""
全局日志配置模块
控制台 + 按日期的日志文件；对阵调整等审计记录另写 audit 日志
"""
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional, Union


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = Path(os.getenv("PADELNIGHT_LOG_DIR", PROJECT_ROOT / "logs"))

AUDIT_LOGGER_NAME = "padelnight.audit"
AUDIT_FILE_NAME = "audit.log"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

_log_configured = False


def _file_handler(log_dir: Path, file_name: str, level: int, encoding: str) -> logging.FileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / file_name, encoding=encoding, mode='a')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_logger(
    name: Optional[str] = None,
    level: str = 'INFO',
    log_to_file: bool = False,
    log_to_console: bool = True,
    log_file_name: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    encoding: str = 'utf-8'
) -> logging.Logger:
    """设置并返回一个配置好的日志记录器（已有处理器时直接返回）"""
    logger = logging.getLogger(name) if name else logging.getLogger()
    if logger.handlers:
        return logger

    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    logger.setLevel(log_level)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_to_file:
        file_name = log_file_name or f"{time.strftime('%Y_%m_%d', time.localtime())}.log"
        logger.addHandler(_file_handler(Path(log_dir or LOGS_DIR), file_name, log_level, encoding))

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取日志记录器（模块日志向上传播给根日志记录器）"""
    return logging.getLogger(name) if name else logging.getLogger()


def get_audit_logger() -> logging.Logger:
    """审计日志: 管理员修改对阵等操作"""
    return logging.getLogger(AUDIT_LOGGER_NAME)


def configure_root_logger(
    level: str = 'INFO',
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_file_name: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None
) -> None:
    """配置根日志记录器（应在程序启动时调用一次），写文件时同时开启 audit.log"""
    global _log_configured

    if _log_configured:
        return

    setup_logger(
        name=None,
        level=level,
        log_to_file=log_to_file,
        log_to_console=log_to_console,
        log_file_name=log_file_name,
        log_dir=log_dir,
    )

    if log_to_file:
        # 审计记录同时进入主日志（向上传播）和单独的 audit.log
        audit_logger = get_audit_logger()
        audit_logger.setLevel(logging.INFO)
        audit_logger.addHandler(_file_handler(Path(log_dir or LOGS_DIR), AUDIT_FILE_NAME, logging.INFO, 'utf-8'))

    _log_configured = True
