"""统一的环境变量加载工具"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

ENV_FILE_VARIABLE = "PADELNIGHT_ENV_FILE"
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _candidates(env_file: Optional[str]):
    if env_file:
        yield Path(env_file)
    if os.getenv(ENV_FILE_VARIABLE):
        yield Path(os.environ[ENV_FILE_VARIABLE])
    yield Path.cwd() / ".env"
    yield PROJECT_ROOT / ".env"


def load_project_env(env_file: Optional[str] = None) -> Optional[Path]:
    """按顺序查找 .env（命令行参数 > PADELNIGHT_ENV_FILE > 当前目录 > 项目根目录），
    只加载第一个存在的文件，已存在的系统环境变量优先"""
    if env_file and not Path(env_file).exists():
        raise FileNotFoundError(f"环境变量文件不存在: {env_file}")

    for path in _candidates(env_file):
        if path.is_file():
            load_dotenv(path, override=False)
            logger.info(f"已加载环境变量文件: {path}")
            return path

    logger.warning("未找到环境变量文件，将使用系统环境变量")
    return None
