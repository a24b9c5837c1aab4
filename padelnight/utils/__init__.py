"""
工具模块
提供项目中使用的各种工具函数和类
"""

from padelnight.utils.logger import (
    configure_root_logger,
    get_audit_logger,
    get_logger,
    setup_logger,
)

__all__ = [
    'configure_root_logger',
    'get_audit_logger',
    'get_logger',
    'setup_logger',
]
