"""日志模块

基于标准库 logging 的日志配置：
- setup_logger / setup_root_logger: 配置日志器
- get_logger: 按模块名获取日志器

使用示例:
    from ycascade.log import setup_logger

    # 打开级联语句的调试日志
    setup_logger("ycascade.orm", level="DEBUG")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    cascade_logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "cascade_logger",
    "get_logger",
]
