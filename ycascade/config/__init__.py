"""配置模块

- CascadeSettings: 级联删除/恢复配置（环境变量前缀 YCASCADE_）
- LoggingSettings: 日志配置（环境变量前缀 YCASCADE_LOG_）
- AppSettings: 聚合配置，支持 YAML + 环境变量
- configure_cascade / get_cascade_settings: 全局配置
"""

from .settings import (
    AppSettings,
    CascadeSettings,
    LoggingSettings,
    configure_cascade,
    get_cascade_settings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "CascadeSettings",
    "LoggingSettings",
    "configure_cascade",
    "get_cascade_settings",
    "ConfigLoader",
    "load_yaml_config",
]
