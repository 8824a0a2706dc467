"""
配置模块
提供级联软删除的默认配置，业务项目可以继承并覆盖
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class CascadeSettings(BaseSettings):
    """级联删除/恢复配置

    使用示例:
        from ycascade.config import CascadeSettings, configure_cascade

        configure_cascade(CascadeSettings(deleted_field_name="removed_at"))

    环境变量:
        YCASCADE_DELETED_FIELD_NAME=deleted_at
        YCASCADE_FILTER_DELETED=false
    """
    deleted_field_name: str = Field(default="deleted_at", description="软删除时间字段名")
    include_deleted_option: str = Field(default="include_deleted", description="查询包含已删除记录的 execution_option 名称")
    only_deleted_option: str = Field(default="only_deleted", description="只查询已删除记录的 execution_option 名称")
    restore_option: str = Field(default="cascade_restore", description="标记恢复语句的 execution_option 名称")
    force_delete_option: str = Field(default="force_delete", description="标记物理删除的 execution_option 名称")
    deleted_at_option: str = Field(default="cascade_deleted_at", description="级联语句传递删除时间的 execution_option 名称")
    filter_deleted: bool = Field(default=True, description="安装钩子时是否同时启用查询自动过滤已删除记录")
    use_utc: bool = Field(default=False, description="删除时间是否使用 UTC 时间")

    class Config:
        env_prefix = "YCASCADE_"

    def now(self) -> datetime:
        """生成一次删除操作使用的时间戳"""
        if self.use_utc:
            return datetime.now(timezone.utc)
        return datetime.now()


class LoggingSettings(BaseSettings):
    """日志配置

    使用示例:
        from ycascade.config import LoggingSettings
        from ycascade.log import setup_root_logger

        setup_root_logger(config=LoggingSettings(level="DEBUG"))
    """
    level: str = Field(default="INFO", description="日志级别")
    file_path: str = Field(default="", description="日志文件路径，为空则不写文件")
    enable_console: bool = Field(default=True, description="是否启用控制台输出")
    log_statements: bool = Field(default=False, description="是否以 DEBUG 级别记录每条级联语句")

    class Config:
        env_prefix = "YCASCADE_LOG_"


class AppSettings(BaseSettings):
    """应用基础配置

    子配置单独实例化时读取各自前缀的环境变量；通过 YAML 加载时以文件内容为准。

    YAML 配置示例 (config/settings.yaml):
        cascade:
          deleted_field_name: "deleted_at"
          filter_deleted: true
        logging:
          level: "DEBUG"
    """
    cascade: CascadeSettings = CascadeSettings()
    logging: LoggingSettings = LoggingSettings()


# 全局配置实例
_cascade_settings: Optional[CascadeSettings] = None


def configure_cascade(settings: Optional[CascadeSettings] = None, **overrides) -> CascadeSettings:
    """设置全局级联配置

    Args:
        settings: 配置对象，默认从环境变量创建
        **overrides: 覆盖的配置项

    Returns:
        生效的配置对象
    """
    global _cascade_settings

    if settings is None:
        settings = CascadeSettings(**overrides)
    elif overrides:
        settings = settings.model_copy(update=overrides)

    _cascade_settings = settings
    return settings


def get_cascade_settings() -> CascadeSettings:
    """获取全局级联配置（未配置时使用默认值）"""
    global _cascade_settings
    if _cascade_settings is None:
        _cascade_settings = CascadeSettings()
    return _cascade_settings
