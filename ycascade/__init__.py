"""
YCascade - SQLAlchemy 级联软删除库

提供级联软删除、按时间关联的级联恢复、已删除记录自动过滤等功能
"""

from .version import __version__, __author__, __description__

from .config import (
    AppSettings,
    CascadeSettings,
    LoggingSettings,
    configure_cascade,
    get_cascade_settings,
)

from .log import get_logger, setup_logger

from .orm import (
    CascadeDeletesMixin,
    SoftDeleteMixin,
    register_cascade,
    cascade_registry,
    activate_cascade_hook,
    deactivate_cascade_hook,
    is_cascade_hook_active,
    delete_where,
    force_delete_where,
    restore_where,
    with_deleted,
    only_deleted,
    CascadeError,
)

__all__ = [
    "__version__",
    "AppSettings",
    "CascadeSettings",
    "LoggingSettings",
    "configure_cascade",
    "get_cascade_settings",
    "get_logger",
    "setup_logger",
    "CascadeDeletesMixin",
    "SoftDeleteMixin",
    "register_cascade",
    "cascade_registry",
    "activate_cascade_hook",
    "deactivate_cascade_hook",
    "is_cascade_hook_active",
    "delete_where",
    "force_delete_where",
    "restore_where",
    "with_deleted",
    "only_deleted",
    "CascadeError",
]
