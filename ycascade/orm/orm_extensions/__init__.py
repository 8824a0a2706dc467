"""ORM扩展模块 - 级联软删除与恢复

提供完整的级联软删除解决方案：
- 显式声明级联关系（__deletes_with__ / register_cascade）
- 批量级联删除：每个关系只执行一条语句
- 按删除时间关联的批量级联恢复
- 查询时自动过滤已删除记录（支持 include_deleted / only_deleted）

使用示例:
    from ycascade.orm import (
        CascadeDeletesMixin, SoftDeleteMixin, activate_cascade_hook,
    )

    class Order(Base, SoftDeleteMixin, CascadeDeletesMixin):
        __tablename__ = "orders"
        __deletes_with__ = ("items",)
        id = Column(Integer, primary_key=True)
        items = relationship("OrderItem", passive_deletes=True)

    activate_cascade_hook()
"""

from .exceptions import (
    CascadeError,
    CascadeConfigurationError,
    UnresolvedRelationError,
    UnsupportedRelationError,
    DuplicateRelationError,
    SoftDeleteNotSupportedError,
)
from .soft_delete_detector import (
    is_soft_delete_capable,
    get_deleted_at_column,
    get_deleted_at_attribute,
)
from .cascade_config import (
    CascadeConfig,
    RelationDescriptor,
    CascadeRegistry,
    cascade_registry,
    register_cascade,
    resolve_relation,
)
from .cascade_batch import EntityBatch, capture_batch
from .cascade_delete import CascadeDeleteEngine
from .cascade_restore import CascadeRestoreEngine
from .soft_delete_rewriter import SoftDeleteRewriter
from .cascade_hook import (
    CascadeHook,
    activate_cascade_hook,
    deactivate_cascade_hook,
    is_cascade_hook_active,
)
from .cascade_query import (
    delete_where,
    force_delete_where,
    restore_statement,
    restore_where,
    with_deleted,
    only_deleted,
)
from .cascade_mixin import CascadeDeletesMixin
from .soft_delete_mixin import (
    generate_soft_delete_mixin_class,
    SoftDeleteMixin,
)

__all__ = [
    # 异常
    "CascadeError",
    "CascadeConfigurationError",
    "UnresolvedRelationError",
    "UnsupportedRelationError",
    "DuplicateRelationError",
    "SoftDeleteNotSupportedError",
    # 软删除能力检测
    "is_soft_delete_capable",
    "get_deleted_at_column",
    "get_deleted_at_attribute",
    # 级联配置
    "CascadeConfig",
    "RelationDescriptor",
    "CascadeRegistry",
    "cascade_registry",
    "register_cascade",
    "resolve_relation",
    # 批次
    "EntityBatch",
    "capture_batch",
    # 引擎
    "CascadeDeleteEngine",
    "CascadeRestoreEngine",
    # 查询重写器
    "SoftDeleteRewriter",
    # 钩子函数
    "CascadeHook",
    "activate_cascade_hook",
    "deactivate_cascade_hook",
    "is_cascade_hook_active",
    # 查询辅助
    "delete_where",
    "force_delete_where",
    "restore_statement",
    "restore_where",
    "with_deleted",
    "only_deleted",
    # Mixin类
    "CascadeDeletesMixin",
    "generate_soft_delete_mixin_class",
    "SoftDeleteMixin",
]
