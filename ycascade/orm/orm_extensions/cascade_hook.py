"""级联事件钩子

把级联删除/恢复引擎挂到 SQLAlchemy 会话的执行边界上：

- do_orm_execute：拦截已注册模型的 ORM DELETE（session.execute(delete(...))、
  Query.delete()）和带恢复标记的 UPDATE，先执行级联，再执行原操作。
  支持软删除的模型，DELETE 被替换为打删除时间的 UPDATE。
- before_flush：拦截 session.delete(obj)，按模型分组后走同样的批量路径。

使用示例:
    from ycascade.orm import activate_cascade_hook

    # 在应用启动时激活（默认挂在 Session 类上，对所有会话生效）
    activate_cascade_hook()

    session.delete(order)
    session.commit()                      # 订单项一并软删除

    session.execute(delete(Order).where(Order.customer_id == 3))
    restore_where(session, Order, Order.id == 7)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, event, inspect, update
from sqlalchemy.orm import Mapper, ORMExecuteState, Session
from sqlalchemy.orm.attributes import set_committed_value

from ...config import CascadeSettings, get_cascade_settings
from ...log import cascade_logger
from .cascade_batch import primary_key_criteria
from .cascade_config import CascadeRegistry, cascade_registry
from .cascade_delete import CascadeDeleteEngine
from .cascade_restore import CascadeRestoreEngine
from .exceptions import SoftDeleteNotSupportedError
from .soft_delete_detector import get_deleted_at_attribute
from .soft_delete_rewriter import SoftDeleteRewriter

_logger = cascade_logger


class CascadeHook:
    """级联钩子

    Args:
        registry: 级联注册表，默认使用全局注册表
        settings: 级联配置，默认使用全局配置
        filter_deleted: 是否同时自动过滤查询中的已删除记录，默认取 settings.filter_deleted
    """

    def __init__(
        self,
        registry: Optional[CascadeRegistry] = None,
        settings: Optional[CascadeSettings] = None,
        filter_deleted: Optional[bool] = None,
    ):
        self.registry = registry if registry is not None else cascade_registry
        self._settings = settings
        self.delete_engine = CascadeDeleteEngine(self.registry, settings, dispatch_registered=True)
        self.restore_engine = CascadeRestoreEngine(self.registry, settings, dispatch_registered=True)

        if filter_deleted is None:
            filter_deleted = self.settings.filter_deleted
        self.rewriter: Optional[SoftDeleteRewriter] = None
        if filter_deleted:
            self.rewriter = SoftDeleteRewriter(
                deleted_field_name=self.settings.deleted_field_name,
                include_deleted_option=self.settings.include_deleted_option,
                only_deleted_option=self.settings.only_deleted_option,
            )

        self._targets: List[Any] = []

    @property
    def settings(self) -> CascadeSettings:
        return self._settings or get_cascade_settings()

    @property
    def installed(self) -> bool:
        return bool(self._targets)

    def install(self, target: Any = Session) -> "CascadeHook":
        """注册事件监听器

        Args:
            target: Session 类、Session 子类、sessionmaker 或 scoped_session
        """
        if any(t is target for t in self._targets):
            return self
        event.listen(target, "do_orm_execute", self._do_orm_execute)
        event.listen(target, "before_flush", self._before_flush)
        self._targets.append(target)
        _logger.debug(f"级联钩子已安装: {target!r}")
        return self

    def remove(self) -> None:
        """移除所有已注册的事件监听器"""
        for target in self._targets:
            event.remove(target, "do_orm_execute", self._do_orm_execute)
            event.remove(target, "before_flush", self._before_flush)
        self._targets.clear()

    # ==================== 执行边界 ====================

    def _do_orm_execute(self, state: ORMExecuteState):
        if state.is_select:
            if self.rewriter is not None and not state.is_column_load:
                state.statement = self.rewriter.rewrite_statement(
                    state.statement, state.execution_options
                )
            return None

        mapper = state.bind_mapper
        if mapper is None:
            return None

        if state.is_delete and self.registry.is_registered(mapper.class_):
            return self._handle_delete(state, mapper)

        if state.is_update and state.execution_options.get(self.settings.restore_option):
            return self._handle_restore(state, mapper)

        return None

    def _handle_delete(self, state: ORMExecuteState, mapper: Mapper):
        settings = self.settings
        model = mapper.class_
        options = state.execution_options
        force = bool(options.get(settings.force_delete_option))
        deleted_at: datetime = options.get(settings.deleted_at_option) or settings.now()
        criteria = self._batch_criteria(state, mapper)

        self.delete_engine.on_before_delete(state.session, model, criteria, deleted_at, force)

        deleted_attr = None if force else get_deleted_at_attribute(model)
        if deleted_attr is None:
            # 原 DELETE 语句继续执行
            return None

        stmt = (
            update(model)
            .where(*criteria)
            .where(deleted_attr.is_(None))
            .values({deleted_attr: deleted_at})
        )
        return self._execute_base(state, stmt)

    def _handle_restore(self, state: ORMExecuteState, mapper: Mapper):
        model = mapper.class_
        deleted_attr = get_deleted_at_attribute(model)
        if deleted_attr is None:
            raise SoftDeleteNotSupportedError(model)

        criteria = self._batch_criteria(state, mapper)
        self.restore_engine.on_restore(state.session, model, criteria)

        stmt = (
            update(model)
            .where(*criteria)
            .where(deleted_attr.isnot(None))
            .values({deleted_attr: None})
        )
        return self._execute_base(state, stmt)

    def _batch_criteria(self, state: ORMExecuteState, mapper: Mapper) -> list:
        """原语句命中的父记录条件

        按主键批量删除（参数为列表）时转换为主键 IN 条件。
        """
        if isinstance(state.parameters, list):
            keys = [
                tuple(params[mapper.get_property_by_column(c).key] for c in mapper.primary_key)
                for params in state.parameters
            ]
            return primary_key_criteria(mapper, keys)

        whereclause = state.statement.whereclause
        return [] if whereclause is None else [whereclause]

    def _execute_base(self, state: ORMExecuteState, stmt):
        if isinstance(state.parameters, list):
            settings = self.settings
            internal = {
                settings.restore_option,
                settings.force_delete_option,
                settings.deleted_at_option,
                "dml_strategy",
            }
            # _sa_ 开头的是 ORM 为批量语句写入的内部选项，不能带到新语句上
            options = {
                k: v for k, v in state.local_execution_options.items()
                if k not in internal and not k.startswith("_sa_")
            }
            return state.session.execute(stmt, execution_options=options)
        return state.invoke_statement(statement=stmt)

    # ==================== 实例删除 ====================

    def _before_flush(self, session: Session, flush_context, instances):
        groups: Dict[type, List[Any]] = {}
        for instance in list(session.deleted):
            model = type(instance)
            if self.registry.is_registered(model):
                groups.setdefault(model, []).append(instance)

        if not groups:
            return

        # 同一次 flush 使用同一个删除时间
        deleted_at = self.settings.now()
        for model, objs in groups.items():
            self._flush_deleted(session, model, objs, deleted_at)

    def _flush_deleted(self, session: Session, model: type, objs: List[Any], deleted_at: datetime) -> None:
        settings = self.settings
        mapper = inspect(model)
        criteria = primary_key_criteria(
            mapper, [mapper.primary_key_from_instance(obj) for obj in objs]
        )
        deleted_attr = get_deleted_at_attribute(model)

        if deleted_attr is None:
            # 只做级联，父记录由 flush 物理删除
            self.delete_engine.on_before_delete(session, model, criteria, deleted_at)
            names = [d.name for d in self.registry.resolve(model)]
            if names:
                for obj in objs:
                    session.expire(obj, names)
            return

        session.execute(
            delete(model).where(*criteria).execution_options(**{
                settings.deleted_at_option: deleted_at,
                "synchronize_session": False,
            })
        )

        # 从 deleted 集合移回持久化状态，删除时间已由上面的语句写入
        for obj in objs:
            session.expunge(obj)
            session.add(obj)
            set_committed_value(obj, deleted_attr.key, deleted_at)


# 全局钩子实例
_global_hook: Optional[CascadeHook] = None


def activate_cascade_hook(
    target: Any = Session,
    registry: Optional[CascadeRegistry] = None,
    settings: Optional[CascadeSettings] = None,
    filter_deleted: Optional[bool] = None,
) -> CascadeHook:
    """激活全局级联钩子

    重复调用时返回已激活的钩子（并安装到新的 target 上）。
    """
    global _global_hook

    if _global_hook is None:
        _global_hook = CascadeHook(registry, settings, filter_deleted)
    return _global_hook.install(target)


def deactivate_cascade_hook() -> None:
    """停用全局级联钩子并移除监听器"""
    global _global_hook

    if _global_hook is not None:
        _global_hook.remove()
        _global_hook = None


def is_cascade_hook_active() -> bool:
    """检查全局级联钩子是否激活"""
    return _global_hook is not None and _global_hook.installed
