"""级联删除引擎

父记录删除（或软删除）之前，对每个声明的级联关系执行一条批量语句：
- 子模型支持软删除：UPDATE 子表 SET deleted_at = T WHERE 外键 IN (父键) AND deleted_at IS NULL
- 子模型不支持软删除（或强制删除）：DELETE FROM 子表 WHERE 外键 IN (父键)

无论批次大小，每个关系只执行一条语句；不逐行加载子对象。
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, inspect, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ...config import CascadeSettings, get_cascade_settings
from ...log import cascade_logger
from .cascade_batch import EntityBatch, capture_batch, merge_columns
from .cascade_config import CascadeRegistry, RelationDescriptor, cascade_registry
from .soft_delete_detector import get_deleted_at_attribute, get_deleted_at_column

_logger = cascade_logger


def expire_deleted_at(session: Session, model: type, key: str) -> None:
    """批量语句不同步会话，让会话中该模型实例的删除时间字段过期

    有未提交修改的实例保持不变。
    """
    for obj in list(session.identity_map.values()):
        if not isinstance(obj, model):
            continue
        if inspect(obj).attrs[key].history.has_changes():
            continue
        session.expire(obj, [key])


class CascadeDeleteEngine:
    """级联删除引擎

    Args:
        registry: 级联注册表，默认使用全局注册表
        settings: 级联配置，默认使用全局配置
        dispatch_registered: 子模型自身也注册了级联时，是否以 ORM DELETE 语句下发，
            由钩子继续处理子模型自己的级联（需要已安装 CascadeHook）

    使用示例:
        engine = CascadeDeleteEngine()
        engine.on_before_delete(session, Order, [Order.id == 7])
        session.execute(update(Order).where(Order.id == 7).values(deleted_at=now))
    """

    def __init__(
        self,
        registry: Optional[CascadeRegistry] = None,
        settings: Optional[CascadeSettings] = None,
        dispatch_registered: bool = False,
    ):
        self.registry = registry if registry is not None else cascade_registry
        self._settings = settings
        self.dispatch_registered = dispatch_registered

    @property
    def settings(self) -> CascadeSettings:
        return self._settings or get_cascade_settings()

    def on_before_delete(
        self,
        session: Session,
        model: type,
        criteria: Sequence[ColumnElement],
        deleted_at: Optional[datetime] = None,
        force: bool = False,
    ) -> Optional[EntityBatch]:
        """在父记录删除前执行级联

        Args:
            session: 数据库会话
            model: 父模型类
            criteria: 父记录删除语句的 WHERE 条件
            deleted_at: 本次删除的时间戳，默认取当前时间
            force: 是否强制物理删除（子记录也全部物理删除）

        Returns:
            读取到的父记录批次；没有声明级联关系时返回 None
        """
        descriptors = self.registry.resolve(model)
        if not descriptors:
            return None

        deleted_at_column = None if force else get_deleted_at_column(model)
        batch = capture_batch(
            session,
            model,
            criteria,
            merge_columns(*(d.parent_columns for d in descriptors)),
            deleted_at_column=deleted_at_column,
            exclude_deleted=deleted_at_column is not None,
            settings=self.settings,
        )
        if batch.is_empty:
            _logger.debug(f"{model.__name__} 删除批次为空，跳过级联")
            return batch

        if deleted_at is None:
            deleted_at = self.settings.now()

        for descriptor in descriptors:
            self._cascade(session, descriptor, batch, deleted_at, force)

        _logger.info(
            f"{model.__name__} 级联删除完成: {len(batch)} 条父记录, "
            f"关系 {[d.name for d in descriptors]}"
        )
        return batch

    def _cascade(
        self,
        session: Session,
        descriptor: RelationDescriptor,
        batch: EntityBatch,
        deleted_at: datetime,
        force: bool,
    ) -> int:
        """对单个关系执行一条批量语句，返回影响行数"""
        settings = self.settings
        target = descriptor.target
        condition = descriptor.bulk_filter(batch.keys(descriptor.parent_columns))
        deleted_attr = get_deleted_at_attribute(target)
        soft = deleted_attr is not None and not force

        if self.dispatch_registered and self.registry.is_registered(target):
            # 交给钩子处理子模型自己的级联，时间戳沿用父记录的
            stmt = delete(target).where(condition).execution_options(**{
                settings.deleted_at_option: deleted_at,
                settings.force_delete_option: force,
                "synchronize_session": False,
            })
        elif soft:
            stmt = (
                update(target)
                .where(condition, deleted_attr.is_(None))
                .values({deleted_attr: deleted_at})
                .execution_options(synchronize_session=False)
            )
        else:
            stmt = delete(target).where(condition).execution_options(**{
                settings.include_deleted_option: True,
                "synchronize_session": False,
            })

        result = session.execute(stmt)
        if soft:
            expire_deleted_at(session, target, deleted_attr.key)

        _logger.debug(
            f"级联{'软删除' if soft else '删除'} {descriptor.parent.__name__}.{descriptor.name} "
            f"-> {target.__name__}: {result.rowcount} 行"
        )
        return result.rowcount
