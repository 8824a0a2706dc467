"""级联恢复引擎

恢复软删除的父记录时，只恢复"因这次父记录删除而被删除"的子记录：
子记录的删除时间必须 >= 其自身父记录的删除时间。更早被单独删除的子记录保持删除状态。

父记录的删除时间在清空之前读取，按不同的删除时间分组后拼成一条关联条件:

    UPDATE 子表 SET deleted_at = NULL
    WHERE deleted_at IS NOT NULL
      AND ((外键 IN (父键组1) AND deleted_at >= T1)
        OR (外键 IN (父键组2) AND deleted_at >= T2))

每个关系仍然只执行一条语句，同时每个子记录只和自己父记录的时间比较。
"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ...config import CascadeSettings, get_cascade_settings
from ...log import cascade_logger
from .cascade_batch import EntityBatch, capture_batch, merge_columns
from .cascade_config import CascadeRegistry, RelationDescriptor, cascade_registry
from .cascade_delete import expire_deleted_at
from .exceptions import SoftDeleteNotSupportedError
from .soft_delete_detector import get_deleted_at_attribute, get_deleted_at_column

_logger = cascade_logger


class CascadeRestoreEngine:
    """级联恢复引擎

    Args:
        registry: 级联注册表，默认使用全局注册表
        settings: 级联配置，默认使用全局配置
        dispatch_registered: 子模型自身也注册了级联时，是否以恢复语句下发，
            由钩子继续恢复子模型自己的级联关系（需要已安装 CascadeHook）
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

    def on_restore(
        self,
        session: Session,
        model: type,
        criteria: Sequence[ColumnElement],
    ) -> Optional[EntityBatch]:
        """在父记录恢复前恢复子记录

        调用方随后负责清空父记录的删除时间。

        Args:
            session: 数据库会话
            model: 父模型类
            criteria: 恢复语句的 WHERE 条件

        Returns:
            读取到的待恢复父记录批次；没有可恢复的关系时返回 None

        Raises:
            SoftDeleteNotSupportedError: 父模型不支持软删除
        """
        deleted_at_column = get_deleted_at_column(model)
        if deleted_at_column is None:
            raise SoftDeleteNotSupportedError(model)

        # 物理删除的子记录无法恢复，这类关系整体跳过
        descriptors = [
            d for d in self.registry.resolve(model)
            if get_deleted_at_attribute(d.target) is not None
        ]
        if not descriptors:
            return None

        batch = capture_batch(
            session,
            model,
            criteria,
            merge_columns(*(d.parent_columns for d in descriptors)),
            deleted_at_column=deleted_at_column,
            only_deleted=True,
            settings=self.settings,
        )
        if batch.is_empty:
            _logger.debug(f"{model.__name__} 没有待恢复的记录，跳过级联")
            return batch

        for descriptor in descriptors:
            self._restore(session, descriptor, batch)

        _logger.info(
            f"{model.__name__} 级联恢复完成: {len(batch)} 条父记录, "
            f"关系 {[d.name for d in descriptors]}"
        )
        return batch

    def correlation_filter(self, descriptor: RelationDescriptor, batch: EntityBatch) -> ColumnElement:
        """子记录与各自父记录删除时间的关联条件"""
        deleted_attr = get_deleted_at_attribute(descriptor.target)
        groups = batch.group_by_deleted_at(descriptor.parent_columns)
        return or_(*[
            and_(descriptor.bulk_filter(keys), deleted_attr >= deleted_at)
            for deleted_at, keys in groups.items()
        ])

    def _restore(self, session: Session, descriptor: RelationDescriptor, batch: EntityBatch) -> int:
        settings = self.settings
        target = descriptor.target
        deleted_attr = get_deleted_at_attribute(target)
        condition = self.correlation_filter(descriptor, batch)

        if self.dispatch_registered and self.registry.is_registered(target):
            # 由钩子继续恢复子模型自己的级联关系
            stmt = (
                update(target)
                .where(condition)
                .values({deleted_attr: None})
                .execution_options(**{
                    settings.restore_option: True,
                    "synchronize_session": False,
                })
            )
        else:
            stmt = (
                update(target)
                .where(deleted_attr.isnot(None), condition)
                .values({deleted_attr: None})
                .execution_options(synchronize_session=False)
            )

        result = session.execute(stmt)
        expire_deleted_at(session, target, deleted_attr.key)

        _logger.debug(
            f"级联恢复 {descriptor.parent.__name__}.{descriptor.name} "
            f"-> {target.__name__}: {result.rowcount} 行"
        )
        return result.rowcount
