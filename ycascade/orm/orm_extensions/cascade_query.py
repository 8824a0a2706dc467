"""级联查询辅助函数

对 ORM 语句的薄封装，实际的级联由 CascadeHook 在执行时完成。

使用示例:
    # 软删除（子记录一并处理）
    delete_where(session, Order, Order.customer_id == 3)

    # 物理删除，子记录一并物理删除
    force_delete_where(session, Order, Order.id == 7)

    # 恢复（只恢复因这次删除而被删除的子记录）
    restore_where(session, Order, Order.id == 7)

    # 查询已删除记录
    session.execute(only_deleted(select(Order))).scalars().all()
"""

from typing import Any, Optional, TypeVar

from sqlalchemy import delete, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.dml import Update

from ...config import CascadeSettings, get_cascade_settings
from .exceptions import SoftDeleteNotSupportedError
from .soft_delete_detector import get_deleted_at_attribute

T = TypeVar("T")


def _settings(settings: Optional[CascadeSettings]) -> CascadeSettings:
    return settings or get_cascade_settings()


def delete_where(
    session: Session,
    model: type,
    *criteria: Any,
    **execution_options: Any,
) -> int:
    """按条件删除（支持软删除的模型为软删除），返回父记录影响行数"""
    stmt = delete(model).where(*criteria).execution_options(**execution_options)
    return session.execute(stmt).rowcount


def force_delete_where(
    session: Session,
    model: type,
    *criteria: Any,
    settings: Optional[CascadeSettings] = None,
    **execution_options: Any,
) -> int:
    """按条件物理删除，级联的子记录同样物理删除"""
    settings = _settings(settings)
    execution_options[settings.force_delete_option] = True
    return delete_where(session, model, *criteria, **execution_options)


def restore_statement(model: type, settings: Optional[CascadeSettings] = None) -> Update:
    """构造恢复语句，由钩子在执行时完成级联恢复

    Raises:
        SoftDeleteNotSupportedError: 模型不支持软删除
    """
    settings = _settings(settings)
    deleted_attr = get_deleted_at_attribute(model)
    if deleted_attr is None:
        raise SoftDeleteNotSupportedError(model)
    return (
        update(model)
        .values({deleted_attr: None})
        .execution_options(**{settings.restore_option: True})
    )


def restore_where(
    session: Session,
    model: type,
    *criteria: Any,
    settings: Optional[CascadeSettings] = None,
    **execution_options: Any,
) -> int:
    """按条件恢复软删除的记录，返回父记录影响行数"""
    stmt = restore_statement(model, settings).where(*criteria).execution_options(**execution_options)
    return session.execute(stmt).rowcount


def with_deleted(stmt: T, settings: Optional[CascadeSettings] = None) -> T:
    """查询结果包含已删除记录（Select 或 Query 均可）"""
    return stmt.execution_options(**{_settings(settings).include_deleted_option: True})


def only_deleted(stmt: T, settings: Optional[CascadeSettings] = None) -> T:
    """只查询已删除记录（Select 或 Query 均可）"""
    return stmt.execution_options(**{_settings(settings).only_deleted_option: True})
