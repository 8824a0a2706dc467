"""级联批次

一次删除/恢复语句命中的父记录集合。父记录的键（以及删除时间）
必须在任何修改之前一次性读取出来，之后不再可得。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Column, inspect, select, tuple_
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.sql.elements import ColumnElement

from ...config import CascadeSettings, get_cascade_settings

Key = Tuple[Any, ...]


def _index_of(columns: Sequence[Column], column: Column) -> int:
    # Column 重载了 ==，只能按对象身份比较
    for i, c in enumerate(columns):
        if c is column:
            return i
    raise KeyError(column)


def merge_columns(*groups: Sequence[Column]) -> Tuple[Column, ...]:
    """按出现顺序合并列（按对象身份去重）"""
    merged: List[Column] = []
    for group in groups:
        for column in group:
            if not any(c is column for c in merged):
                merged.append(column)
    return tuple(merged)


def primary_key_criteria(mapper: Mapper, keys: Sequence[Key]) -> List[ColumnElement]:
    """主键 IN 条件"""
    attrs = [getattr(mapper.class_, mapper.get_property_by_column(c).key) for c in mapper.primary_key]
    if len(attrs) == 1:
        return [attrs[0].in_([key[0] for key in keys])]
    return [tuple_(*attrs).in_([tuple(key) for key in keys])]


@dataclass(frozen=True)
class EntityBatch:
    """父记录批次快照

    Attributes:
        model: 父模型类
        key_columns: 读取的键列
        rows: 每行的键值（与 key_columns 对应）
        deleted_at: 每行读取时的删除时间（模型不支持软删除时为 None）
    """
    model: type
    key_columns: Tuple[Column, ...]
    rows: Tuple[Key, ...] = ()
    deleted_at: Tuple[Optional[datetime], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)

    def keys(self, columns: Optional[Sequence[Column]] = None) -> List[Key]:
        """取指定列上的键（去重，保持顺序）"""
        if columns is None:
            return list(dict.fromkeys(self.rows))
        indexes = [_index_of(self.key_columns, c) for c in columns]
        return list(dict.fromkeys(tuple(row[i] for i in indexes) for row in self.rows))

    def group_by_deleted_at(self, columns: Optional[Sequence[Column]] = None) -> Dict[datetime, List[Key]]:
        """按删除时间分组：{删除时间: [键, ...]}

        删除时间为空的行被忽略。
        """
        if columns is None:
            indexes = list(range(len(self.key_columns)))
        else:
            indexes = [_index_of(self.key_columns, c) for c in columns]

        groups: Dict[datetime, Dict[Key, None]] = {}
        for row, deleted_at in zip(self.rows, self.deleted_at):
            if deleted_at is None:
                continue
            key = tuple(row[i] for i in indexes)
            groups.setdefault(deleted_at, {})[key] = None
        return {ts: list(keys) for ts, keys in groups.items()}


def capture_batch(
    session: Session,
    model: type,
    criteria: Sequence[ColumnElement],
    key_columns: Sequence[Column],
    deleted_at_column: Optional[Column] = None,
    exclude_deleted: bool = False,
    only_deleted: bool = False,
    settings: Optional[CascadeSettings] = None,
) -> EntityBatch:
    """读取语句条件命中的父记录键

    Args:
        session: 数据库会话
        model: 父模型类
        criteria: 原语句的 WHERE 条件
        key_columns: 需要读取的键列（父模型上的列）
        deleted_at_column: 删除时间列，提供时一并读取
        exclude_deleted: 排除已软删除的记录
        only_deleted: 只取已软删除的记录
        settings: 级联配置
    """
    settings = settings or get_cascade_settings()
    mapper = inspect(model)

    # 通过 ORM 属性查询，保留单表继承等实体条件
    selected = [getattr(mapper.class_, mapper.get_property_by_column(c).key) for c in key_columns]
    if deleted_at_column is not None:
        deleted_attr = getattr(mapper.class_, mapper.get_property_by_column(deleted_at_column).key)
        selected.append(deleted_attr)

    stmt = select(*selected).where(*criteria)
    if deleted_at_column is not None:
        if exclude_deleted:
            stmt = stmt.where(deleted_attr.is_(None))
        if only_deleted:
            stmt = stmt.where(deleted_attr.isnot(None))
    # 显式条件已经决定了范围，关闭自动过滤
    stmt = stmt.execution_options(**{settings.include_deleted_option: True})

    width = len(key_columns)
    rows: List[Key] = []
    stamps: List[Optional[datetime]] = []
    for row in session.execute(stmt):
        rows.append(tuple(row[:width]))
        stamps.append(row[width] if deleted_at_column is not None else None)

    return EntityBatch(
        model=model,
        key_columns=tuple(key_columns),
        rows=tuple(rows),
        deleted_at=tuple(stamps),
    )
