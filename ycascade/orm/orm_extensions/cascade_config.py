"""级联关系声明与注册

每个参与级联的模型在注册时附带一份显式的 CascadeConfig（关系名列表），
关系名在注册表中解析为 RelationDescriptor：给定一批父记录的键，
直接生成"子表外键 IN (父键集合)"的批量过滤条件。

使用示例:
    from ycascade.orm import register_cascade

    class Order(Base, SoftDeleteMixin):
        __tablename__ = "orders"
        id = Column(Integer, primary_key=True)
        items = relationship("OrderItem", passive_deletes=True)

    register_cascade(Order, deletes_with=["items"])

    # 或使用 Mixin 声明
    class Order(Base, SoftDeleteMixin, CascadeDeletesMixin):
        __deletes_with__ = ("items",)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import Column, inspect, tuple_
from sqlalchemy.orm import RelationshipProperty
from sqlalchemy.orm.interfaces import ONETOMANY
from sqlalchemy.sql.elements import ColumnElement

from ...log import cascade_logger
from .exceptions import (
    DuplicateRelationError,
    UnresolvedRelationError,
    UnsupportedRelationError,
)

_logger = cascade_logger

Key = Tuple[Any, ...]


@dataclass(frozen=True)
class CascadeConfig:
    """模型的级联配置（注册后只读）

    Attributes:
        deletes_with: 删除/恢复时需要级联的关系名，按声明顺序执行
    """
    deletes_with: Tuple[str, ...] = ()

    def __post_init__(self):
        # 允许传入 list，统一转为 tuple
        object.__setattr__(self, "deletes_with", tuple(self.deletes_with))

    @property
    def is_empty(self) -> bool:
        return not self.deletes_with


@dataclass(frozen=True)
class RelationDescriptor:
    """已解析的级联关系

    Attributes:
        name: 关系名
        parent: 父模型类
        target: 子模型类
        parent_columns: 父表上的关联列（通常是主键）
        child_columns: 子表上对应的外键列
    """
    name: str
    parent: type
    target: type
    parent_columns: Tuple[Column, ...]
    child_columns: Tuple[Column, ...] = field(repr=False)

    def bulk_filter(self, keys: Sequence[Key]) -> ColumnElement:
        """生成整批父记录对应的子记录过滤条件

        Args:
            keys: 父记录键列表，每个元素与 parent_columns 一一对应
        """
        if len(self.child_columns) == 1:
            return self.child_columns[0].in_([key[0] for key in keys])
        return tuple_(*self.child_columns).in_(list(keys))


def resolve_relation(model: type, name: str) -> RelationDescriptor:
    """将关系名解析为 RelationDescriptor

    Raises:
        UnresolvedRelationError: 模型上没有该 relationship
        UnsupportedRelationError: 多对多或多对一关系
    """
    mapper = inspect(model)
    rel: Optional[RelationshipProperty] = mapper.relationships.get(name)
    if rel is None:
        raise UnresolvedRelationError(model, name)

    if rel.secondary is not None:
        raise UnsupportedRelationError(model, name, "多对多关系不参与级联")
    if rel.direction is not ONETOMANY:
        raise UnsupportedRelationError(model, name, "外键必须位于子表（一对多或一对一）")

    pairs = list(rel.local_remote_pairs)
    return RelationDescriptor(
        name=name,
        parent=mapper.class_,
        target=rel.mapper.class_,
        parent_columns=tuple(local for local, _ in pairs),
        child_columns=tuple(remote for _, remote in pairs),
    )


class CascadeRegistry:
    """级联配置注册表

    记录每个模型的 CascadeConfig，并缓存解析后的 RelationDescriptor。
    映射已配置完成时在注册时立即解析，否则在首次使用或 validate() 时解析。
    """

    def __init__(self):
        self._configs: Dict[type, CascadeConfig] = {}
        self._resolved: Dict[type, Tuple[RelationDescriptor, ...]] = {}
        self._lock = threading.RLock()

    def register(
        self,
        model: type,
        deletes_with: Iterable[str] = (),
        config: Optional[CascadeConfig] = None,
    ) -> CascadeConfig:
        """注册模型的级联配置

        Args:
            model: 模型类
            deletes_with: 级联关系名列表
            config: 直接传入的配置对象（优先于 deletes_with）

        Raises:
            DuplicateRelationError: 关系名重复
        """
        if config is None:
            config = CascadeConfig(tuple(deletes_with))

        seen = set()
        for name in config.deletes_with:
            if name in seen:
                error = DuplicateRelationError(model, name)
                _logger.error(f"级联配置错误: {error}")
                raise error
            seen.add(name)

        with self._lock:
            self._configs[model] = config
            self._resolved.pop(model, None)

        mapper = inspect(model, raiseerr=False)
        if mapper is not None and mapper.configured:
            self.resolve(model)

        _logger.debug(f"注册级联配置: {model.__name__} -> {list(config.deletes_with)}")
        return config

    def unregister(self, model: type) -> None:
        with self._lock:
            self._configs.pop(model, None)
            self._resolved.pop(model, None)

    def clear(self) -> None:
        with self._lock:
            self._configs.clear()
            self._resolved.clear()

    def _lookup(self, model: type) -> Optional[type]:
        for cls in getattr(model, "__mro__", (model,)):
            if cls in self._configs:
                return cls
        return None

    def is_registered(self, model: type) -> bool:
        return self._lookup(model) is not None

    def get_config(self, model: type) -> Optional[CascadeConfig]:
        owner = self._lookup(model)
        if owner is None:
            return None
        return self._configs[owner]

    def resolve(self, model: type) -> Tuple[RelationDescriptor, ...]:
        """获取模型的级联关系描述（带缓存）

        未注册的模型返回空元组。
        """
        resolved = self._resolved.get(model)
        if resolved is not None:
            return resolved

        config = self.get_config(model)
        if config is None:
            return ()

        try:
            descriptors = tuple(resolve_relation(model, name) for name in config.deletes_with)
        except (UnresolvedRelationError, UnsupportedRelationError) as e:
            _logger.error(f"级联配置错误: {e}")
            raise

        with self._lock:
            self._resolved[model] = descriptors
        return descriptors

    def validate(self) -> None:
        """解析所有已注册模型，配置有误时立即抛出异常"""
        for model in self.models():
            self.resolve(model)

    def models(self) -> List[type]:
        with self._lock:
            return list(self._configs)

    def __contains__(self, model: type) -> bool:
        return self.is_registered(model)

    def __len__(self) -> int:
        return len(self._configs)


# 全局默认注册表
cascade_registry = CascadeRegistry()


def register_cascade(
    model: type,
    deletes_with: Iterable[str] = (),
    registry: Optional[CascadeRegistry] = None,
) -> CascadeConfig:
    """在注册表（默认全局注册表）中注册模型的级联关系"""
    if registry is None:
        registry = cascade_registry
    return registry.register(model, deletes_with)
