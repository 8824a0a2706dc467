"""软删除能力检测

根据映射元数据判断模型是否支持软删除（是否有删除时间字段）。
"""

from typing import Any, Optional

from sqlalchemy import Column, inspect
from sqlalchemy.orm import ColumnProperty

from ...config import get_cascade_settings


def _deleted_field_name(model: Any, deleted_field_name: Optional[str] = None) -> str:
    # 模型级别 __deleted_at_column__ > 参数 > 全局配置
    return (
        getattr(model, "__deleted_at_column__", None)
        or deleted_field_name
        or get_cascade_settings().deleted_field_name
    )


def _deleted_at_property(model: Any, deleted_field_name: Optional[str] = None) -> Optional[ColumnProperty]:
    mapper = inspect(model, raiseerr=False)
    if mapper is None:
        return None
    name = _deleted_field_name(mapper.class_, deleted_field_name)
    return mapper.column_attrs.get(name)


def is_soft_delete_capable(model: Any, deleted_field_name: Optional[str] = None) -> bool:
    """检查模型是否支持软删除

    Args:
        model: 模型类或 Mapper
        deleted_field_name: 删除时间字段名，默认取模型 __deleted_at_column__ 或全局配置

    Returns:
        模型映射了删除时间字段时返回 True
    """
    return _deleted_at_property(model, deleted_field_name) is not None


def get_deleted_at_column(model: Any, deleted_field_name: Optional[str] = None) -> Optional[Column]:
    """获取删除时间字段对应的表列，不支持软删除时返回 None"""
    prop = _deleted_at_property(model, deleted_field_name)
    if prop is None:
        return None
    return prop.columns[0]


def get_deleted_at_attribute(model: Any, deleted_field_name: Optional[str] = None):
    """获取删除时间字段的 ORM 属性（如 Order.deleted_at），不支持软删除时返回 None"""
    prop = _deleted_at_property(model, deleted_field_name)
    if prop is None:
        return None
    return getattr(prop.parent.class_, prop.key)
