"""软删除Mixin类生成器"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, Type, TYPE_CHECKING

from sqlalchemy import Column, DateTime
from sqlalchemy.sql.type_api import TypeEngine

from ...config import get_cascade_settings


def generate_soft_delete_mixin_class(
    deleted_field_name: str = "deleted_at",
    class_name: str = "_SoftDeleteMixin",
    deleted_field_type: Optional[TypeEngine] = DateTime(),
    generate_delete_method: bool = True,
    delete_method_name: str = "soft_delete",
    delete_method_default_value: Optional[Callable[[], Any]] = None,
    generate_undelete_method: bool = True,
    undelete_method_name: str = "undelete",
) -> Type:
    """生成软删除Mixin类

    此函数动态生成一个Mixin类，为模型添加删除时间字段以及属性级别的软删除方法。

    生成的方法只修改属性，不触发级联；需要级联时使用 session.delete(obj)
    或 CascadeDeletesMixin.restore()。

    Args:
        deleted_field_name: 软删除字段名，默认"deleted_at"
        class_name: 生成的类名
        deleted_field_type: 软删除字段类型，为 None 时不生成字段（使用模型自己定义的字段）
        generate_delete_method: 是否生成软删除方法
        delete_method_name: 软删除方法名
        delete_method_default_value: 软删除时的默认值，默认取全局配置的当前时间
        generate_undelete_method: 是否生成恢复方法
        undelete_method_name: 恢复方法名

    Returns:
        动态生成的Mixin类

    使用示例:
        ArchiveMixin = generate_soft_delete_mixin_class(
            deleted_field_name="archived_at",
            class_name="ArchiveMixin",
        )

        class Report(Base, ArchiveMixin):
            __tablename__ = "report"
            __deleted_at_column__ = "archived_at"
            id = Column(Integer, primary_key=True)
    """
    if delete_method_default_value is None:
        delete_method_default_value = lambda: get_cascade_settings().now()

    class_attributes = {}

    if deleted_field_type is not None:
        class_attributes[deleted_field_name] = Column(deleted_field_name, deleted_field_type, index=True)

    if generate_delete_method:
        def delete_method(_self, v: Optional[Any] = None):
            """软删除当前对象"""
            setattr(_self, deleted_field_name, v or delete_method_default_value())

        class_attributes[delete_method_name] = delete_method

    if generate_undelete_method:
        def undelete_method(_self):
            """恢复软删除的对象（不级联）"""
            setattr(_self, deleted_field_name, None)

        class_attributes[undelete_method_name] = undelete_method

    def is_deleted(_self) -> bool:
        return getattr(_self, deleted_field_name) is not None

    class_attributes["is_deleted"] = property(is_deleted)

    return type(class_name, tuple(), class_attributes)


_SoftDeleteMixinBase = generate_soft_delete_mixin_class()


class SoftDeleteMixin(_SoftDeleteMixinBase):
    """软删除Mixin

    提供 deleted_at 字段，模型因此被识别为支持软删除：
    - 级联删除时，该模型的记录被打上删除时间而不是物理删除
    - 查询时自动过滤已删除记录（需要已激活 CascadeHook）

    提供方法：
    - soft_delete(v=None): 设置 deleted_at 为当前时间或指定值
    - undelete(): 将 deleted_at 设置为 None
    - is_deleted: 属性，检查对象是否已被软删除

    使用示例:
        class OrderItem(Base, SoftDeleteMixin):
            __tablename__ = "order_items"
            id = Column(Integer, primary_key=True)
            order_id = Column(Integer, ForeignKey("orders.id"))

        # 包含已删除记录
        session.query(OrderItem).execution_options(include_deleted=True).all()
    """
    if TYPE_CHECKING:
        deleted_at: Optional[datetime]

        def soft_delete(self, v: Optional[datetime] = None) -> None:
            ...

        def undelete(self) -> None:
            ...

        @property
        def is_deleted(self) -> bool:
            ...
