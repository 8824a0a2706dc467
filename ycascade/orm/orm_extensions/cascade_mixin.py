"""级联删除 Mixin

在模型类上声明级联关系，类创建时自动注册到级联注册表。

使用示例:
    from ycascade.orm import CascadeDeletesMixin, SoftDeleteMixin

    class Order(Base, SoftDeleteMixin, CascadeDeletesMixin):
        __tablename__ = "orders"
        __deletes_with__ = ("items", "payments")

        id = Column(Integer, primary_key=True)
        items = relationship("OrderItem", passive_deletes=True)
        payments = relationship("Payment", passive_deletes=True)

    session.delete(order)       # 订单项、支付记录一并删除
    session.commit()

    order.restore()             # 恢复订单以及随它一起删除的子记录
    session.commit()
"""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.orm import object_session

from .cascade_config import cascade_registry
from .cascade_batch import primary_key_criteria
from .cascade_query import force_delete_where, restore_where
from .exceptions import CascadeError


class CascadeDeletesMixin:
    """级联删除 Mixin

    类属性:
        __deletes_with__: 级联关系名，按声明顺序执行
        __cascade_registry__: 注册到的注册表，默认全局注册表

    抽象类（__abstract__ = True）不注册。
    """

    __deletes_with__ = ()
    __cascade_registry__ = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("__abstract__", False):
            return
        registry = cls.__cascade_registry__
        if registry is None:
            registry = cascade_registry
        registry.register(cls, cls.__deletes_with__)

    def _cascade_criteria(self) -> list:
        session = object_session(self)
        if session is None:
            raise CascadeError(f"{type(self).__name__} 实例未关联会话，无法执行级联操作")
        mapper = inspect(type(self))
        return primary_key_criteria(mapper, [mapper.primary_key_from_instance(self)])

    def restore(self) -> int:
        """恢复当前对象及随它一起删除的子记录

        Returns:
            恢复的父记录行数（0 表示对象未被删除）
        """
        criteria = self._cascade_criteria()
        return restore_where(object_session(self), type(self), *criteria)

    def force_delete(self) -> int:
        """物理删除当前对象，级联的子记录同样物理删除"""
        criteria = self._cascade_criteria()
        return force_delete_where(object_session(self), type(self), *criteria)
