"""ORM模块

基于 SQLAlchemy 的级联软删除扩展，详见 orm_extensions。

使用示例:
    from ycascade.orm import activate_cascade_hook, restore_where

    activate_cascade_hook()

    session.delete(order)
    session.commit()

    restore_where(session, Order, Order.id == order.id)
    session.commit()
"""

from .orm_extensions import *  # noqa: F401,F403
from .orm_extensions import __all__  # noqa: F401
