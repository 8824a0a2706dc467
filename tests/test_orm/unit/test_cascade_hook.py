"""级联钩子测试

覆盖：
1. 钩子安装/移除
2. 实例删除 session.delete(obj)
3. 按主键批量删除（executemany）
4. 多级级联链（客户 -> 订单 -> 订单项）
5. Mixin 实例方法 restore() / force_delete()
"""

from datetime import datetime

import pytest
from sqlalchemy import delete, func, select

from ycascade.orm import (
    CascadeError,
    CascadeHook,
    activate_cascade_hook,
    deactivate_cascade_hook,
    delete_where,
    is_cascade_hook_active,
    restore_where,
)
from tests.helpers import (
    Customer,
    Ledger,
    LedgerEntry,
    Order,
    OrderItem,
    Payment,
    create_order,
    stamps,
)


T0 = datetime(2024, 1, 1, 10, 0, 0)
T1 = datetime(2024, 1, 1, 11, 0, 0)


def _count(session, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model).where(*criteria).execution_options(include_deleted=True)
    return session.execute(stmt).scalar_one()


class TestHookInstallation:
    """钩子安装测试"""

    def test_install_and_remove(self, session_factory):
        """安装后生效，移除后不再拦截"""
        hook = CascadeHook()
        assert hook.installed is False

        hook.install(session_factory)
        assert hook.installed is True

        hook.remove()
        assert hook.installed is False

        session = session_factory()
        order = create_order(session, "A")
        session.commit()
        session.execute(delete(Payment).where(Payment.order_id == order.id))
        session.execute(delete(OrderItem).where(OrderItem.order_id == order.id))
        session.execute(delete(Order).where(Order.id == order.id))
        session.commit()
        assert _count(session, Order) == 0
        session.close()

    def test_install_is_idempotent(self, session_factory):
        """重复安装同一目标不会重复注册"""
        hook = CascadeHook()
        hook.install(session_factory)
        hook.install(session_factory)
        try:
            assert hook.installed is True
        finally:
            hook.remove()

    def test_global_hook(self, session_factory):
        """全局钩子激活与停用"""
        assert is_cascade_hook_active() is False

        hook = activate_cascade_hook(session_factory)
        try:
            assert is_cascade_hook_active() is True
            assert activate_cascade_hook(session_factory) is hook

            session = session_factory()
            order = create_order(session, "A")
            session.commit()
            delete_where(session, Order, Order.id == order.id)
            session.commit()
            assert stamps(session, Order) != [None]
            session.close()
        finally:
            deactivate_cascade_hook()

        assert is_cascade_hook_active() is False

    def test_default_target_is_session_class(self):
        """默认安装在 Session 类上"""
        hook = CascadeHook().install()
        try:
            assert hook.installed is True
        finally:
            hook.remove()


class TestInstanceDelete:
    """实例删除 session.delete(obj)"""

    def test_soft_delete_instance(self, cascade_session):
        """软删除父对象并级联，父对象保持持久化状态"""
        order = create_order(cascade_session, "A")
        cascade_session.commit()

        cascade_session.delete(order)
        cascade_session.commit()

        assert order in cascade_session
        assert order.deleted_at is not None
        assert order.is_deleted is True
        assert stamps(cascade_session, OrderItem) == [order.deleted_at, order.deleted_at]
        assert _count(cascade_session, Payment) == 0
        assert _count(cascade_session, Order) == 1
        assert cascade_session.query(Order).count() == 0

    def test_one_flush_one_batch(self, cascade_session, statements):
        """同一次 flush 删除的对象合并为一个批次"""
        orders = [create_order(cascade_session, f"O{i}") for i in range(5)]
        cascade_session.commit()
        statements.clear()

        for order in orders:
            cascade_session.delete(order)
        cascade_session.commit()

        assert len(statements.matching("UPDATE", "cascade_order_items")) == 1
        assert len(statements.matching("DELETE", "cascade_payments")) == 1
        assert len(statements.matching("UPDATE", "cascade_orders")) == 1
        assert len(set(stamps(cascade_session, Order))) == 1

    def test_hard_parent_instance(self, cascade_session):
        """不支持软删除的父对象由 flush 物理删除，子记录打删除时间"""
        ledger = Ledger(title="2024")
        cascade_session.add(ledger)
        cascade_session.flush()
        cascade_session.add_all([LedgerEntry(ledger_id=ledger.id) for _ in range(2)])
        cascade_session.commit()
        assert len(ledger.entries) == 2

        cascade_session.delete(ledger)
        cascade_session.commit()

        assert _count(cascade_session, Ledger) == 0
        assert None not in stamps(cascade_session, LedgerEntry)
        assert _count(cascade_session, LedgerEntry) == 2

    def test_unregistered_instance(self, cascade_session):
        """未注册级联的对象按原方式物理删除"""
        order = create_order(cascade_session, "A", payment_count=1)
        cascade_session.commit()

        cascade_session.delete(order.payments[0])
        cascade_session.commit()

        assert _count(cascade_session, Payment) == 0
        assert _count(cascade_session, OrderItem) == 2


class TestBulkByPrimaryKey:
    """按主键批量删除"""

    def test_executemany_delete(self, cascade_session):
        """参数列表形式的删除转换为主键批次"""
        a = create_order(cascade_session, "A")
        b = create_order(cascade_session, "B")
        c = create_order(cascade_session, "C")
        cascade_session.commit()

        cascade_session.execute(delete(Order), [{"id": a.id}, {"id": b.id}])
        cascade_session.commit()

        assert stamps(cascade_session, Order, Order.id == c.id) == [None]
        assert None not in stamps(cascade_session, Order, Order.id.in_([a.id, b.id]))
        assert None not in stamps(cascade_session, OrderItem, OrderItem.order_id.in_([a.id, b.id]))
        assert _count(cascade_session, Payment) == 1

    def test_executemany_replaced_by_single_update(self, cascade_session, statements):
        """父记录只执行一条打删除时间的 UPDATE，不再物理删除"""
        a = create_order(cascade_session, "A")
        b = create_order(cascade_session, "B")
        cascade_session.commit()
        statements.clear()

        cascade_session.execute(delete(Order), [{"id": a.id}, {"id": b.id}])

        assert len(statements.matching("UPDATE", "cascade_orders")) == 1
        assert statements.matching("DELETE", "cascade_orders") == []
        cascade_session.commit()
        assert len(stamps(cascade_session, Order, Order.id.in_([a.id, b.id]))) == 2

    def test_executemany_delete_then_restore(self, cascade_session):
        """批量删除后可以按条件恢复，子记录一并恢复"""
        a = create_order(cascade_session, "A")
        b = create_order(cascade_session, "B")
        cascade_session.commit()

        cascade_session.execute(delete(Order), [{"id": a.id}, {"id": b.id}])
        cascade_session.commit()
        restore_where(cascade_session, Order, Order.id == a.id)
        cascade_session.commit()

        assert stamps(cascade_session, Order, Order.id == a.id) == [None]
        assert stamps(cascade_session, OrderItem, OrderItem.order_id == a.id) == [None, None]
        assert None not in stamps(cascade_session, OrderItem, OrderItem.order_id == b.id)


class TestMultiLevelChain:
    """多级级联：客户 -> 订单 -> 订单项/支付记录"""

    @pytest.fixture
    def customer(self, cascade_session):
        customer = Customer(name="alice")
        cascade_session.add(customer)
        cascade_session.flush()
        create_order(cascade_session, "A", customer=customer)
        create_order(cascade_session, "B", customer=customer)
        cascade_session.commit()
        return customer

    def test_delete_chain(self, cascade_session, customer):
        """删除客户时订单和订单项一起删除"""
        delete_where(cascade_session, Customer, Customer.id == customer.id, cascade_deleted_at=T1)
        cascade_session.commit()

        assert stamps(cascade_session, Customer) == [T1]
        assert stamps(cascade_session, Order) == [T1, T1]
        assert stamps(cascade_session, OrderItem) == [T1] * 4
        assert _count(cascade_session, Payment) == 0

    def test_restore_chain(self, cascade_session, customer):
        """恢复客户时逐级恢复，单独删除的订单保持删除"""
        order_a, order_b = cascade_session.execute(
            select(Order).order_by(Order.id)
        ).scalars().all()
        delete_where(cascade_session, Order, Order.id == order_a.id, cascade_deleted_at=T0)
        delete_where(cascade_session, Customer, Customer.id == customer.id, cascade_deleted_at=T1)
        cascade_session.commit()

        restore_where(cascade_session, Customer, Customer.id == customer.id)
        cascade_session.commit()

        assert stamps(cascade_session, Customer) == [None]
        assert stamps(cascade_session, Order, Order.id == order_a.id) == [T0]
        assert stamps(cascade_session, Order, Order.id == order_b.id) == [None]
        assert stamps(cascade_session, OrderItem, OrderItem.order_id == order_a.id) == [T0, T0]
        assert stamps(cascade_session, OrderItem, OrderItem.order_id == order_b.id) == [None, None]

    def test_force_delete_chain(self, cascade_session, customer):
        """强制删除沿整条链物理删除"""
        customer.force_delete()
        cascade_session.commit()

        assert _count(cascade_session, Customer) == 0
        assert _count(cascade_session, Order) == 0
        assert _count(cascade_session, OrderItem) == 0
        assert _count(cascade_session, Payment) == 0


class TestMixinMethods:
    """CascadeDeletesMixin 实例方法"""

    def test_restore(self, cascade_session):
        """restore() 恢复对象及随它删除的子记录"""
        order = create_order(cascade_session, "A")
        cascade_session.commit()
        cascade_session.delete(order)
        cascade_session.commit()

        assert order.restore() == 1
        cascade_session.commit()

        assert order.deleted_at is None
        assert stamps(cascade_session, OrderItem) == [None, None]
        assert cascade_session.query(Order).count() == 1

    def test_restore_live_object(self, cascade_session):
        """未删除的对象恢复 0 行"""
        order = create_order(cascade_session, "A")
        cascade_session.commit()

        assert order.restore() == 0

    def test_force_delete(self, cascade_session):
        """force_delete() 物理删除对象及子记录"""
        order = create_order(cascade_session, "A")
        cascade_session.commit()

        assert order.force_delete() == 1
        cascade_session.commit()

        assert _count(cascade_session, Order) == 0
        assert _count(cascade_session, OrderItem) == 0

    def test_detached_object(self):
        """未关联会话的对象无法执行级联操作"""
        with pytest.raises(CascadeError):
            Order(order_no="X").restore()
        with pytest.raises(CascadeError):
            Order(order_no="X").force_delete()
