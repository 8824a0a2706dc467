"""SQL查询重写器 - 软删除过滤"""

from __future__ import annotations

from typing import Optional, TypeVar, Union

from sqlalchemy import Table
from sqlalchemy.orm import FromStatement
from sqlalchemy.orm.util import _ORMJoin
from sqlalchemy.sql import Alias, CompoundSelect, Executable, Join, Select, Subquery
from sqlalchemy.sql.visitors import cloned_traverse

Statement = TypeVar('Statement', bound=Union[Select, FromStatement, CompoundSelect, Executable])


def _copy_statement(stmt: Statement) -> Statement:
    """复制语句结构，表和列共享；引用子查询的列指向子查询的副本"""
    return cloned_traverse(stmt, {"detect_subquery_cols": True}, {})


class SoftDeleteRewriter:
    """SQL查询重写器

    为 SELECT 自动添加软删除过滤条件：
    - 默认：FROM 中每个带删除时间字段的表都加 deleted_at IS NULL
    - include_deleted=True：不过滤
    - only_deleted=True：主表改为 deleted_at IS NOT NULL，其余表不过滤

    使用示例:
        rewriter = SoftDeleteRewriter()

        # 包含已删除记录
        session.query(Order).execution_options(include_deleted=True).all()

        # 只查已删除记录
        session.execute(select(Order).execution_options(only_deleted=True))
    """

    def __init__(
            self,
            deleted_field_name: str = "deleted_at",
            include_deleted_option: str = "include_deleted",
            only_deleted_option: str = "only_deleted",
    ):
        self.deleted_field_name = deleted_field_name
        self.include_deleted_option = include_deleted_option
        self.only_deleted_option = only_deleted_option

    def rewrite_statement(self, stmt: Statement, execution_options: Optional[dict] = None) -> Statement:
        """重写 SELECT 类语句，其它语句原样返回

        Args:
            stmt: 待执行的语句
            execution_options: 合并后的执行选项（Session.execute 传入的选项也在其中）
        """
        options = dict(stmt.get_execution_options()) if hasattr(stmt, "get_execution_options") else {}
        options.update(execution_options or {})

        if options.get(self.include_deleted_option):
            return stmt
        only_deleted = bool(options.get(self.only_deleted_option))

        if isinstance(stmt, Select):
            return self.rewrite_select(stmt, only_deleted)

        if isinstance(stmt, CompoundSelect):
            return self.rewrite_compound_select(stmt, only_deleted)

        if isinstance(stmt, FromStatement) and isinstance(stmt.element, Select):
            stmt = _copy_statement(stmt)
            stmt.element = self.rewrite_select(stmt.element, only_deleted)

        return stmt

    def rewrite_select(self, stmt: Select, only_deleted: bool = False) -> Select:
        """重写SELECT语句"""
        froms = stmt.get_final_froms()
        if any(isinstance(from_obj, (Subquery, Alias)) for from_obj in froms):
            # 子查询在副本上改写，调用方的语句保持不变
            stmt = _copy_statement(stmt)
            froms = stmt.get_final_froms()

        for index, from_obj in enumerate(froms):
            stmt = self._analyze_from(stmt, from_obj, only_deleted, index == 0)
        return stmt

    def rewrite_compound_select(self, stmt: CompoundSelect, only_deleted: bool = False) -> CompoundSelect:
        """重写复合SELECT语句（UNION等），返回新语句"""
        stmt = _copy_statement(stmt)
        stmt.selects = [self._rewrite_branch(select_, only_deleted) for select_ in stmt.selects]
        return stmt

    def _rewrite_branch(self, stmt, only_deleted: bool):
        if isinstance(stmt, CompoundSelect):
            return self.rewrite_compound_select(stmt, only_deleted)
        if isinstance(stmt, Select):
            return self.rewrite_select(stmt, only_deleted)
        return stmt

    def _rewrite_subquery(self, subquery: Subquery) -> None:
        if isinstance(subquery.element, CompoundSelect):
            subquery.element = self.rewrite_compound_select(subquery.element)
        elif isinstance(subquery.element, Select):
            subquery.element = self.rewrite_select(subquery.element)

    def _rewrite_join(self, stmt: Select, join_obj: Union[_ORMJoin, Join], only_deleted: bool, primary: bool) -> Select:
        # 只有最左侧的表视为主表
        if isinstance(join_obj.left, (_ORMJoin, Join)):
            stmt = self._rewrite_join(stmt, join_obj.left, only_deleted, primary)
        elif isinstance(join_obj.left, Table):
            stmt = self._rewrite_table(stmt, join_obj.left, only_deleted, primary)

        if isinstance(join_obj.right, (_ORMJoin, Join)):
            stmt = self._rewrite_join(stmt, join_obj.right, only_deleted, False)
        elif isinstance(join_obj.right, Table):
            stmt = self._rewrite_table(stmt, join_obj.right, only_deleted, False)

        return stmt

    def _analyze_from(self, stmt: Select, from_obj, only_deleted: bool, primary: bool) -> Select:
        if isinstance(from_obj, Table):
            return self._rewrite_table(stmt, from_obj, only_deleted, primary)

        if isinstance(from_obj, (_ORMJoin, Join)):
            return self._rewrite_join(stmt, from_obj, only_deleted, primary)

        if isinstance(from_obj, Subquery):
            self._rewrite_subquery(from_obj)
        elif isinstance(from_obj, Alias) and isinstance(from_obj.element, Subquery):
            self._rewrite_subquery(from_obj.element)

        # 原始SQL文本、表别名等无法处理，原样保留
        return stmt

    def _rewrite_table(self, stmt: Select, table: Table, only_deleted: bool, primary: bool) -> Select:
        column_obj = table.columns.get(self.deleted_field_name)
        if column_obj is None:
            return stmt

        if not only_deleted:
            return stmt.filter(column_obj.is_(None))

        if primary:
            return stmt.filter(column_obj.isnot(None))

        # only_deleted 模式下非主表不过滤
        return stmt
