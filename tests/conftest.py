"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 数据库连接
- 安装了级联钩子的会话
- 语句计数器（替代真实执行器的观察点）
"""

import os
import tempfile
from typing import Generator, List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ycascade.config import CascadeSettings, configure_cascade
from ycascade.orm import CascadeHook


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


@pytest.fixture(autouse=True)
def reset_cascade_settings():
    """每个测试使用默认的全局级联配置"""
    configure_cascade(CascadeSettings())
    yield
    configure_cascade(CascadeSettings())


# ==================== 数据库 Fixtures ====================

@pytest.fixture
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False 确保：
    1. 所有操作使用同一个连接（StaticPool）
    2. 允许跨线程访问（check_same_thread=False）
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(memory_engine):
    """独立的 sessionmaker，钩子只安装在它上面"""
    return sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """创建数据库会话（未安装级联钩子）"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cascade_hook(session_factory) -> Generator[CascadeHook, None, None]:
    """在测试专用的 sessionmaker 上安装级联钩子"""
    hook = CascadeHook().install(session_factory)
    yield hook
    hook.remove()


@pytest.fixture
def cascade_session(session_factory, cascade_hook) -> Generator[Session, None, None]:
    """安装了级联钩子的数据库会话"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class StatementRecorder:
    """记录发往数据库的 SQL 语句"""

    def __init__(self):
        self.statements: List[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(" ".join(statement.split()))

    def clear(self):
        self.statements.clear()

    @property
    def count(self) -> int:
        return len(self.statements)

    def matching(self, prefix: str, table: str) -> List[str]:
        """以 prefix 开头且涉及 table 的语句"""
        return [
            s for s in self.statements
            if s.upper().startswith(prefix.upper()) and f" {table}" in s
        ]


@pytest.fixture
def statements(memory_engine) -> Generator[StatementRecorder, None, None]:
    """语句计数器"""
    recorder = StatementRecorder()
    event.listen(memory_engine, "before_cursor_execute", recorder)
    yield recorder
    event.remove(memory_engine, "before_cursor_execute", recorder)
