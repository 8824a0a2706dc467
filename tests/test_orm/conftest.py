"""ORM 测试公共 Fixtures"""

import pytest

from tests.helpers import Base


@pytest.fixture(autouse=True)
def cascade_tables(memory_engine):
    """创建级联测试表"""
    Base.metadata.create_all(memory_engine)
    yield
    Base.metadata.drop_all(memory_engine)
