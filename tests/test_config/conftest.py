"""配置测试 Fixtures"""

import pytest

from ycascade.config import ConfigLoader


@pytest.fixture
def sample_yaml_config(temp_file):
    """示例 YAML 配置"""
    return temp_file(
        "settings.yaml",
        """
cascade:
  deleted_field_name: "removed_at"
  restore_option: "undelete"
  filter_deleted: false
logging:
  level: "DEBUG"
  log_statements: true
""",
    )


@pytest.fixture(autouse=True)
def clear_loader_cache():
    ConfigLoader.clear_cache()
    yield
    ConfigLoader.clear_cache()
