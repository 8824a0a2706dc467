"""配置类测试"""

from datetime import timezone

import pytest

from ycascade.config import (
    AppSettings,
    CascadeSettings,
    LoggingSettings,
    configure_cascade,
    get_cascade_settings,
)


class TestCascadeSettings:
    """CascadeSettings 测试"""

    def test_defaults(self):
        """默认值"""
        settings = CascadeSettings()

        assert settings.deleted_field_name == "deleted_at"
        assert settings.include_deleted_option == "include_deleted"
        assert settings.only_deleted_option == "only_deleted"
        assert settings.restore_option == "cascade_restore"
        assert settings.force_delete_option == "force_delete"
        assert settings.deleted_at_option == "cascade_deleted_at"
        assert settings.filter_deleted is True
        assert settings.use_utc is False

    def test_env_prefix(self, monkeypatch):
        """环境变量前缀 YCASCADE_"""
        monkeypatch.setenv("YCASCADE_DELETED_FIELD_NAME", "removed_at")
        monkeypatch.setenv("YCASCADE_FILTER_DELETED", "false")

        settings = CascadeSettings()

        assert settings.deleted_field_name == "removed_at"
        assert settings.filter_deleted is False

    def test_now_local(self):
        """默认使用本地时间（无时区）"""
        assert CascadeSettings().now().tzinfo is None

    def test_now_utc(self):
        """use_utc=True 时使用 UTC 时间"""
        assert CascadeSettings(use_utc=True).now().tzinfo is timezone.utc


class TestLoggingSettings:
    """LoggingSettings 测试"""

    def test_defaults(self):
        settings = LoggingSettings()

        assert settings.level == "INFO"
        assert settings.file_path == ""
        assert settings.enable_console is True
        assert settings.log_statements is False

    def test_env_prefix(self, monkeypatch):
        """环境变量前缀 YCASCADE_LOG_"""
        monkeypatch.setenv("YCASCADE_LOG_LEVEL", "WARNING")
        assert LoggingSettings().level == "WARNING"


class TestAppSettings:
    """AppSettings 测试"""

    def test_nested_defaults(self):
        settings = AppSettings()

        assert isinstance(settings.cascade, CascadeSettings)
        assert isinstance(settings.logging, LoggingSettings)

    def test_nested_values(self):
        settings = AppSettings(cascade={"restore_option": "undelete"}, logging={"level": "DEBUG"})

        assert settings.cascade.restore_option == "undelete"
        assert settings.logging.level == "DEBUG"


class TestGlobalSettings:
    """全局配置测试"""

    def test_default_global(self):
        """未配置时使用默认值"""
        assert get_cascade_settings().deleted_field_name == "deleted_at"

    def test_configure_with_overrides(self):
        """通过关键字覆盖配置项"""
        settings = configure_cascade(filter_deleted=False)

        assert settings.filter_deleted is False
        assert get_cascade_settings() is settings

    def test_configure_with_instance(self):
        """传入配置对象并覆盖部分字段"""
        base = CascadeSettings(restore_option="undelete")
        settings = configure_cascade(base, use_utc=True)

        assert settings.restore_option == "undelete"
        assert settings.use_utc is True
        assert base.use_utc is False
        assert get_cascade_settings() is settings
