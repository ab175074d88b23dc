"""Unit tests for the app_config module."""
import os
from unittest.mock import patch, MagicMock

import pytest
import yaml

from i18n_ledger import storage
from i18n_ledger.app_config import ConfigError, EngineConfig, load_app_config
from i18n_ledger.exporter import JsonExporter
from i18n_ledger.scheduling import ManualScheduler, TimerScheduler


@pytest.fixture
def config_file(tmp_path):
    def write(content):
        path = tmp_path / 'i18n-ledger.yaml'
        path.write_text(yaml.dump(content) if isinstance(content, dict) else content, encoding='utf-8')
        return str(path)
    return write


@pytest.fixture(autouse=True)
def quiet_logger():
    with patch('i18n_ledger.app_config.setup_logger') as mock_setup:
        mock_setup.return_value = MagicMock()
        yield mock_setup


class TestEngineConfig:
    """Test cases for the EngineConfig dataclass."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.directory == './'
        assert config.auto_export is False
        assert config.debug is False
        assert config.exporter is None
        assert config.files_in is storage.files_in
        assert config.line_reader is storage.line_reader
        assert isinstance(config.scheduler, TimerScheduler)
        assert config.ignore_changes_s == 1.0

    def test_schedulers_are_not_shared(self):
        assert EngineConfig().scheduler is not EngineConfig().scheduler


class TestLoadAppConfig:
    """Test cases for the load_app_config function."""

    def test_load_config_with_valid_yaml_file(self, config_file, quiet_logger):
        path = config_file({
            "directory": "/custom/locales",
            "auto_export": True,
            "timing": {"auto_export_debounce_s": 1.5},
            "logging": {"log_level": "WARNING", "log_file_path": None}
        })

        with patch.dict(os.environ, {}, clear=True):
            config = load_app_config(path)

        assert config.directory == "/custom/locales"
        assert config.auto_export is True
        assert config.auto_export_debounce_s == 1.5
        quiet_logger.assert_called_once_with('WARNING', None, True)

    def test_missing_file_uses_defaults(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            config = load_app_config(str(tmp_path / 'missing.yaml'))

        assert config.directory == './'
        assert config.auto_export is False

    def test_invalid_yaml_uses_defaults(self, config_file):
        path = config_file("directory: [unclosed")
        with patch.dict(os.environ, {}, clear=True):
            config = load_app_config(path)
        assert config.directory == './'

    def test_schema_violation_raises(self, config_file):
        path = config_file({"auto_export": "sometimes"})
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigError, match="auto_export"):
                load_app_config(path)

    def test_unknown_option_raises(self, config_file):
        path = config_file({"directoy": "typo"})
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigError):
                load_app_config(path)

    def test_environment_overrides(self, config_file):
        path = config_file({"directory": "from-file", "debug": False})

        with patch.dict(os.environ, {
            "I18N_LEDGER_DIRECTORY": "from-env",
            "I18N_LEDGER_DEBUG": "true",
            "I18N_LEDGER_AUTO_EXPORT": "0"
        }, clear=True):
            config = load_app_config(path)

        assert config.directory == "from-env"
        assert config.debug is True
        assert config.auto_export is False

    def test_custom_config_file_path_from_environment(self, config_file):
        path = config_file({"directory": "custom"})
        with patch.dict(os.environ, {"I18N_LEDGER_CONFIG_FILE": path}, clear=True):
            config = load_app_config()
        assert config.directory == "custom"

    def test_keyword_overrides_win(self, config_file):
        path = config_file({"directory": "from-file"})
        scheduler = ManualScheduler()
        with patch.dict(os.environ, {}, clear=True):
            config = load_app_config(path, directory="explicit", scheduler=scheduler)
        assert config.directory == "explicit"
        assert config.scheduler is scheduler

    def test_json_exporter_selection(self, config_file):
        path = config_file({"directory": "locales", "exporter": "json", "export_directory": "dist"})
        with patch.dict(os.environ, {}, clear=True):
            config = load_app_config(path)
        assert isinstance(config.exporter, JsonExporter)
        assert config.exporter.output_directory == "dist"

    def test_dotenv_file_is_loaded(self, config_file, tmp_path, monkeypatch):
        path = config_file({})
        monkeypatch.chdir(tmp_path)
        (tmp_path / '.env').write_text("I18N_LEDGER_DIRECTORY=from-dotenv\n", encoding='utf-8')

        with patch.dict(os.environ, {}, clear=True):
            with patch("i18n_ledger.app_config.load_dotenv") as mock_load_dotenv:
                load_app_config(path)

        mock_load_dotenv.assert_called_once_with(str(tmp_path / '.env'))
