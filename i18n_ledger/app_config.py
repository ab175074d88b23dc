"""Engine configuration: defaults, YAML file, .env and environment overrides."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import jsonschema
import yaml
from dotenv import load_dotenv

from i18n_ledger import storage
from i18n_ledger.exporter import Exporter, JsonExporter
from i18n_ledger.logging_config import setup_logger
from i18n_ledger.scheduling import Scheduler, TimerScheduler
from i18n_ledger.watcher import watch_directory

DEFAULT_CONFIG_FILE_NAME = 'i18n-ledger.yaml'

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "directory": {"type": "string", "minLength": 1},
        "auto_export": {"type": "boolean"},
        "debug": {"type": "boolean"},
        "exporter": {"enum": ["module", "json"]},
        "export_directory": {"type": "string", "minLength": 1},
        "timing": {
            "type": "object",
            "properties": {
                "change_throttle_s": {"type": "number", "minimum": 0},
                "auto_export_debounce_s": {"type": "number", "minimum": 0},
                "reload_throttle_s": {"type": "number", "minimum": 0},
                "ignore_changes_s": {"type": "number", "minimum": 0},
                "watch_poll_interval_s": {"type": "number", "exclusiveMinimum": 0}
            },
            "additionalProperties": False
        },
        "logging": {
            "type": "object",
            "properties": {
                "log_level": {"type": "string"},
                "log_file_path": {"type": ["string", "null"]},
                "log_to_console": {"type": "boolean"}
            },
            "additionalProperties": False
        }
    },
    "additionalProperties": False
}


class ConfigError(Exception):
    """Raised when the configuration file does not match CONFIG_SCHEMA."""


@dataclass
class EngineConfig:
    """Options recognized by ``TranslationEngine``."""
    directory: str = './'
    auto_export: bool = False
    debug: bool = False
    exporter: Optional[Exporter] = None

    # Storage primitives
    files_in: Callable = storage.files_in
    append_line: Callable = storage.append_line
    line_reader: Callable = storage.line_reader
    line_writer: Callable = storage.line_writer
    create_file: Callable = storage.create_file
    delete_file: Callable = storage.delete_file

    # Timers and watching
    scheduler: Scheduler = field(default_factory=TimerScheduler)
    watcher: Callable = watch_directory
    change_throttle_s: float = 0.0
    auto_export_debounce_s: float = 0.3
    reload_throttle_s: float = 0.3
    ignore_changes_s: float = 1.0
    watch_poll_interval_s: float = 0.5


def _load_dotenv_files(base_dir: str) -> None:
    """Load the .env file of the working directory if there is one."""
    dotenv_path = os.path.join(base_dir, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to an empty mapping when it is unusable."""
    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    if not os.path.exists(config_file):
        print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
              file=sys.stderr)
        return config

    try:
        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _validate_config(config: Dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=config, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '.'.join(str(part) for part in e.absolute_path) or '<root>'
        raise ConfigError(f"Invalid configuration at '{location}': {e.message}") from e


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _setup_logger_from_config(config: Dict[str, Any], debug: bool) -> logging.Logger:
    log_config = config.get('logging', {})
    log_level_str = 'DEBUG' if debug else log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def load_app_config(config_path: Optional[str] = None, **overrides) -> EngineConfig:
    """
    Load the engine configuration.

    The YAML file is ``config_path``, else ``$I18N_LEDGER_CONFIG_FILE``, else
    ``i18n-ledger.yaml`` in the working directory. ``I18N_LEDGER_DIRECTORY``,
    ``I18N_LEDGER_AUTO_EXPORT`` and ``I18N_LEDGER_DEBUG`` override the file,
    and keyword ``overrides`` override everything.

    Returns:
        EngineConfig: The loaded configuration.

    Raises:
        ConfigError: If the YAML content does not match CONFIG_SCHEMA.
    """
    base_dir = os.getcwd()
    _load_dotenv_files(base_dir)

    default_config_path = os.path.join(base_dir, DEFAULT_CONFIG_FILE_NAME)
    config_file = config_path or os.environ.get('I18N_LEDGER_CONFIG_FILE', default_config_path)
    config = _load_yaml_config(config_file)
    _validate_config(config)

    directory = os.environ.get('I18N_LEDGER_DIRECTORY', config.get('directory', './'))
    auto_export = _env_flag('I18N_LEDGER_AUTO_EXPORT', config.get('auto_export', False))
    debug = _env_flag('I18N_LEDGER_DEBUG', config.get('debug', False))

    values: Dict[str, Any] = {
        'directory': directory,
        'auto_export': auto_export,
        'debug': debug,
    }
    values.update(config.get('timing', {}))
    values.update(overrides)

    logger = _setup_logger_from_config(config, values['debug'])
    logger.debug("Configuration loaded from '%s'", config_file)

    if config.get('exporter') == 'json' and 'exporter' not in overrides:
        export_directory = config.get('export_directory', os.path.join(values['directory'], 'export'))
        values['exporter'] = JsonExporter(export_directory)

    return EngineConfig(**values)
