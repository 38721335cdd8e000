"""Application configuration module for the JSON locale translator."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from json_locale_translator.errors import ConfigError
from json_locale_translator.logging_config import setup_logger
from json_locale_translator.scheduler import validate_concurrency_limit

SUPPORTED_PROVIDERS = ('libretranslate', 'openai')


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    source_dir: str
    output_dir: str

    # Languages
    source_lang: str
    target_langs: List[str]
    language_codes: Dict[str, str]

    # Translation service
    provider: str
    api_url: str
    api_token: str
    model_name: str
    openai_api_key: Optional[str]
    request_timeout: float
    connect_timeout: float

    # Processing settings
    concurrency_limit: int
    requests_per_minute: Optional[int]
    translate_empty_strings: bool
    dry_run: bool
    show_progress: bool
    failure_report_path: str

    logging: Dict[str, Any] = field(default_factory=dict)


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> None:
    """Load .env files from project root or docker directory."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        load_dotenv(dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        load_dotenv(dotenv_path_docker_dir)


def _load_yaml_config(project_root: str, config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to defaults on any problem."""
    default_config_path = os.path.join(project_root, 'config.yaml')
    if config_file is None:
        config_file = os.environ.get('TRANSLATOR_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

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


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging') or {}
    log_level_str = str(log_config.get('log_level', 'INFO')).upper()
    log_file_path = log_config.get('log_file_path', 'logs/translation_log.log')
    log_to_console = _parse_bool('logging.log_to_console', log_config.get('log_to_console', True))
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _build_language_names(locales_list: List[Dict[str, str]]) -> Dict[str, str]:
    """Build a code -> display name mapping from supported locales."""
    language_codes: Dict[str, str] = {}
    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
    return language_codes


def parse_language_list(value: Any) -> List[str]:
    """Accept either a comma-separated string or a list of codes."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = [str(item) for item in value]
    return list(dict.fromkeys(item.strip() for item in items if item and item.strip()))


def _parse_concurrency(value: Any) -> int:
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigError(f"Concurrency limit must be a positive integer, got {value!r}") from None
    return validate_concurrency_limit(value)


def _parse_requests_per_minute(value: Any) -> Optional[int]:
    if value in (None, '', 0, '0'):
        return None
    try:
        rate = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"requests_per_minute must be a positive integer, got {value!r}") from None
    if rate <= 0:
        raise ConfigError(f"requests_per_minute must be a positive integer, got {value!r}")
    return rate


def _parse_timeout(name: str, value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from None
    if timeout <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return timeout


_TRUE_STRINGS = ('true', 'yes', 'on', '1')
_FALSE_STRINGS = ('false', 'no', 'off', '0')


def _parse_bool(name: str, value: Any) -> bool:
    """Accept real booleans plus the usual true/false spellings from YAML or the environment."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise ConfigError(f"{name} must be true or false, got {value!r}")


def _env_overrides() -> Dict[str, Any]:
    """Configuration values taken from environment variables."""
    env_map = {
        'TRANSLATE_API_URL': 'api_url',
        'TRANSLATE_API_TOKEN': 'api_token',
        'TRANSLATE_CONCURRENCY': 'concurrency_limit',
    }
    return {key: os.environ[var] for var, key in env_map.items() if os.environ.get(var)}


def load_app_config(
        overrides: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None
) -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Precedence, highest first: explicit `overrides` (command line), then
    environment variables, then the YAML file, then built-in defaults.
    Overrides whose value is None are ignored.

    Args:
        overrides: Values that take precedence over every other source.
        config_file: Path of the YAML file. Defaults to TRANSLATOR_CONFIG_FILE
            or config.yaml in the project root.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ConfigError: If a value is invalid.
    """
    project_root = _compute_project_root()
    _load_dotenv_files(project_root)

    config = _load_yaml_config(project_root, config_file)
    config.update(_env_overrides())
    config.update({key: value for key, value in (overrides or {}).items() if value is not None})

    logger = _setup_logger_from_config(config)

    target_langs = parse_language_list(config.get('target_langs', 'de,id,ja'))
    if not target_langs:
        raise ConfigError("At least one target language is required")

    provider = str(config.get('provider', 'libretranslate')).lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(
            f"Unknown translation provider '{provider}'. Expected one of: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    dry_run = _parse_bool('dry_run', config.get('dry_run', False))
    openai_api_key = os.environ.get('OPENAI_API_KEY')
    if provider == 'openai' and not dry_run and not openai_api_key:
        raise ConfigError(
            "OPENAI_API_KEY environment variable not found. "
            "Set it or enable 'dry_run: true' in your config file."
        )

    app_config = AppConfig(
        project_root=project_root,
        source_dir=config.get('source_dir', 'locales/en'),
        output_dir=config.get('output_dir', 'locales'),
        source_lang=config.get('source_lang', 'en'),
        target_langs=target_langs,
        language_codes=_build_language_names(config.get('supported_locales') or []),
        provider=provider,
        api_url=config.get('api_url', 'http://localhost:5000/translate'),
        api_token=config.get('api_token') or '',
        model_name=config.get('model_name', 'gpt-4o-mini'),
        openai_api_key=openai_api_key,
        request_timeout=_parse_timeout('request_timeout', config.get('request_timeout', 60)),
        connect_timeout=_parse_timeout('connect_timeout', config.get('connect_timeout', 10)),
        concurrency_limit=_parse_concurrency(config.get('concurrency_limit', 10)),
        requests_per_minute=_parse_requests_per_minute(config.get('requests_per_minute')),
        translate_empty_strings=_parse_bool('translate_empty_strings', config.get('translate_empty_strings', False)),
        dry_run=dry_run,
        show_progress=_parse_bool('show_progress', config.get('show_progress', True)),
        failure_report_path=config.get(
            'failure_report_path', os.path.join('logs', 'translation_failures_report.md')
        ),
        logging=config.get('logging') or {}
    )

    logger.debug("Loaded configuration: source=%s output=%s langs=%s provider=%s concurrency=%d",
                 app_config.source_dir, app_config.output_dir, ','.join(app_config.target_langs),
                 app_config.provider, app_config.concurrency_limit)
    return app_config
