"""Application configuration module for the locale sync pipeline."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from locale_sync.exceptions import ConfigurationError
from locale_sync.logging_config import setup_logger
from locale_sync.skip_rules import parse_list_input

DEFAULT_API_BASE_URL = 'https://api.shipi18n.com'
DEFAULT_COMMIT_MESSAGE = 'chore: update translations [skip ci]'
DEFAULT_BRANCH_NAME = 'locale-sync-translations'
DEFAULT_MAX_RETRIES = 2
MAX_RETRIES_LIMIT = 5

# Config keys that can be overridden by a CI step input of the same name,
# read from INPUT_<NAME>.
STEP_INPUT_KEYS = (
    'api_key',
    'source_file',
    'source_dir',
    'target_languages',
    'output_dir',
    'source_language',
    'incremental',
    'create_pr',
    'commit_message',
    'branch_name',
    'skip_keys',
    'skip_paths',
    'verify',
    'verify_mode',
    'self_correct',
    'max_retries',
    'dry_run',
    'github_token',
)

_TRUE_VALUES = {'true', 'yes', '1', 'on'}
_FALSE_VALUES = {'false', 'no', '0', 'off', ''}


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    source_file: Optional[str]
    source_dir: Optional[str]
    output_dir: Optional[str]
    report_file_path: str

    # Translation service
    api_key: str
    api_base_url: str
    request_timeout: float

    # Language configuration
    source_language: str
    target_languages: List[str]

    # Processing settings
    incremental: bool
    dry_run: bool
    skip_keys: List[str] = field(default_factory=list)
    skip_paths: List[str] = field(default_factory=list)
    verify: bool = False
    verify_mode: str = 'quick'
    self_correct: bool = False
    max_retries: int = DEFAULT_MAX_RETRIES

    # Publishing
    create_pr: bool = False
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    branch_name: str = DEFAULT_BRANCH_NAME
    github_token: Optional[str] = None


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret YAML booleans and 'true'/'false'/'yes'/'no'/'1'/'0' strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return default


def parse_max_retries(value: Any) -> int:
    """Retry budget for self-correcting mode, capped at MAX_RETRIES_LIMIT."""
    try:
        retries = int(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_RETRIES
    return max(0, min(retries, MAX_RETRIES_LIMIT))


def _compute_project_root() -> str:
    """The workspace the CI runner checked out, or the current directory."""
    return os.path.abspath(os.environ.get('GITHUB_WORKSPACE') or os.getcwd())


def _load_dotenv_files(project_root: str) -> Optional[str]:
    """Load a .env file from the project root, if present. Returns the path loaded."""
    dotenv_path = os.path.join(project_root, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)
        return dotenv_path
    return None


def _resolve_config_file(project_root: str) -> str:
    # LOCALE_SYNC_CONFIG_FILE wins over 'config.yaml' in the project root.
    config_file = os.environ.get('LOCALE_SYNC_CONFIG_FILE') or os.path.join(project_root, 'config.yaml')
    return os.path.abspath(config_file)


def _config_notice(message: str) -> None:
    # Logging is configured from this very file, so loader messages go to stderr.
    print(f"locale-sync config: {message}", file=sys.stderr)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """
    Read the optional YAML config file.

    The file is optional: a CI run can be driven entirely by INPUT_* step
    inputs, so every problem with it is reported and an empty mapping returned.
    """
    config_file = _resolve_config_file(project_root)
    fallback = "relying on step inputs and defaults"

    if not os.path.exists(config_file):
        _config_notice(f"'{config_file}' not found; {fallback}.")
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as config_stream:
            loaded = yaml.safe_load(config_stream)
    except yaml.YAMLError as e:
        _config_notice(f"Invalid YAML in '{config_file}' ({e}); {fallback}.")
        return {}
    except (OSError, UnicodeDecodeError) as e:
        _config_notice(f"Cannot read '{config_file}' ({e}); {fallback}.")
        return {}

    if loaded is None:
        _config_notice(f"'{config_file}' is empty; {fallback}.")
        return {}
    if not isinstance(loaded, dict):
        _config_notice(f"'{config_file}' must hold a mapping of settings, got {type(loaded).__name__}; {fallback}.")
        return {}

    _config_notice(f"loaded settings from '{config_file}'; step inputs override them.")
    return loaded


def _apply_step_inputs(config: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay INPUT_<NAME> environment variables onto the file configuration."""
    merged = dict(config)
    for key in STEP_INPUT_KEYS:
        name = key.upper()
        # Actions keeps dashes in input names (INPUT_SOURCE-FILE); accept both spellings.
        value = os.environ.get(f"INPUT_{name}") or os.environ.get(f"INPUT_{name.replace('_', '-')}")
        if value is not None and value.strip() != '':
            merged[key] = value.strip()
    return merged


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {}) or {}
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path', 'logs/locale_sync.log')
    log_to_console = parse_bool(log_config.get('log_to_console'), default=True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def load_app_config() -> AppConfig:
    """
    Load application configuration from the YAML file, .env and step inputs.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ConfigurationError: If no target language or no API key is configured.
    """
    project_root = _compute_project_root()

    dotenv_path = _load_dotenv_files(project_root)

    config = _apply_step_inputs(_load_yaml_config(project_root))

    logger = _setup_logger_from_config(config)
    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.info("No .env file found in '%s'. Relying on the process environment.", project_root)

    target_languages = parse_list_input(config.get('target_languages'))
    if not target_languages:
        raise ConfigurationError("At least one target language must be configured (target_languages)")

    api_key = config.get('api_key') or os.environ.get('LOCALE_SYNC_API_KEY')
    if not api_key:
        raise ConfigurationError("An API key is required: set INPUT_API_KEY or LOCALE_SYNC_API_KEY")

    return AppConfig(
        project_root=project_root,
        source_file=config.get('source_file') or None,
        source_dir=config.get('source_dir') or None,
        output_dir=config.get('output_dir') or None,
        report_file_path=config.get('report_file_path', os.path.join('logs', 'verification_report.md')),
        api_key=api_key,
        api_base_url=config.get('api_base_url', DEFAULT_API_BASE_URL),
        request_timeout=float(config.get('request_timeout', 60)),
        source_language=config.get('source_language') or 'en',
        target_languages=target_languages,
        incremental=parse_bool(config.get('incremental'), default=True),
        dry_run=parse_bool(config.get('dry_run'), default=False),
        skip_keys=parse_list_input(config.get('skip_keys')),
        skip_paths=parse_list_input(config.get('skip_paths')),
        verify=parse_bool(config.get('verify'), default=False),
        verify_mode=config.get('verify_mode') or 'quick',
        self_correct=parse_bool(config.get('self_correct'), default=False),
        max_retries=parse_max_retries(config.get('max_retries')),
        create_pr=parse_bool(config.get('create_pr'), default=False),
        commit_message=config.get('commit_message') or DEFAULT_COMMIT_MESSAGE,
        branch_name=config.get('branch_name') or DEFAULT_BRANCH_NAME,
        github_token=config.get('github_token') or os.environ.get('GITHUB_TOKEN')
    )
