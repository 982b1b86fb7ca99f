"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml

from errors import ConfigurationError

DEFAULT_PORT = 3000

# File fields mirrored into the asset cache, per collection
DEFAULT_FILE_FIELDS = {
    'profile': ['avatar', 'resume'],
    'projects': ['thumbnail', 'hero_image'],
    'settings': ['favicon'],
    'resources': ['file'],
}

DEFAULT_CONFIG: Dict[str, Any] = {
    'backend': {
        'url': '',
        'token': '',
        'identity': '',
        'password': '',
        'auth_collection': '_superusers',
        'per_page': 200,
        'request_timeout': None,
        'verify_ssl': True,
        'use_system_ca': False,
    },
    'content': {
        'files_url_prefix': '/files',
        'sort': {},
    },
    'site': {
        'url': '',
        'title': 'Portfolio',
        'description': 'Personal portfolio',
        'labels_file': None,
        'icons_directory': None,
    },
    'export': {
        'output_directory': 'dist',
        'static_directory': 'public',
        'report_path': None,
    },
    'assets': {
        'cache_directory': 'public/files',
        'concurrency': 8,
        'progress_bars': True,
        'file_fields': DEFAULT_FILE_FIELDS,
    },
    'styles': {
        'enabled': True,
        'command': [
            'npx', '@tailwindcss/cli',
            '-i', '{input}',
            '-o', '{output}',
            '--minify',
            '--content', '{content}',
        ],
        'input': 'styles/globals.css',
        'output': 'css/style.css',
        'content': ['renderers/templates/**/*.html', 'public/js/main.js'],
    },
    'preview': {
        'host': '127.0.0.1',
        'port': DEFAULT_PORT,
    },
    'logging': {
        'level': None,
        'file': None,
    },
}

# Environment variables that override configuration values, in ascending precedence
ENV_OVERRIDES = [
    ('POCKETBASE_URL', 'backend.url'),
    ('BACKEND_URL', 'backend.url'),
    ('BACKEND_TOKEN', 'backend.token'),
    ('SITE_URL', 'site.url'),
    ('PORT', 'preview.port'),
]


class ConfigLoader:
    """Handles loading, layering and validation of configuration."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """
        Build the effective configuration: defaults, then the YAML file, then the environment.

        Args:
            config_path: Optional path to a YAML configuration file
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If an explicit config file doesn't exist
            ConfigurationError: If the file is not a mapping or an override is invalid
            yaml.YAMLError: If YAML parsing fails
        """
        environ = os.environ if environ is None else environ
        config = copy.deepcopy(DEFAULT_CONFIG)

        if config_path:
            config = _deep_merge(config, cls.load_file(config_path, environ))

        return cls.apply_environment(config, environ)

    @classmethod
    def load_file(cls, config_path: str, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Load a YAML file and substitute ``${VAR}`` references."""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return {}
        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a dictionary")

        return cls._substitute_env_vars_recursive(config_data, os.environ if environ is None else environ)

    @classmethod
    def apply_environment(cls, config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
        """Apply BACKEND_URL / SITE_URL / PORT style overrides."""
        merged = copy.deepcopy(config)
        for var_name, path in ENV_OVERRIDES:
            value = environ.get(var_name)
            if not value:
                continue
            if path == 'preview.port':
                value = _parse_port(value, var_name)
            set_nested(merged, path, value)
        return merged

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration with CLI arguments.
        CLI arguments take precedence over environment and file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments namespace

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        if getattr(args, 'output_dir', None):
            set_nested(merged, 'export.output_directory', args.output_dir)

        if getattr(args, 'cache_dir', None):
            set_nested(merged, 'assets.cache_directory', args.cache_dir)

        if getattr(args, 'port', None) is not None:
            set_nested(merged, 'preview.port', args.port)

        if getattr(args, 'no_styles', False):
            set_nested(merged, 'styles.enabled', False)

        if getattr(args, 'no_progress', False):
            set_nested(merged, 'assets.progress_bars', False)

        if getattr(args, 'report', None):
            set_nested(merged, 'export.report_path', args.report)

        if getattr(args, 'log_file', None):
            set_nested(merged, 'logging.file', args.log_file)

        return merged

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigurationError: If validation fails
        """
        cls._validate_required_field(config, 'backend.url')
        cls._validate_url(get_nested(config, 'backend.url'), 'backend.url')

        site_url = get_nested(config, 'site.url')
        if site_url:
            cls._validate_url(site_url, 'site.url')

        cls._validate_required_field(config, 'export.output_directory')
        output_dir = get_nested(config, 'export.output_directory')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ConfigurationError(f"export.output_directory '{output_dir}' is not a directory")

        concurrency = get_nested(config, 'assets.concurrency', 8)
        if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
            raise ConfigurationError("assets.concurrency must be a positive integer")

        per_page = get_nested(config, 'backend.per_page', 200)
        if not isinstance(per_page, int) or isinstance(per_page, bool) or per_page < 1:
            raise ConfigurationError("backend.per_page must be a positive integer")

        timeout = get_nested(config, 'backend.request_timeout')
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            raise ConfigurationError("backend.request_timeout must be a positive number")

        port = get_nested(config, 'preview.port', DEFAULT_PORT)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
            raise ConfigurationError("preview.port must be an integer between 0 and 65535")

        file_fields = get_nested(config, 'assets.file_fields', {})
        if not isinstance(file_fields, dict):
            raise ConfigurationError("assets.file_fields must map collection names to field lists")
        for collection, fields in file_fields.items():
            if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
                raise ConfigurationError(f"assets.file_fields.{collection} must be a list of field names")

        command = get_nested(config, 'styles.command')
        if get_nested(config, 'styles.enabled', True) and (not isinstance(command, list) or not command):
            raise ConfigurationError("styles.command must be a non-empty list when styles are enabled")

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any, environ: Mapping[str, str]) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value, environ) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item, environ) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data, environ)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str, environ: Mapping[str, str]) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = environ.get(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ConfigurationError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ConfigurationError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            raise ConfigurationError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ConfigurationError(f"{field_name} missing hostname: {url}")


def _parse_port(value: str, source: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{source} must be an integer port, got '{value}'")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "backend.url")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config

    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def set_nested(config: dict, path: str, value: Any) -> None:
    """Set a nested configuration value, creating intermediate sections."""
    keys = path.split('.')
    section = config
    for key in keys[:-1]:
        if not isinstance(section.get(key), dict):
            section[key] = {}
        section = section[key]
    section[keys[-1]] = value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'DEFAULT_FILE_FIELDS', 'DEFAULT_PORT', 'get_nested', 'set_nested']
