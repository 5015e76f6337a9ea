"""
Reader configuration loading from files and environment variables.
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml

from periodic_metric_reader.config.models import ReaderConfig
from periodic_metric_reader.config.validation import (
    ConfigurationError,
    get_env_var_mappings,
    validate_reader_options,
)

logger = logging.getLogger(__name__)

# Options that may be given in a configuration file. The exporter and the
# aggregation selector are objects and can only be passed in code.
FILE_OPTIONS = ("export_interval_millis", "export_timeout_millis")


class ReaderConfigManager:
    """
    Loads reader options from a YAML or JSON file with environment overrides.

    The file may either hold the options at its top level or under a
    ``reader`` section. Environment variables listed by
    ``get_env_var_mappings()`` take precedence over file values. Every value
    loaded here counts as explicitly supplied and is validated as such.
    """

    def __init__(
        self,
        config_file_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize configuration manager.

        Args:
            config_file_path: Optional path to a .yaml, .yml or .json file
            environ: Environment mapping, defaults to os.environ
        """
        self.config_file_path = os.path.abspath(config_file_path) if config_file_path else None
        self._environ = environ if environ is not None else os.environ

    def load_options(self) -> Dict[str, Any]:
        """
        Load reader options from file and environment.

        Returns:
            Dictionary of option names to values

        Raises:
            ConfigurationError: If the file is missing, unreadable or holds
                unknown options, or an environment value is not a number
        """
        options: Dict[str, Any] = {}

        if self.config_file_path:
            options.update(self._load_config_file())

        options = self._apply_env_overrides(options)

        logger.debug(f"Loaded reader options: {options}")
        return options

    def build_config(self, exporter: Any, aggregation_selector: Optional[Any] = None) -> ReaderConfig:
        """
        Load the options and validate them together with the given exporter.

        Args:
            exporter: Push exporter for the reader
            aggregation_selector: Optional aggregation selector

        Returns:
            Validated ReaderConfig
        """
        return validate_reader_options(
            exporter=exporter,
            aggregation_selector=aggregation_selector,
            **self.load_options()
        )

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration data from file."""
        if not os.path.exists(self.config_file_path):
            raise ConfigurationError(f"Configuration file does not exist: {self.config_file_path}")

        with open(self.config_file_path, 'r', encoding='utf-8') as f:
            if self.config_file_path.endswith('.yaml') or self.config_file_path.endswith('.yml'):
                config_data = yaml.safe_load(f) or {}
            elif self.config_file_path.endswith('.json'):
                config_data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config file format: {self.config_file_path}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {self.config_file_path}")

        if 'reader' in config_data:
            config_data = config_data['reader'] or {}

        unknown = sorted(set(config_data) - set(FILE_OPTIONS))
        if unknown:
            raise ConfigurationError(f"Unknown reader options in {self.config_file_path}: {', '.join(unknown)}")

        return dict(config_data)

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, option_name in get_env_var_mappings().items():
            env_value = self._environ.get(env_var)
            if env_value is None or not env_value.strip():
                continue

            try:
                value = float(env_value)
            except ValueError as e:
                raise ConfigurationError(f"{env_var} must be a number, got {env_value!r}") from e

            config_data[option_name] = int(value) if value.is_integer() else value

        return config_data
