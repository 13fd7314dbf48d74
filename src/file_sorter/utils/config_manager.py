"""
Configuration management for file sorter.
Handles loading, validation, and merging of configurations from multiple sources.
"""

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "FILE_SORTER_"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigManager:
    """Manage configuration from defaults, files, environment and command line."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        cli_overrides: Optional[Mapping[str, Any]] = None,
        env_file: Optional[Path] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to a JSON or YAML configuration file
            cli_overrides: Optional command line values, keyed by option name
            env_file: Optional .env file; the nearest .env is used otherwise
        """
        self.config = self._load_default_config()

        if config_file:
            config_file = Path(config_file)
            if config_file.exists():
                self._load_from_file(config_file)
            else:
                logger.warning(f"Configuration file not found: {config_file}")

        self._load_from_env(env_file)

        if cli_overrides:
            self._load_from_cli(cli_overrides)

        self._validate_config()

        logger.debug("Configuration loaded successfully")

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration."""
        return {
            "organization": {
                "root": ".",
                "rules_file": "rules.yaml",
                "max_workers": 4,
                "verify_checksum": False,
                "dry_run": False,
                "recursive": True,
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "ui": {
                "show_progress": True,
            },
        }

    def _load_from_file(self, config_file: Path):
        """Load configuration from file."""
        logger.info(f"Loading configuration from {config_file}")

        with open(config_file, "r", encoding="utf-8") as f:
            if config_file.suffix == ".json":
                file_config = json.load(f)
            elif config_file.suffix in (".yaml", ".yml"):
                file_config = yaml.safe_load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_file}")

        self._deep_merge(self.config, file_config or {})

    def _load_from_env(self, env_file: Optional[Path] = None):
        """Load FILE_SORTER_<SECTION>__<KEY> variables, after reading .env."""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv(find_dotenv(usecwd=True))

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_path = key[len(ENV_PREFIX):].lower().split("__")
                self._set_nested_config(self.config, config_path, value)

        if "LOG_LEVEL" in os.environ:
            self.config["logging"]["level"] = os.environ["LOG_LEVEL"].upper()

    def _load_from_cli(self, cli_overrides: Mapping[str, Any]):
        """Load configuration from command line values."""
        cli_mappings = {
            "root": ["organization", "root"],
            "rules_file": ["organization", "rules_file"],
            "max_workers": ["organization", "max_workers"],
            "verify_checksum": ["organization", "verify_checksum"],
            "dry_run": ["organization", "dry_run"],
            "recursive": ["organization", "recursive"],
            "log_level": ["logging", "level"],
            "log_file": ["logging", "file"],
            "show_progress": ["ui", "show_progress"],
        }

        for arg_name, config_path in cli_mappings.items():
            value = cli_overrides.get(arg_name)
            if value is not None:
                self._set_nested_config(self.config, config_path, value)

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]):
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _set_nested_config(
        self, config_dict: Dict[str, Any], path: List[str], value: Any
    ):
        """Set a value in a nested dictionary using a path."""
        if isinstance(value, str):
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)

        current = config_dict
        for part in path[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    def _validate_config(self):
        """Validate configuration values."""
        errors = []

        organization = self.config["organization"]
        if not isinstance(organization["max_workers"], int) or organization["max_workers"] < 1:
            errors.append("max_workers must be an integer >= 1")

        if not organization["root"]:
            errors.append("organization root must be set")

        for flag in ("verify_checksum", "dry_run", "recursive"):
            if not isinstance(organization[flag], bool):
                errors.append(f"organization {flag} must be true or false")

        level = str(self.config["logging"]["level"]).upper()
        if level not in VALID_LOG_LEVELS:
            errors.append(f"logging level must be one of {VALID_LOG_LEVELS}")
        else:
            self.config["logging"]["level"] = level

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'organization.max_workers')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        current = self.config

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def set(self, path: str, value: Any):
        """
        Set configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'logging.level')
            value: Value to set
        """
        parts = path.split(".")
        current = self.config

        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    def save(self, filepath: Path, format: str = "yaml"):
        """
        Save configuration to file.

        Args:
            filepath: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        logger.info(f"Saving configuration to {filepath}")

        with open(filepath, "w", encoding="utf-8") as f:
            if format == "json":
                json.dump(self.config, f, indent=2)
            elif format in ("yaml", "yml"):
                yaml.safe_dump(self.config, f, default_flow_style=False)
            else:
                raise ValueError(f"Unsupported format: {format}")

    def create_template(self, filepath: Path, format: str = "yaml"):
        """Create a configuration template file."""
        if format == "json":
            # JSON has no comments; describe sections with _comment fields
            template_config = deepcopy(self.config)
            template_config["_comment"] = "File Sorter Configuration Template"
            template_config["organization"]["_comment"] = (
                "Organization root, rule set file and run settings"
            )
            template_config["logging"]["_comment"] = "Logging configuration"
            template_config["ui"]["_comment"] = "User interface settings"

            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(template_config, f, indent=2)
        else:
            self.save(filepath, format)

        logger.info(f"Configuration template created at {filepath}")
