# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for Decision Links."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from decision_links.graph_service import GRAPH_DIRECTIONS, GraphFormat
from decision_links.models import ArtifactType

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".decision_links.yml"


class Config:
    """Configuration for the Decision Links graph engine and MCP server.

    Loads configuration from .decision_links.yml with validation and defaults.
    """

    DEFAULTS = {
        "artifacts_dir": "docs/architecture",
        "default_graph_format": GraphFormat.MERMAID,
        "graph_direction": "TB",
        "include_types": [],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _defaults(self) -> Dict[str, Any]:
        return {key: (list(value) if isinstance(value, list) else value)
                for key, value in self.DEFAULTS.items()}

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self._defaults()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self._defaults()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self._defaults()
                return

            self._config = self._defaults()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()
        except OSError as e:
            logger.warning(
                f"Could not read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        if not isinstance(value, expected_type):
            return False

        if key == "artifacts_dir":
            return bool(value.strip())
        elif key == "default_graph_format":
            return value in GraphFormat.ALL
        elif key == "graph_direction":
            return value in GRAPH_DIRECTIONS
        elif key == "include_types":
            return all(t in ArtifactType.ALL for t in value)

        return True

    @property
    def artifacts_dir(self) -> Path:
        """Directory holding the JSON artifact store, relative to the config file."""
        value = self._config["artifacts_dir"]
        assert isinstance(value, str)
        path = Path(value)
        if path.is_absolute():
            return path
        return self.config_path.parent / path

    @property
    def default_graph_format(self) -> str:
        """Graph format used when a caller does not specify one."""
        value = self._config["default_graph_format"]
        assert isinstance(value, str)
        return value

    @property
    def graph_direction(self) -> str:
        """Layout direction for rendered graphs."""
        value = self._config["graph_direction"]
        assert isinstance(value, str)
        return value

    @property
    def include_types(self) -> List[str]:
        """Artifact types rendered by default (empty means all)."""
        value = self._config["include_types"]
        assert isinstance(value, list)
        return value
