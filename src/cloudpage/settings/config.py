"""
Cloudpage configuration.

This module provides configuration management for the storage core
and its command line front end: the user's root folder, storage
settings and logging level.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from cloudpage.filesystem.config import StorageConfig

_TRUE_VALUES = ("1", "true", "yes", "on")


class CloudpageConfig(BaseModel):
    """
    Complete Cloudpage configuration.

    Example:
        ```python
        config = CloudpageConfig(
            root="/srv/users/alice",
            storage={"default_page_size": 50, "default_sort": "name,desc"},
            log_level="DEBUG",
        )

        # Load from file
        config = CloudpageConfig.from_file("~/.cloudpage/config.yaml")
        ```
    """

    model_config = {"extra": "forbid"}

    root: Optional[Path] = Field(
        default=None,
        description="Root folder of the user whose files are managed",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Storage listing and paging settings",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("root", mode="before")
    @classmethod
    def expand_root(cls, v):
        """Expand the user's home and make the root absolute."""
        if v is None or v == "":
            return None
        return Path(v).expanduser().absolute()

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        """Normalize and validate the logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    def __str__(self) -> str:
        return f"CloudpageConfig(root={self.root}, log_level={self.log_level})"

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CloudpageConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            root: /srv/users/alice
            log_level: INFO

            storage:
              probe_mime_types: true
              default_page_size: 20
              max_page_size: 1000
              default_sort: name,asc
            ```

        Args:
            path: Path to configuration file

        Returns:
            Loaded CloudpageConfig instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "CloudpageConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            CloudpageConfig instance
        """
        return cls(**data)

    @classmethod
    def from_env(cls, prefix: str = "CLOUDPAGE_") -> "CloudpageConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            CLOUDPAGE_ROOT - Root folder
            CLOUDPAGE_LOG_LEVEL - Logging level

            CLOUDPAGE_STORAGE_PROBE_MIME_TYPES - Detect mime types (true/false)
            CLOUDPAGE_STORAGE_DEFAULT_PAGE_SIZE - Default page size
            CLOUDPAGE_STORAGE_MAX_PAGE_SIZE - Largest allowed page size
            CLOUDPAGE_STORAGE_DEFAULT_SORT - Default sort token
            CLOUDPAGE_STORAGE_TEXT_ENCODING - Encoding for text reads

        Unset variables keep their defaults.

        Args:
            prefix: Environment variable prefix

        Returns:
            CloudpageConfig instance
        """
        storage: dict = {}

        probe = os.environ.get(f"{prefix}STORAGE_PROBE_MIME_TYPES")
        if probe is not None:
            storage["probe_mime_types"] = probe.strip().lower() in _TRUE_VALUES

        for name in ("default_page_size", "max_page_size"):
            value = os.environ.get(f"{prefix}STORAGE_{name.upper()}")
            if value:
                storage[name] = int(value)

        for name in ("default_sort", "text_encoding"):
            value = os.environ.get(f"{prefix}STORAGE_{name.upper()}")
            if value:
                storage[name] = value

        return cls(
            root=os.environ.get(f"{prefix}ROOT"),
            storage=StorageConfig(**storage),
            log_level=os.environ.get(f"{prefix}LOG_LEVEL", "INFO"),
        )

    def to_dict(self) -> dict:
        """
        Export configuration to a dictionary.

        Returns:
            Dictionary representation, loadable with from_dict
        """
        data = {
            "log_level": self.log_level,
            "storage": self.storage.model_dump(),
        }
        if self.root is not None:
            data["root"] = str(self.root)
        return data
