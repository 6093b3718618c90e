"""Runtime configuration: YAML config file merged with CLI overrides.

Precedence is CLI flags, then the config file, then ``Constants`` defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants
from resolution.models import Repository

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file is unreadable or has invalid values."""


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the YAML configuration file.

    Args:
        config_path: Path to a YAML file, or None.

    Returns:
        Configuration dict (empty when no path is given).

    Raises:
        ConfigError: the file is missing, malformed or not a mapping.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")
    logger.info("Loaded config from: %s", config_path)
    return data


def _repositories(value: Any, key: str) -> List[Repository]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of {{id, url}} entries")
    repos = []
    for item in value:
        if isinstance(item, str):
            repos.append(Repository.parse(item))
        elif isinstance(item, dict) and item.get("url"):
            url = str(item["url"]).rstrip("/")
            repos.append(Repository(str(item.get("id") or url), url))
        else:
            raise ConfigError(f"Invalid entry in '{key}': {item!r}")
    return repos


def _positive_int(value: Any, key: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from e
    if number < 1:
        raise ConfigError(f"'{key}' must be at least 1, got {number}")
    return number


@dataclass
class ManifestConfig:
    """Settings for one manifest-generation run."""

    pom_file: str = Constants.POM_XML_FILE
    output: str = Constants.DEFAULT_OUTPUT_FILE
    local_repository: str = Constants.DEFAULT_LOCAL_REPOSITORY
    repositories: List[Repository] = field(default_factory=list)
    plugin_repositories: List[Repository] = field(default_factory=list)
    jobs: int = Constants.DEFAULT_JOBS
    timeout: int = Constants.REQUEST_TIMEOUT
    central_url: str = Constants.CENTRAL_URL

    @classmethod
    def from_args(cls, args: Any, file_config: Optional[Dict[str, Any]] = None) -> "ManifestConfig":
        """Create config from CLI arguments layered over the config file.

        Args:
            args: Parsed CLI arguments namespace.
            file_config: Mapping loaded by ``load_config``.

        Returns:
            ManifestConfig instance.

        Raises:
            ConfigError: a value has the wrong type.
        """
        data = file_config or {}
        config = cls(
            pom_file=getattr(args, "POM_FILE", None) or Constants.POM_XML_FILE,
            output=str(data.get("output") or Constants.DEFAULT_OUTPUT_FILE),
            local_repository=str(data.get("local_repository") or Constants.DEFAULT_LOCAL_REPOSITORY),
            repositories=_repositories(data.get("repositories"), "repositories"),
            plugin_repositories=_repositories(data.get("plugin_repositories"), "plugin_repositories"),
        )
        if data.get("jobs") is not None:
            config.jobs = _positive_int(data["jobs"], "jobs")
        if data.get("timeout") is not None:
            config.timeout = _positive_int(data["timeout"], "timeout")
        if data.get("central_url"):
            config.central_url = str(data["central_url"]).rstrip("/")

        # CLI overrides
        if getattr(args, "OUTPUT", None):
            config.output = args.OUTPUT
        if getattr(args, "LOCAL_REPOSITORY", None):
            config.local_repository = args.LOCAL_REPOSITORY
        cli_repos = [Repository.parse(value) for value in getattr(args, "REPOSITORIES", None) or []]
        if cli_repos:
            config.repositories = cli_repos + config.repositories
        if getattr(args, "JOBS", None) is not None:
            config.jobs = _positive_int(args.JOBS, "--jobs")
        if getattr(args, "TIMEOUT", None) is not None:
            config.timeout = _positive_int(args.TIMEOUT, "--timeout")
        return config

    def apply(self) -> None:
        """Publish process-wide tunables on ``Constants``."""
        Constants.CENTRAL_URL = self.central_url
        Constants.REQUEST_TIMEOUT = self.timeout
