"""
Configuration loader with hierarchy support.

Hierarchy (lowest to highest priority):
1. Defaults (built into schema)
2. Environment variables (VOICETUTOR_*, nested with "__")
3. Global config (~/.voicetutor/config.yaml)
4. Project config (.voicetutor/config.yaml)
5. Local config (.voicetutor/config.local.yaml) - gitignored
6. Explicit overrides

The merged YAML reaches TutorConfig as init kwargs, which pydantic-settings
ranks above the environment, so env vars only fill fields no file sets.
"""

from pathlib import Path
from typing import Any

import yaml

from voicetutor.config.schema import TutorConfig

APP_DIR_NAME = ".voicetutor"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_yaml_config(path: Path) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary (empty if file doesn't exist)
    """
    if not path.exists():
        return {}

    with open(path) as f:
        content = yaml.safe_load(f)
        if isinstance(content, dict):
            return content
        return {}


def find_project_root() -> Path | None:
    """
    Find project root by looking for a .voicetutor directory or .git.

    Returns:
        Project root path or None if not in a project
    """
    current = Path.cwd()

    while current != current.parent:
        if (current / APP_DIR_NAME).is_dir() or (current / ".git").is_dir():
            return current
        current = current.parent

    return None


class ConfigLoader:
    """Configuration loader with hierarchy support."""

    def __init__(
        self,
        global_config_dir: Path | None = None,
        project_root: Path | None = None,
    ) -> None:
        """
        Initialize configuration loader.

        Args:
            global_config_dir: Global config directory (default: ~/.voicetutor)
            project_root: Project root (auto-detected if None)
        """
        self.global_config_dir = (global_config_dir or Path("~") / APP_DIR_NAME).expanduser()
        self.project_root = project_root or find_project_root()

    def load(self, overrides: dict[str, Any] | None = None) -> TutorConfig:
        """
        Load configuration with full hierarchy.

        Args:
            overrides: Explicit overrides applied last

        Returns:
            Merged configuration
        """
        config: dict[str, Any] = {}

        config = deep_merge(config, load_yaml_config(self.global_config_dir / "config.yaml"))

        if self.project_root:
            app_dir = self.project_root / APP_DIR_NAME
            config = deep_merge(config, load_yaml_config(app_dir / "config.yaml"))
            config = deep_merge(config, load_yaml_config(app_dir / "config.local.yaml"))

        if overrides:
            config = deep_merge(config, overrides)

        # Env vars fill whatever the merged files leave unset
        return TutorConfig(**config)
