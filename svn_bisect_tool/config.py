"""Configuration for the svn bisect tool.

Settings come from an optional YAML file and may be overridden by the
``SV_SVN`` and ``SV_COLOR`` environment variables.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import UsageError

logger = logging.getLogger("svn-bisect-tool")

DEFAULT_CONFIG_PATH = Path("~/.config/svn-bisect-tool/config.yaml")
COLOR_MODES = ("auto", "always", "never")


@dataclass
class ToolConfig:
    """Tool configuration.

    Attributes:
        svn_command: Subversion executable to run
        color: Color mode (auto, always, never)
        state_dir: Directory holding the session files, relative to the
            working copy root unless absolute
        stop_on_copy: Do not cross copy/branch boundaries when fetching history
        verbose: Enable DEBUG level logging
    """

    svn_command: str = "svn"
    color: str = "auto"
    state_dir: str = ".svn-bisect"
    stop_on_copy: bool = True
    verbose: bool = False


def _parse_color_flag(value: str) -> str:
    # Same convention as the SV_COLOR variable: only the first letter counts
    first = value.strip().lower()[:1]
    if first in ("y", "t", "1", "a"):
        return "always"
    return "never"


def config_from_dict(config_dict: Dict[str, Any]) -> ToolConfig:
    """Create a ToolConfig from a parsed YAML mapping.

    Args:
        config_dict: Configuration dictionary from YAML

    Returns:
        ToolConfig object

    Raises:
        UsageError: If a value has the wrong type or is not recognized
    """
    config = ToolConfig()

    svn_command = config_dict.get("svn_command", config.svn_command)
    if not isinstance(svn_command, str) or not svn_command:
        raise UsageError("Config 'svn_command' must be a non-empty string")
    config.svn_command = svn_command

    color = config_dict.get("color", config.color)
    if isinstance(color, bool):
        color = "always" if color else "never"
    if color not in COLOR_MODES:
        raise UsageError(f"Config 'color' must be one of: {', '.join(COLOR_MODES)}")
    config.color = color

    state_dir = config_dict.get("state_dir", config.state_dir)
    if not isinstance(state_dir, str) or not state_dir:
        raise UsageError("Config 'state_dir' must be a non-empty string")
    config.state_dir = state_dir

    config.stop_on_copy = bool(config_dict.get("stop_on_copy", config.stop_on_copy))
    config.verbose = bool(config_dict.get("verbose", config.verbose))
    return config


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ToolConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        config_path: Explicit config file. When omitted the default user
            config file is read if it exists.
        environ: Environment mapping (default: os.environ)

    Returns:
        ToolConfig object

    Raises:
        UsageError: If an explicit config file is missing or the YAML is invalid
    """
    env = os.environ if environ is None else environ

    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise UsageError(f"Config file not found: {config_path}")
    else:
        path = DEFAULT_CONFIG_PATH.expanduser()

    config_dict: Dict[str, Any] = {}
    if path.exists():
        try:
            with path.open() as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise UsageError(f"Invalid config file {path}: {e}")
        if loaded is not None and not isinstance(loaded, dict):
            raise UsageError(f"Config file {path} must contain a mapping")
        config_dict = loaded or {}
        logger.debug(f"Loaded config from {path}")

    config = config_from_dict(config_dict)

    if env.get("SV_SVN"):
        config.svn_command = env["SV_SVN"]
    if env.get("SV_COLOR"):
        config.color = _parse_color_flag(env["SV_COLOR"])

    return config
