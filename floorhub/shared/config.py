"""Configuration loading utilities."""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv


def get_config_path(
    config_name: str,
    config_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Get path to a configuration file.

    Args:
        config_name: Name of config file (without path).
        config_dir: Directory containing config files. If None, uses
            FLOORHUB_CONFIG_DIR, then the 'config' directory at the repo root.

    Returns:
        Path to the configuration file.
    """
    if config_dir is None:
        config_dir = os.getenv("FLOORHUB_CONFIG_DIR")

    if config_dir is None:
        # repo_root/floorhub/shared/config.py -> repo_root/config/
        repo_root = Path(__file__).parent.parent.parent
        config_dir = repo_root / "config"

    return Path(config_dir) / config_name


def load_yaml_config(
    config_path: Union[str, Path],
    load_env: bool = True,
) -> dict:
    """Load YAML configuration file.

    Args:
        config_path: Path to config file.
        load_env: Whether to load .env file first.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if load_env:
        load_dotenv()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}
