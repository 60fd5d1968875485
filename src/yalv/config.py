"""
Manage the configuration of the tool
"""

from pathlib import Path

import yaml

from .constants import AppInfo

DEFAULT_CONFIG = {
    "VIRSH_PATH": "virsh",
    "SSH_PATH": "ssh",
    # None lets virsh pick its default connection
    "CONNECT_URI": None,
    "SSH_USER": None,
    "SSH_RESOLVE_ADDRESS": False,
    "LOG_FILE_PATH": str(Path.home() / ".cache" / AppInfo.name / f"{AppInfo.name}.log"),
    "LOG_LEVEL": "INFO",
}


def get_log_path(config: dict | None = None) -> Path:
    """
    Returns the path to the log file as specified in the configuration,
    ensuring its parent directory exists.
    """
    if config is None:
        config = load_config()
    log_file_path_str = config.get("LOG_FILE_PATH") or DEFAULT_CONFIG["LOG_FILE_PATH"]
    log_path = Path(log_file_path_str).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path


def get_config_paths():
    """Returns the potential paths for the config file."""
    return [
        Path.home() / ".config" / AppInfo.name / "config.yaml",
        Path("/etc") / AppInfo.name / "config.yaml",
    ]


def load_config():
    """
    Loads the configuration from the first found config file.
    If no config file is found, returns the default configuration.
    Merges the loaded configuration with default values to ensure all keys are present.
    """
    config_path = None
    user_config = {}

    for path in get_config_paths():
        if path.exists():
            config_path = path
            break

    if config_path:
        with open(config_path, encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Invalid configuration in {config_path}: expected a mapping")

    config = DEFAULT_CONFIG.copy()
    if user_config:
        config.update(user_config)
        # A key set to null in yaml falls back to its default.
        for key, value in config.items():
            if value is None and key in DEFAULT_CONFIG:
                config[key] = DEFAULT_CONFIG[key]

    return config
