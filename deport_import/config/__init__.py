from .loader import DEFAULT_CONFIG_PATH, ConfigError, load_config

__all__ = ["ConfigError", "load_config", "DEFAULT_CONFIG_PATH"]
