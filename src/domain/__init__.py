"""Rating-system domain modules."""

from domain.config_base import BaseSystemConfig, load_system_config, load_system_configs

__all__ = ["BaseSystemConfig", "load_system_config", "load_system_configs"]
