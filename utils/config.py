"""
Configuration Management

Centralized YAML config loading for the monitor.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()


class ConfigManager:
    """Manages all configuration files"""

    def __init__(self, config_root: str = "config"):
        self.config_root = Path(config_root)
        self.global_config: Dict[str, Any] = {}
        self.module_configs: Dict[str, Dict] = {}

    def load_global_config(self) -> dict:
        """Load global settings"""
        settings_path = self.config_root / "settings.yaml"

        if settings_path.exists():
            with open(settings_path, 'r', encoding='utf-8') as f:
                self.global_config = yaml.safe_load(f) or {}
        else:
            self.global_config = self._default_global_config()

        return self.global_config

    def load_module_config(self, module_name: str) -> dict:
        """Load configuration for a specific module"""
        config_path = self.config_root / "modules" / f"{module_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Module config not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        config = self._apply_env_overrides(module_name, config)
        self.module_configs[module_name] = config
        return config

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Examples:
            config.get('app.name')
            config.get('monitor.enabled_targets')
        """
        keys = path.split('.')
        value = self.global_config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def _apply_env_overrides(self, module_name: str, config: dict) -> dict:
        """Environment variables win over file values"""
        if module_name == 'monitor':
            timeout = os.getenv("VOX_COMMAND_TIMEOUT")
            if timeout:
                config = dict(config)
                config['timeout'] = timeout
        return config

    def _default_global_config(self) -> dict:
        """Default global configuration"""
        return {
            'app': {
                'name': 'VOX Output Monitor',
                'version': '1.0.0',
                'debug': False
            },
            'monitor': {
                'enabled_targets': [
                    'Terminal', 'iTerm2', 'Claude Code',
                    'VS Code', 'Cursor', 'Windsurf'
                ]
            }
        }


# Global instance
_config_manager = None


def get_config_manager(config_root: str = "config") -> ConfigManager:
    """Get global config manager"""
    global _config_manager
    if _config_manager is None or _config_manager.config_root != Path(config_root):
        _config_manager = ConfigManager(config_root)
    return _config_manager
