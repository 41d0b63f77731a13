"""Per-component logging levels from logging-config.yaml."""

import os
import logging
import yaml
from pathlib import Path
from typing import Dict, Optional

CONFIG_FILENAME = "logging-config.yaml"


class LoggingConfig:
    """
    Logging levels for the runtime components and third-party frameworks.

    Resolution order for a component level:
    ``LOG_LEVEL_<COMPONENT>`` env var, ``LOG_LEVEL`` (default component only),
    ``components.<name>`` in the YAML file, ``default_level``.

    Example file::

        default_level: INFO
        components:
          bot: {level: DEBUG, json_format: false}
        frameworks:
          aiogram: WARNING
    """

    _instance: Optional['LoggingConfig'] = None

    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            config_path = self._find_config_file()

        self._config: Dict = {
            'default_level': 'INFO',
            'components': {},
            'frameworks': {},
        }
        if config_path and Path(config_path).exists():
            with open(config_path) as f:
                self._config.update(yaml.safe_load(f) or {})

    @staticmethod
    def _find_config_file() -> Optional[str]:
        current = Path(__file__).parent
        for _ in range(4):
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return str(candidate)
            current = current.parent
        return None

    @classmethod
    def get_instance(cls) -> 'LoggingConfig':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _component(self, component: str):
        return self._config.get('components', {}).get(component)

    def get_level(self, component: str = 'default') -> str:
        """Get log level for a component (runtime, bot, ...)."""
        env_var = f"LOG_LEVEL_{component.upper().replace('-', '_')}"
        if env_level := os.getenv(env_var):
            return env_level.upper()

        if component == 'default' and (env_level := os.getenv('LOG_LEVEL')):
            return env_level.upper()

        comp_cfg = self._component(component)
        if isinstance(comp_cfg, dict) and 'level' in comp_cfg:
            return comp_cfg['level'].upper()
        if isinstance(comp_cfg, str):
            return comp_cfg.upper()

        return self._config.get('default_level', 'INFO').upper()

    def get_json_format(self, component: str = 'default') -> bool:
        """Whether a component logs JSON (default) or plain text."""
        env_var = f"LOG_JSON_FORMAT_{component.upper().replace('-', '_')}"
        if env_json := os.getenv(env_var):
            return env_json.lower() in ('true', '1', 'yes')

        if component == 'default' and (env_json := os.getenv('LOG_JSON')):
            return env_json.lower() in ('true', '1', 'yes')

        comp_cfg = self._component(component)
        if isinstance(comp_cfg, dict):
            return comp_cfg.get('json_format', True)

        return True

    def get_framework_level(self, framework: str) -> Optional[str]:
        """Get log level for a framework logger (aiogram, redis, ...)."""
        level = self._config.get('frameworks', {}).get(framework)
        return level.upper() if level else None

    def apply_framework_levels(self) -> None:
        """Set configured levels on third-party loggers."""
        for framework in self._config.get('frameworks', {}):
            level = self.get_framework_level(framework)
            if level:
                logging.getLogger(framework).setLevel(getattr(logging, level))


def get_logging_config() -> LoggingConfig:
    """Get singleton logging configuration instance."""
    return LoggingConfig.get_instance()
