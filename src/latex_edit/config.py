"""
Configuration management for latex-edit.

Handles loading and managing configuration from files, environment variables,
and command-line options.
"""

from __future__ import annotations

import logging
import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class EditorSettings:
    """Settings for the reference editor."""
    history_limit: int = 50
    normalize_adjacent_math: bool = True


@dataclass
class InsertionSettings:
    """Defaults for insertion commands."""
    wrap_with_math: bool = True
    matrix_rows: int = 2
    matrix_cols: int = 2
    color: Tuple[str, str, str] = ('255', '0', '0')


@dataclass
class RenderSettings:
    """Settings for the Markdown+LaTeX renderer."""
    escape_html: bool = False


@dataclass
class LatexEditConfig:
    """Main configuration for latex-edit."""

    editor: EditorSettings = field(default_factory=EditorSettings)
    insertion: InsertionSettings = field(default_factory=InsertionSettings)
    render: RenderSettings = field(default_factory=RenderSettings)

    log_level: str = 'WARNING'


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


class ConfigManager:
    """Manages latex-edit configuration from multiple sources."""

    def __init__(self, config_file: Optional[Path] = None):
        env_path = os.getenv('LATEX_EDIT_CONFIG')
        if config_file is None and env_path:
            config_file = Path(env_path)

        self.config_dir = config_file.parent if config_file else Path.home() / '.latex-edit'
        self.config_file = config_file or self.config_dir / 'config.yaml'
        self._config: Optional[LatexEditConfig] = None

    def load_config(self) -> LatexEditConfig:
        """Load configuration from all sources."""
        if self._config:
            return self._config

        # Start with defaults
        config = LatexEditConfig()

        # Load from file if it exists
        if self.config_file.exists():
            file_config = self._load_from_file()
            config = self._merge_configs(config, file_config)

        # Override with environment variables
        env_config = self._load_from_env()
        config = self._merge_configs(config, env_config)

        self._config = config
        return config

    def reload(self) -> LatexEditConfig:
        self._config = None
        return self.load_config()

    def _load_from_file(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(self.config_file, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config file %s: %s", self.config_file, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: expected a mapping", self.config_file)
            return {}
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        history_limit = os.getenv('LATEX_EDIT_HISTORY_LIMIT')
        if history_limit:
            env_config.setdefault('editor', {})['history_limit'] = history_limit

        wrap_with_math = os.getenv('LATEX_EDIT_WRAP_WITH_MATH')
        if wrap_with_math:
            env_config.setdefault('insertion', {})['wrap_with_math'] = wrap_with_math

        escape_html = os.getenv('LATEX_EDIT_ESCAPE_HTML')
        if escape_html:
            env_config.setdefault('render', {})['escape_html'] = escape_html

        log_level = os.getenv('LATEX_EDIT_LOG_LEVEL')
        if log_level:
            env_config['log_level'] = log_level

        return env_config

    def _merge_configs(self, base: LatexEditConfig, override: Dict[str, Any]) -> LatexEditConfig:
        """Merge a configuration dictionary into ``base``, skipping bad values."""
        editor = override.get('editor') or {}
        if 'history_limit' in editor:
            try:
                base.editor.history_limit = max(1, int(editor['history_limit']))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid history_limit: %r", editor['history_limit'])
        if 'normalize_adjacent_math' in editor:
            self._set_bool(base.editor, 'normalize_adjacent_math', editor['normalize_adjacent_math'])

        insertion = override.get('insertion') or {}
        if 'wrap_with_math' in insertion:
            self._set_bool(base.insertion, 'wrap_with_math', insertion['wrap_with_math'])
        for key in ('matrix_rows', 'matrix_cols'):
            if key in insertion:
                try:
                    setattr(base.insertion, key, max(1, int(insertion[key])))
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid %s: %r", key, insertion[key])
        if 'color' in insertion:
            color = insertion['color']
            if isinstance(color, (list, tuple)) and len(color) == 3:
                base.insertion.color = tuple(str(component) for component in color)
            else:
                logger.warning("Ignoring invalid color: %r", color)

        render = override.get('render') or {}
        if 'escape_html' in render:
            self._set_bool(base.render, 'escape_html', render['escape_html'])

        if 'log_level' in override:
            level = str(override['log_level']).upper()
            if level in LOG_LEVELS:
                base.log_level = level
            else:
                logger.warning("Ignoring invalid log_level: %r", override['log_level'])

        return base

    @staticmethod
    def _set_bool(target: Any, name: str, value: Any) -> None:
        parsed = _parse_bool(value)
        if parsed is None:
            logger.warning("Ignoring invalid %s: %r", name, value)
            return
        setattr(target, name, parsed)

    def save_config(self, config: LatexEditConfig) -> None:
        """Save configuration to file."""
        # Ensure config directory exists
        self.config_dir.mkdir(parents=True, exist_ok=True)

        config_dict = {
            'editor': {
                'history_limit': config.editor.history_limit,
                'normalize_adjacent_math': config.editor.normalize_adjacent_math,
            },
            'insertion': {
                'wrap_with_math': config.insertion.wrap_with_math,
                'matrix_rows': config.insertion.matrix_rows,
                'matrix_cols': config.insertion.matrix_cols,
                'color': list(config.insertion.color),
            },
            'render': {
                'escape_html': config.render.escape_html,
            },
            'log_level': config.log_level,
        }

        with open(self.config_file, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)
        self._config = config

    def create_default_config(self) -> Path:
        """Create a default configuration file."""
        self.save_config(LatexEditConfig())
        return self.config_file

    def get_config_info(self) -> Dict[str, Any]:
        """Get information about current configuration."""
        config = self.load_config()

        return {
            'config_file': str(self.config_file),
            'config_exists': self.config_file.exists(),
            'history_limit': config.editor.history_limit,
            'wrap_with_math': config.insertion.wrap_with_math,
            'escape_html': config.render.escape_html,
            'log_level': config.log_level,
        }


# Global config manager instance
_config_manager: Optional[ConfigManager] = None

def get_config_manager() -> ConfigManager:
    """Get the global config manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager

def load_config() -> LatexEditConfig:
    """Load the current configuration."""
    return get_config_manager().load_config()
