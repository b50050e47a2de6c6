"""Configuration loader and validator for switchback.

``load_config(path)`` reads a JSON config (tolerating ``#``/``//`` comments
and trailing commas) over the defaults; without a path it uses
``~/.config/switchback/config.json``.

``validate_config(conf)`` normalizes values and raises ``ValueError`` naming
the offending key.
"""

from __future__ import annotations

import json
import logging
import os
import re

from switchback.hotkeys import Hotkey
from switchback.intelligence.spell_oracle import DEFAULT_DICTIONARY_DIRS
from switchback.persistence import save_json

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = '~/.config/switchback/config.json'

# Single source of truth for default configuration
DEFAULT_CONFIG: dict = {
    'debug': False,
    'enabled': True,
    'primary_layout': 'us',
    'secondary_layout': 'ua',
    'toggle_hotkey': 'Ctrl+Alt+0',
    'fix_hotkey': 'Ctrl+Alt+A',
    'force_hotkey': 'Ctrl+Alt+F',
    'dictionary_dirs': list(DEFAULT_DICTIONARY_DIRS),
    'capture_delay': 0.05,
    'correction_delay': 0.05,
    'hotkey_delay': 0.1,
    'switch_poll_interval': 0.05,
    'switch_max_attempts': 12,
    'ambiguity_max_age': 0.0,
    'grab_keyboard': True,
}

# float keys: (min, max)
_DELAY_RANGES: dict[str, tuple[float, float]] = {
    'capture_delay': (0.0, 2.0),
    'correction_delay': (0.0, 2.0),
    'hotkey_delay': (0.0, 2.0),
    'switch_poll_interval': (0.01, 1.0),
}

_BOOL_KEYS = ('debug', 'enabled', 'grab_keyboard')
_HOTKEY_KEYS = ('toggle_hotkey', 'fix_hotkey', 'force_hotkey')


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _sanitize_json_text(s: str) -> str:
    """Remove ``#``/``//`` comments and trailing commas from JSON-like text."""
    s = re.sub(r"^[ \t]*#.*$", "", s, flags=re.MULTILINE)
    s = re.sub(r"^[ \t]*//.*$", "", s, flags=re.MULTILINE)
    s = re.sub(r",[ \t\r\n]+(\}|\])", r"\1", s)
    return s


def _float_in(conf: dict, key: str, lo: float, hi: float) -> float:
    raw = conf.get(key, DEFAULT_CONFIG[key])
    if isinstance(raw, bool):
        raise ValueError(f"Invalid '{key}': {raw}")
    try:
        val = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{key}': {raw}")
    if not (lo <= val <= hi):
        raise ValueError(f"Invalid '{key}': {raw} (must be between {lo} and {hi})")
    return val


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_config(conf: dict | None) -> dict:
    """Validate and normalize a configuration dictionary.

    Returns a dict with every key of DEFAULT_CONFIG.
    Raises ``ValueError`` on invalid values.
    """
    if conf is None:
        conf = {}
    out = dict(DEFAULT_CONFIG)

    for key in _BOOL_KEYS:
        val = conf.get(key, DEFAULT_CONFIG[key])
        if not isinstance(val, bool):
            raise ValueError(f"Invalid '{key}': must be boolean")
        out[key] = val

    for key in ('primary_layout', 'secondary_layout'):
        val = conf.get(key, DEFAULT_CONFIG[key])
        if not isinstance(val, str) or not val.strip():
            raise ValueError(f"Invalid '{key}': must be a non-empty string")
        out[key] = val.strip()

    # Hotkeys: empty string or null unbinds the action
    for key in _HOTKEY_KEYS:
        val = conf.get(key, DEFAULT_CONFIG[key])
        if val in (None, ''):
            out[key] = ''
            continue
        if not isinstance(val, str):
            raise ValueError(f"Invalid '{key}': must be a string like 'Ctrl+Alt+A'")
        try:
            Hotkey.parse(val)
        except ValueError as exc:
            raise ValueError(f"Invalid '{key}': {exc}")
        out[key] = val

    dirs = conf.get('dictionary_dirs', DEFAULT_CONFIG['dictionary_dirs'])
    if isinstance(dirs, str):
        dirs = [dirs]
    if not isinstance(dirs, list) or not all(isinstance(d, str) for d in dirs):
        raise ValueError("Invalid 'dictionary_dirs': must be a list of paths")
    out['dictionary_dirs'] = list(dirs)

    for key, (lo, hi) in _DELAY_RANGES.items():
        out[key] = _float_in(conf, key, lo, hi)

    attempts = conf.get('switch_max_attempts', DEFAULT_CONFIG['switch_max_attempts'])
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
        raise ValueError(f"Invalid 'switch_max_attempts': {attempts} (must be an integer >= 1)")
    out['switch_max_attempts'] = attempts

    out['ambiguity_max_age'] = _float_in(conf, 'ambiguity_max_age', 0.0, 7 * 24 * 3600.0)

    return out


def _read_and_merge(path: str, target_config: dict) -> bool:
    """Read a JSON file, validate it and merge its keys into *target_config*.

    Returns True on success, False on any error (logged).
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()
    except OSError as exc:
        logger.warning("Cannot read config %s: %s", path, exc)
        return False

    try:
        cfg = json.loads(raw)
    except json.JSONDecodeError:
        try:
            cfg = json.loads(_sanitize_json_text(raw))
        except json.JSONDecodeError as exc:
            logger.warning("JSON parse error in %s: %s", path, exc)
            return False
    if not isinstance(cfg, dict):
        logger.warning("Config %s must contain a JSON object", path)
        return False

    try:
        validated = validate_config(cfg)
    except ValueError as verr:
        logger.warning("Invalid config %s: %s", path, verr)
        return False

    # Only override keys explicitly present in the file
    for k in cfg:
        if k in validated:
            target_config[k] = validated[k]
        else:
            logger.debug("Unknown config key %r in %s ignored", k, path)
    return True


# ------------------------------------------------------------------
# Top-level loader
# ------------------------------------------------------------------

def load_config(config_path: str | None = None) -> dict:
    """Return the effective configuration (always has all default keys).

    With *config_path*, only that file is read (defaults if it is missing).
    """
    config = dict(DEFAULT_CONFIG)
    path = config_path if config_path is not None else os.path.expanduser(USER_CONFIG_PATH)
    if os.path.exists(path):
        _read_and_merge(path, config)
    return config


# ------------------------------------------------------------------
# ConfigManager
# ------------------------------------------------------------------

class ConfigManager:
    """Holds the live configuration with reload/save/validate."""

    def __init__(self, config_path: str | None = None):
        self._config_path = config_path or os.path.expanduser(USER_CONFIG_PATH)
        self._config: dict = dict(DEFAULT_CONFIG)
        self.reload()

    def reload(self) -> bool:
        """Reset to defaults, then overlay the file.  Returns False if the file was rejected."""
        fresh = dict(DEFAULT_CONFIG)
        ok = True
        if os.path.exists(self._config_path):
            ok = _read_and_merge(self._config_path, fresh)
        self._config = fresh
        return ok

    def save(self, target_path: str | None = None) -> bool:
        """Atomically save configuration.  Returns True on success."""
        try:
            save_json(target_path or self._config_path, self.get_all())
            return True
        except OSError as exc:
            logger.error("Cannot save config: %s", exc)
            return False

    def get(self, key: str, default=None):
        return self._config.get(key, default)

    def set(self, key: str, value) -> None:
        self._config[key] = value

    def update(self, updates: dict) -> None:
        self._config.update(updates)

    def get_all(self) -> dict:
        """Return all configuration (excluding internal keys)."""
        return {k: v for k, v in self._config.items() if not k.startswith('_')}

    def validate(self) -> bool:
        try:
            validate_config(self._config)
            return True
        except ValueError as exc:
            logger.warning("Configuration invalid: %s", exc)
            return False

    @property
    def config_path(self) -> str:
        return self._config_path
