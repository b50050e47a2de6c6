"""Tests for switchback.config — configuration loading, validation, ConfigManager."""

from __future__ import annotations

import json

import pytest

from switchback.config import (
    DEFAULT_CONFIG,
    ConfigManager,
    _sanitize_json_text,
    load_config,
    validate_config,
)


# ------------------------------------------------------------------
# DEFAULT_CONFIG
# ------------------------------------------------------------------

class TestDefaultConfig:
    EXPECTED_KEYS = {
        'debug', 'enabled', 'grab_keyboard',
        'primary_layout', 'secondary_layout',
        'toggle_hotkey', 'fix_hotkey', 'force_hotkey',
        'dictionary_dirs',
        'capture_delay', 'correction_delay', 'hotkey_delay',
        'switch_poll_interval', 'switch_max_attempts', 'ambiguity_max_age',
    }

    def test_contains_all_expected_keys(self):
        assert set(DEFAULT_CONFIG.keys()) == self.EXPECTED_KEYS

    def test_defaults_validate(self):
        assert validate_config(DEFAULT_CONFIG) == DEFAULT_CONFIG


# ------------------------------------------------------------------
# validate_config
# ------------------------------------------------------------------

class TestValidateConfig:
    def test_none_gives_defaults(self):
        assert validate_config(None) == DEFAULT_CONFIG

    def test_bool_type_enforced(self):
        with pytest.raises(ValueError, match="enabled"):
            validate_config({'enabled': 'yes'})

    def test_layout_name_stripped(self):
        assert validate_config({'secondary_layout': ' ua '})['secondary_layout'] == 'ua'

    def test_empty_layout_rejected(self):
        with pytest.raises(ValueError, match="primary_layout"):
            validate_config({'primary_layout': ''})

    def test_bad_hotkey_rejected(self):
        with pytest.raises(ValueError, match="fix_hotkey"):
            validate_config({'fix_hotkey': 'Ctrl+Banana'})

    def test_empty_hotkey_unbinds(self):
        assert validate_config({'force_hotkey': None})['force_hotkey'] == ''

    def test_dictionary_dirs_string_becomes_list(self):
        assert validate_config({'dictionary_dirs': '/tmp/d'})['dictionary_dirs'] == ['/tmp/d']

    def test_delay_range(self):
        with pytest.raises(ValueError, match="capture_delay"):
            validate_config({'capture_delay': 5})
        assert validate_config({'capture_delay': '0.2'})['capture_delay'] == 0.2

    def test_delay_rejects_bool(self):
        with pytest.raises(ValueError):
            validate_config({'hotkey_delay': True})

    def test_switch_attempts(self):
        with pytest.raises(ValueError, match="switch_max_attempts"):
            validate_config({'switch_max_attempts': 0})
        assert validate_config({'switch_max_attempts': 3})['switch_max_attempts'] == 3


# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------

class TestLoadConfig:
    def test_sanitize_comments_and_trailing_commas(self):
        text = '{\n  # comment\n  // other\n  "debug": true,\n}\n'
        assert json.loads(_sanitize_json_text(text)) == {'debug': True}

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / 'nope.json')) == DEFAULT_CONFIG

    def test_file_overrides(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"secondary_layout": "ua(winkeys)", "capture_delay": 0.1,\n}', encoding='utf-8')
        cfg = load_config(str(path))
        assert cfg['secondary_layout'] == 'ua(winkeys)'
        assert cfg['capture_delay'] == 0.1
        assert cfg['primary_layout'] == 'us'

    def test_invalid_file_ignored(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"enabled": "maybe"}', encoding='utf-8')
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_garbage_file_ignored(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('not json at all', encoding='utf-8')
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('[1, 2]', encoding='utf-8')
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_unknown_keys_dropped(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"mystery": 1}', encoding='utf-8')
        assert 'mystery' not in load_config(str(path))


# ------------------------------------------------------------------
# ConfigManager
# ------------------------------------------------------------------

class TestConfigManager:
    def test_get_set(self, tmp_path):
        cm = ConfigManager(str(tmp_path / 'config.json'))
        assert cm.get('enabled') is True
        cm.set('enabled', False)
        assert cm.get('enabled') is False
        assert cm.get('missing', 42) == 42

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / 'sub' / 'config.json'
        cm = ConfigManager(str(path))
        cm.update({'hotkey_delay': 0.25, 'fix_hotkey': 'Ctrl+Shift+Z'})
        assert cm.save()
        saved = json.loads(path.read_text(encoding='utf-8'))
        assert saved['hotkey_delay'] == 0.25

        other = ConfigManager(str(path))
        assert other.get('fix_hotkey') == 'Ctrl+Shift+Z'

    def test_save_leaves_no_temp_files(self, tmp_path):
        cm = ConfigManager(str(tmp_path / 'config.json'))
        cm.save()
        assert [p.name for p in tmp_path.iterdir()] == ['config.json']

    def test_reload_resets_to_file(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"debug": true}', encoding='utf-8')
        cm = ConfigManager(str(path))
        cm.set('debug', False)
        assert cm.reload()
        assert cm.get('debug') is True

    def test_reload_rejected_file(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"debug": 3}', encoding='utf-8')
        cm = ConfigManager(str(path))
        assert cm.reload() is False
        assert cm.get('debug') is False

    def test_validate(self, tmp_path):
        cm = ConfigManager(str(tmp_path / 'config.json'))
        assert cm.validate()
        cm.set('switch_max_attempts', -1)
        assert not cm.validate()

    def test_get_all_hides_internal_keys(self, tmp_path):
        cm = ConfigManager(str(tmp_path / 'config.json'))
        cm.set('_runtime', 1)
        assert '_runtime' not in cm.get_all()
