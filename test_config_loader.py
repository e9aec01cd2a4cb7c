"""
Unit tests for configuration loader module.
"""

import pytest
import yaml
from pathlib import Path
from unittest.mock import patch, mock_open

from dynamic_forms.config_loader import (
    load_config, validate_config, get_engine_config,
    get_default_config, deep_merge, save_config, get_config_summary
)
from dynamic_forms.engine_config import EngineConfig


class TestDeepMerge:
    """Test cases for deep_merge function."""

    def test_deep_merge_simple_dicts(self):
        """Test deep merging of simple dictionaries."""
        base = {'a': 1, 'b': 2}
        update = {'b': 3, 'c': 4}

        result = deep_merge(base, update)

        assert result == {'a': 1, 'b': 3, 'c': 4}
        # Ensure original dicts are not modified
        assert base == {'a': 1, 'b': 2}
        assert update == {'b': 3, 'c': 4}

    def test_deep_merge_nested_dicts(self):
        """Test deep merging of nested dictionaries."""
        base = {
            'engine': {'idle_threshold_seconds': 60, 'pattern_cache_size': 256},
            'logging': {'level': 'INFO'}
        }
        update = {
            'engine': {'idle_threshold_seconds': 10},
            'logging': {'format': '%(message)s'}
        }

        result = deep_merge(base, update)

        assert result == {
            'engine': {'idle_threshold_seconds': 10, 'pattern_cache_size': 256},
            'logging': {'level': 'INFO', 'format': '%(message)s'}
        }

    def test_deep_merge_non_dict_values(self):
        """Test deep merging when values are not dictionaries."""
        base = {'a': {'nested': 1}, 'b': [1, 2, 3]}
        update = {'a': {'nested': 2}, 'b': [4, 5, 6]}

        result = deep_merge(base, update)

        assert result == {'a': {'nested': 2}, 'b': [4, 5, 6]}


class TestGetDefaultConfig:
    """Test cases for get_default_config function."""

    def test_get_default_config_values(self):
        """Test that default config has expected values."""
        config = get_default_config()

        assert config['engine']['idle_threshold_seconds'] == 60.0
        assert config['engine']['pattern_cache_size'] == 256
        assert config['engine']['multiselect_delimiter'] == ','
        assert config['logging']['level'] == 'INFO'


class TestLoadConfig:
    """Test cases for load_config function."""

    def test_load_config_file_not_exists(self):
        """Test loading config when file doesn't exist."""
        with patch('pathlib.Path.exists', return_value=False):
            config = load_config(Path('nonexistent.yaml'))

            assert config == get_default_config()

    def test_load_config_valid_file(self):
        """Test loading config from valid YAML file."""
        yaml_content = """
engine:
  idle_threshold_seconds: 15
logging:
  level: DEBUG
"""

        with patch('builtins.open', mock_open(read_data=yaml_content)):
            with patch('pathlib.Path.exists', return_value=True):
                config = load_config(Path('test.yaml'))

                assert config['engine']['idle_threshold_seconds'] == 15
                assert config['logging']['level'] == 'DEBUG'
                # Should have defaults for missing values
                assert config['engine']['pattern_cache_size'] == 256

    def test_load_config_invalid_yaml(self):
        """Test loading config with invalid YAML."""
        with patch('builtins.open', mock_open(read_data="invalid: yaml: content: [")):
            with patch('pathlib.Path.exists', return_value=True):
                config = load_config(Path('invalid.yaml'))

                assert config == get_default_config()

    def test_load_config_empty_file(self):
        """Test loading config from empty file."""
        with patch('builtins.open', mock_open(read_data="")):
            with patch('pathlib.Path.exists', return_value=True):
                config = load_config(Path('empty.yaml'))

                assert config == get_default_config()

    def test_load_config_non_dict_content(self):
        """Test loading config with non-dictionary content."""
        with patch('builtins.open', mock_open(read_data="- item1\n- item2")):
            with patch('pathlib.Path.exists', return_value=True):
                config = load_config(Path('list.yaml'))

                assert config == get_default_config()

    def test_load_config_io_error(self):
        """Test loading config when IO error occurs."""
        with patch('builtins.open', side_effect=IOError("Permission denied")):
            with patch('pathlib.Path.exists', return_value=True):
                config = load_config(Path('protected.yaml'))

                assert config == get_default_config()


class TestValidateConfig:
    """Test cases for validate_config function."""

    def test_validate_config_valid_complete(self):
        """Test validating a complete, valid configuration."""
        assert validate_config(get_default_config()) is True

    def test_validate_config_missing_sections(self):
        """Test validating config with missing required sections."""
        assert validate_config({'engine': {}}) is False

    @pytest.mark.parametrize('engine', [
        {'idle_threshold_seconds': -1},
        {'idle_threshold_seconds': 'soon'},
        {'pattern_cache_size': 0},
        {'pattern_cache_size': 'big'},
        {'multiselect_delimiter': ''},
    ])
    def test_validate_config_bad_engine_values(self, engine):
        """Test validating config with out-of-range engine settings."""
        config = deep_merge(get_default_config(), {'engine': engine})

        assert validate_config(config) is False

    def test_validate_config_bad_log_level(self):
        """Test validating config with an unknown logging level."""
        config = deep_merge(get_default_config(), {'logging': {'level': 'LOUD'}})

        assert validate_config(config) is False


class TestEngineConfig:
    """Test cases for engine configuration extraction."""

    def test_get_engine_config(self):
        """Test building EngineConfig from a complete config."""
        config = deep_merge(get_default_config(), {'engine': {'pattern_cache_size': '32'}})

        engine_config = get_engine_config(config)

        assert isinstance(engine_config, EngineConfig)
        assert engine_config.pattern_cache_size == 32
        assert engine_config.idle_threshold_seconds == 60.0

    def test_get_engine_config_falls_back_on_bad_values(self):
        """Test that unconvertible values fall back to defaults."""
        config = {'engine': {'idle_threshold_seconds': 'soon'}}

        assert get_engine_config(config) == EngineConfig()

    def test_from_config_without_engine_section(self):
        """Test EngineConfig.from_config with no engine section."""
        assert EngineConfig.from_config({}) == EngineConfig()

    def test_str(self):
        """Test string representation."""
        assert 'pattern_cache_size: 256' in str(EngineConfig())


class TestSaveConfig:
    """Test cases for save_config and get_config_summary."""

    def test_save_config_round_trip(self, tmp_path):
        """Test saving and reloading configuration."""
        config_path = tmp_path / 'dynamic_forms.yaml'
        config = deep_merge(get_default_config(), {'engine': {'idle_threshold_seconds': 5.0}})

        assert save_config(config, config_path) is True

        with open(config_path, 'r', encoding='utf-8') as f:
            saved = yaml.safe_load(f)
        assert saved == config
        assert load_config(config_path) == config

    def test_save_config_io_error(self):
        """Test save failure is reported, not raised."""
        with patch('builtins.open', side_effect=IOError("Read-only file system")):
            assert save_config(get_default_config(), Path('readonly.yaml')) is False

    def test_get_config_summary(self):
        """Test configuration summary."""
        summary = get_config_summary(get_default_config())

        assert summary == {
            'idle_threshold_seconds': 60.0,
            'pattern_cache_size': 256,
            'multiselect_delimiter': ',',
            'logging_level': 'INFO'
        }
