"""
Test configuration loading and validation
"""

import pytest
import yaml

from sitewatch.core.catalogs import DEFAULT_MESSAGES, DEFAULT_SITES
from sitewatch.core.config import MonitorConfig
from sitewatch.core.errors import ConfigurationError, EmptyCatalog


class TestMonitorConfig:
    """Test MonitorConfig defaults, file loading and environment overrides"""

    def test_defaults(self):
        config = MonitorConfig()

        assert config.capacity == 5000
        assert config.interval_seconds == 1800.0
        assert config.recent_limit == 20
        assert config.messages == list(DEFAULT_MESSAGES)
        assert config.sites == list(DEFAULT_SITES)
        assert config.headquarters_site == "Seoul HQ"
        assert config.alert_sink == 'log'
        assert config.db_path.endswith("server_errors.db")
        assert config.validate()

    def test_environment_overrides(self, monkeypatch, temp_dir):
        monkeypatch.setenv('SITEWATCH_DB_PATH', str(temp_dir / "env.db"))
        monkeypatch.setenv('SITEWATCH_CAPACITY', "100")
        monkeypatch.setenv('SITEWATCH_INTERVAL', "60")
        monkeypatch.setenv('SITEWATCH_RECENT_LIMIT', "5")
        monkeypatch.setenv('SITEWATCH_ALERT_SINK', "none")
        monkeypatch.setenv('LOG_LEVEL', "DEBUG")

        config = MonitorConfig()

        assert config.db_path == str(temp_dir / "env.db")
        assert config.capacity == 100
        assert config.interval_seconds == 60.0
        assert config.recent_limit == 5
        assert config.alert_sink == 'none'
        assert config.log_level == "DEBUG"

    def test_missing_file_gives_defaults(self, temp_dir):
        config = MonitorConfig.from_yaml(temp_dir / "missing.yaml")
        assert config == MonitorConfig()

    def test_yaml_file(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text(yaml.dump({
            'db_path': str(temp_dir / "errors.db"),
            'interval_seconds': 60,
            'sites': ["Seoul HQ", "Jeju Branch"],
            'alert_sink': 'webhook',
            'webhook_url': "http://localhost:8080/alerts",
        }))

        config = MonitorConfig.from_yaml(path)

        assert config.db_path == str(temp_dir / "errors.db")
        assert config.interval_seconds == 60
        assert config.sites == ["Seoul HQ", "Jeju Branch"]
        assert config.webhook_url == "http://localhost:8080/alerts"
        assert config.validate()

    def test_environment_beats_file(self, monkeypatch, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text(yaml.dump({'capacity': 10}))
        monkeypatch.setenv('SITEWATCH_CAPACITY', "20")

        assert MonitorConfig.from_yaml(path).capacity == 20

    def test_empty_file_gives_defaults(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("")
        assert MonitorConfig.from_yaml(path) == MonitorConfig()

    def test_unknown_keys_rejected(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text(yaml.dump({'capacity': 10, 'colour': "blue"}))

        with pytest.raises(ConfigurationError) as exc_info:
            MonitorConfig.from_yaml(path)
        assert "colour" in str(exc_info.value)

    def test_non_mapping_rejected(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            MonitorConfig.from_yaml(path)

    def test_round_trip_through_dict(self):
        config = MonitorConfig(capacity=42, sites=["Seoul HQ"])
        assert MonitorConfig.from_dict(config.to_dict()) == config


class TestValidation:
    """Test MonitorConfig.validate"""

    def test_empty_messages(self):
        with pytest.raises(EmptyCatalog):
            MonitorConfig(messages=[]).validate()

    def test_empty_sites(self):
        with pytest.raises(EmptyCatalog):
            MonitorConfig(sites=[]).validate()

    @pytest.mark.parametrize("overrides", [
        {'capacity': 0},
        {'interval_seconds': -1},
        {'recent_limit': 0},
        {'alert_sink': 'email'},
        {'alert_sink': 'webhook'},
        {'db_path': ''},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            MonitorConfig(**overrides).validate()
