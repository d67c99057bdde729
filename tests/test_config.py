import pytest

from hrvsense.config import Settings, load_settings


class TestSettings:
    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings == Settings()
        assert settings.port == 8765
        assert settings.hours_back == 24.0
        assert settings.stream_interval_minutes == 5.0
        assert settings.companion_nodes == []

    def test_env_overrides(self):
        settings = load_settings(
            environ={
                "PORT": "9000",
                "LOG_LEVEL": "DEBUG",
                "HRVSENSE_HOURS_BACK": "6",
                "HRVSENSE_COMPANION_NODES": "watch-1, watch-2,",
            }
        )
        assert settings.port == 9000
        assert settings.log_level == "debug"
        assert settings.hours_back == 6.0
        assert settings.companion_nodes == ["watch-1", "watch-2"]

    def test_yaml_file_then_env(self, tmp_path):
        path = tmp_path / "hrvsense.yaml"
        path.write_text("port: 8100\nstream_interval_minutes: 2\ncompanion_nodes:\n  - watch-9\n")
        settings = load_settings(environ={"HRVSENSE_CONFIG": str(path), "PORT": "8200"})
        assert settings.port == 8200
        assert settings.stream_interval_minutes == 2.0
        assert settings.companion_nodes == ["watch-9"]

    def test_explicit_path_wins_over_env_path(self, tmp_path):
        explicit = tmp_path / "a.yaml"
        explicit.write_text("hours_back: 3\n")
        settings = load_settings(explicit, environ={"HRVSENSE_CONFIG": str(tmp_path / "missing.yaml")})
        assert settings.hours_back == 3.0

    def test_empty_yaml_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path, environ={}) == Settings()

    def test_invalid_number(self):
        with pytest.raises(ValueError, match="port"):
            load_settings(environ={"PORT": "eighty"})

    def test_non_positive_interval(self):
        with pytest.raises(ValueError, match="stream_interval_minutes"):
            load_settings(environ={"HRVSENSE_STREAM_INTERVAL_MINUTES": "0"})

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ValueError, match="Unknown config keys"):
            load_settings(path, environ={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_settings(path, environ={})
