"""Unit tests for configuration loading."""

from pathlib import Path

import pytest
from filewatch_exporter.config import (
    DEFAULT_CHECK_INTERVAL_SECONDS,
    DEFAULT_RESET_INTERVAL_MINUTES,
    ConfigError,
    ExporterConfig,
    ServerConfig,
    load_config,
)


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_full_config(self, tmp_path: Path) -> None:
        """All sections are parsed into the config value."""
        path = _write_config(
            tmp_path,
            """
server:
  listen_address: "127.0.0.1:9200"
  metrics_path: "/probe"
files:
  - /etc/hosts
  - /var/log/*.log
dirs: [/var/lib/app]
check_interval_seconds: 5
reset_interval_minutes: 2
""",
        )

        config = load_config(path)

        assert config.server == ServerConfig(listen_address="127.0.0.1:9200", metrics_path="/probe")
        assert config.files == ("/etc/hosts", "/var/log/*.log")
        assert config.dirs == ("/var/lib/app",)
        assert config.interval_seconds == 5.0
        assert config.reset_minutes == 2.0
        assert config.reset_seconds == 120.0

    def test_defaults_applied(self, tmp_path: Path) -> None:
        """Missing keys fall back to defaults."""
        config = load_config(_write_config(tmp_path, "files: /etc/hosts\n"))

        assert config.files == ("/etc/hosts",)
        assert config.dirs == ()
        assert config.server.listen_address == ":9100"
        assert config.server.metrics_path == "/metrics"
        assert config.interval_seconds == DEFAULT_CHECK_INTERVAL_SECONDS
        assert config.reset_minutes == DEFAULT_RESET_INTERVAL_MINUTES

    def test_empty_file_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """An empty file is valid but nothing is watched."""
        config = load_config(_write_config(tmp_path, ""))

        assert config == ExporterConfig()
        assert "No files or directories configured" in caplog.text

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="parse"):
            load_config(_write_config(tmp_path, "files: [unclosed\n"))

    def test_root_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(_write_config(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize(
        "text",
        [
            "check_interval_seconds: 0\n",
            "check_interval_seconds: -3\n",
            "check_interval_seconds: soon\n",
            "reset_interval_minutes: 0\n",
            "reset_interval_minutes: true\n",
        ],
    )
    def test_non_positive_or_non_numeric_periods(self, tmp_path: Path, text: str) -> None:
        """Interval and reset period must be positive numbers."""
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path, text))

    @pytest.mark.parametrize(
        "text",
        [
            "files: 3\n",
            "files: [/etc/hosts, 7]\n",
            "dirs: {a: b}\n",
            "files: ['']\n",
        ],
    )
    def test_path_lists_validated(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path, text))

    @pytest.mark.parametrize(
        "text",
        [
            "server: []\n",
            "server: {listen_address: 9100}\n",
            "server: {listen_address: 'localhost'}\n",
            "server: {listen_address: ':http'}\n",
            "server: {listen_address: ':70000'}\n",
            "server: {metrics_path: 'metrics'}\n",
        ],
    )
    def test_server_section_validated(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path, text))


class TestServerConfig:
    """Tests for listen address parsing."""

    def test_port_only(self) -> None:
        server = ServerConfig(listen_address=":9100")
        assert server.host == ""
        assert server.port == 9100

    def test_host_and_port(self) -> None:
        server = ServerConfig(listen_address="0.0.0.0:8080")
        assert server.host == "0.0.0.0"
        assert server.port == 8080

    def test_bracketed_ipv6(self) -> None:
        server = ServerConfig(listen_address="[::1]:9100")
        assert server.host == "::1"
        assert server.port == 9100
