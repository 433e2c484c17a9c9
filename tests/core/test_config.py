"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from rhythm_runner.core.config import (
    Config,
    MetronomeConfig,
    get_config_dir,
    get_data_dir,
    load_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("RHYTHM_RUNNER_CLIENT_ID", raising=False)
    monkeypatch.delenv("RHYTHM_RUNNER_REDIRECT_URI", raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoadConfig:
    """Tests for load_config."""

    def test_creates_default_file(self, tmp_path: Path) -> None:
        path = tmp_path / "new" / "config.toml"

        config = load_config(path)

        assert path.exists()
        assert config == Config()
        # The written default parses back to the same values
        assert load_config(path).matching.bpm_tolerance == 10.0

    def test_reads_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(
            """
[catalog]
client_id = "abc123"
max_retries = 5

[metronome]
default_bpm = 170
volume = 0.4

[matching]
sort_by_score = false

[logging]
level = "debug"
log_file = "~/runner.log"
"""
        )

        config = load_config(path)

        assert config.catalog.client_id == "abc123"
        assert config.catalog.max_retries == 5
        assert config.catalog.request_timeout == 30.0
        assert config.metronome.default_bpm == 170
        assert config.metronome.volume == 0.4
        assert config.matching.sort_by_score is False
        assert config.logging.level == "DEBUG"
        assert config.logging.log_file == str(Path("~/runner.log").expanduser())

    def test_invalid_metronome_falls_back(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[metronome]\ndefault_bpm = 500\n")

        assert load_config(path).metronome == MetronomeConfig()

    def test_broken_toml_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[catalog\nclient_id = ")

        assert load_config(path) == Config()

    def test_environment_overrides(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[catalog]\nclient_id = "from-file"\n')
        monkeypatch.setenv("RHYTHM_RUNNER_CLIENT_ID", "from-env")
        monkeypatch.setenv("RHYTHM_RUNNER_REDIRECT_URI", "http://127.0.0.1:9000/cb")

        config = load_config(path)

        assert config.catalog.client_id == "from-env"
        assert config.catalog.redirect_uri == "http://127.0.0.1:9000/cb"

    def test_dotenv_in_config_dir(self, tmp_path: Path) -> None:
        get_config_dir().mkdir(parents=True)
        (get_config_dir() / ".env").write_text("RHYTHM_RUNNER_CLIENT_ID=from-dotenv\n")
        path = tmp_path / "config.toml"
        path.write_text("")

        try:
            assert load_config(path).catalog.client_id == "from-dotenv"
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("RHYTHM_RUNNER_CLIENT_ID", None)


class TestDirectories:
    """Tests for XDG directory resolution."""

    def test_xdg_dirs(self, tmp_path: Path) -> None:
        assert get_config_dir() == tmp_path / "config" / "rhythm-runner"
        assert get_data_dir() == tmp_path / "data" / "rhythm-runner"


class TestMetronomeConfig:
    """Tests for MetronomeConfig.validate."""

    @pytest.mark.parametrize(
        "kwargs",
        [{"default_bpm": 20}, {"volume": 1.5}, {"sample_rate": 0}],
    )
    def test_rejects(self, kwargs) -> None:
        with pytest.raises(ValueError):
            MetronomeConfig(**kwargs).validate()
