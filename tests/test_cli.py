"""Tests for the command line interface."""

import argparse
from pathlib import Path

import pytest

from rhythm_runner import cli
from rhythm_runner.domain.catalog.tokens import AccessToken, load_token_file


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("RHYTHM_RUNNER_CLIENT_ID", raising=False)
    monkeypatch.chdir(tmp_path)


class TestParseBpm:
    """Tests for the BPM argument type."""

    def test_number(self) -> None:
        assert cli.parse_bpm("165") == 165

    def test_preset_name(self) -> None:
        assert cli.parse_bpm("fast run") == 160

    @pytest.mark.parametrize("value", ["fast", "500", "0"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_bpm(value)


class TestMain:
    """Tests for main()."""

    def test_no_subcommand(self) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main([])
        assert exc.value.code == 1

    def test_presets(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["presets"])

        assert exc.value.code == 0
        assert (tmp_path / "config" / "rhythm-runner" / "config.toml").exists()
        assert (tmp_path / "data" / "rhythm-runner" / "rhythm-runner.log").exists()

    def test_offline_match(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["match", "160", "--offline"])

        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "Max Coveri" in out
        assert "Europe" in out

    def test_metronome(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["metronome", "sprint", "--seconds", "0.2", "--mute"])

        assert exc.value.code == 0
        assert "clicks" in capsys.readouterr().out


class TestTokenStore:
    """Tests for on-disk token handling."""

    def test_new_tokens_are_saved(self) -> None:
        store = cli.build_token_store(cli.load_config())

        store.set_access_token("abc", 3600, refresh_token="r1")

        saved = load_token_file(cli.get_token_path())
        assert saved.value == "abc"
        assert saved.refresh_token == "r1"

    def test_saved_token_is_restored(self) -> None:
        token = AccessToken(value="abc", expires_at=1e12, refresh_token="r1")
        cli.save_token_file(cli.get_token_path(), token)

        store = cli.build_token_store(cli.load_config())

        assert store.snapshot() == token
