"""Tests for the erd-migrator command line."""

import os
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from erd_migrator.cli import main


@pytest.fixture
def output():
    """Swap the CLI console for a recording one and return it."""
    console = Console(record=True, width=200)
    with patch("erd_migrator.cli.console", console):
        yield console


@pytest.fixture
def erd_file(tmp_path: Path, invoice_erd: str) -> Path:
    path = tmp_path / "schema.erd"
    path.write_text(invoice_erd, encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "erd.toml"
    path.write_text(textwrap.dedent("""\
        [profiles.dev]
        url = "https://contoso-dev.crm.dynamics.com"
        description = "Development"

        [schema]
        prefix = "cr5f_"
        """))
    return path


def _run(*argv: str) -> int:
    with patch("sys.argv", ["erd-migrator", *argv]):
        return main()


class TestParser:
    """Argument parsing."""

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _run()

    def test_deploy_requires_file(self) -> None:
        with pytest.raises(SystemExit):
            _run("deploy")

    def test_global_options_dispatch(self) -> None:
        with patch("erd_migrator.cli.cmd_profiles", return_value=0) as mock_profiles:
            assert _run("--env-prefix", "APP_", "--config", "x.toml", "profiles") == 0
        args = mock_profiles.call_args.args[0]
        assert args.env_prefix == "APP_"
        assert args.config == "x.toml"


class TestParseCommand:
    """erd-migrator parse."""

    def test_prints_model(self, output: Console, erd_file: Path, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert _run("parse", str(erd_file)) == 0
        text = output.export_text()
        assert "new_invoice" in text
        assert "new_Customer_Invoice" in text
        assert "Draft, Sent, Paid" in text

    def test_uses_configured_prefix(self, output: Console, erd_file: Path, config_file: Path) -> None:
        assert _run("--config", str(config_file), "parse", str(erd_file)) == 0
        assert "cr5f_invoice" in output.export_text()

    def test_strict_failure(self, output: Console, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        bad = tmp_path / "bad.erd"
        bad.write_text('Ref: "A"."id" ~ "B"."aid"\n')
        assert _run("parse", str(bad), "--strict") == 1
        assert "syntax errors" in output.export_text()

    def test_lenient_shows_diagnostics(self, output: Console, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        bad = tmp_path / "bad.erd"
        bad.write_text('Ref: "A"."id" ~ "B"."aid"\n')
        assert _run("parse", str(bad)) == 0
        assert "Unrecognized relationship direction" in output.export_text()

    def test_missing_file(self, output: Console, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert _run("parse", str(tmp_path / "missing.erd")) == 1
        assert "ERD file not found" in output.export_text()


class TestDeployCommand:
    """erd-migrator deploy."""

    def test_dry_run_needs_no_profile(self, output: Console, erd_file: Path, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        with patch("erd_migrator.cli.get_client") as mock_get_client:
            assert _run("deploy", str(erd_file), "--dry-run") == 0
        mock_get_client.assert_not_called()
        text = output.export_text()
        assert "DRY RUN" in text
        assert "would create" in text

    def test_deploy_with_client(self, output: Console, erd_file: Path, config_file: Path, client) -> None:
        with patch("erd_migrator.cli.get_client", return_value=client) as mock_get_client:
            code = _run("--config", str(config_file), "deploy", str(erd_file), "--profile", "dev")

        assert code == 0
        assert mock_get_client.call_args.args[0].url == "https://contoso-dev.crm.dynamics.com"
        assert set(client.tables) == {"cr5f_customer", "cr5f_invoice"}
        assert client.closed
        assert "Deployment complete (6 created)" in output.export_text()

    def test_deploy_failure_exit_code(
        self, output: Console, erd_file: Path, config_file: Path, make_client
    ) -> None:
        client = make_client(fail_on={"cr5f_status"})
        with patch("erd_migrator.cli.get_client", return_value=client):
            code = _run("--config", str(config_file), "deploy", str(erd_file))

        assert code == 1
        assert "finished with failures" in output.export_text()

    def test_unknown_profile(self, output: Console, erd_file: Path, config_file: Path) -> None:
        with patch.dict(os.environ, {"ERD_PROFILE": "staging"}):
            code = _run("--config", str(config_file), "deploy", str(erd_file))
        assert code == 1
        assert "'staging' not found" in output.export_text()


class TestProfilesCommand:
    """erd-migrator profiles."""

    def test_lists_profiles(self, output: Console, config_file: Path) -> None:
        assert _run("--config", str(config_file), "profiles") == 0
        text = output.export_text()
        assert "dev" in text
        assert "Development" in text

    def test_missing_config(self, output: Console, tmp_path: Path) -> None:
        assert _run("--config", str(tmp_path / "nope.toml"), "profiles") == 1
        assert "not found" in output.export_text()
