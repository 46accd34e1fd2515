"""Tests for the llmrelay CLI."""

from click.testing import CliRunner

from llmrelay.frontends.cli.main import cli


class TestCheckOrigin:
    def test_default_origin_allowed(self):
        result = CliRunner().invoke(cli, ["check-origin", "https://tals-dotcom.github.io"])

        assert result.exit_code == 0
        assert "allowed" in result.output

    def test_unknown_origin_denied(self):
        result = CliRunner().invoke(cli, ["check-origin", "https://evil.example"])

        assert result.exit_code == 1
        assert "denied" in result.output

    def test_suffix_from_config_file(self, relay_yaml):
        path = relay_yaml("allowed_origin_suffixes:\n  - .vercel.app\n")

        result = CliRunner().invoke(
            cli, ["check-origin", "https://preview.vercel.app", "--config", path]
        )

        assert result.exit_code == 0

    def test_bad_config_reports_error(self, tmp_path):
        result = CliRunner().invoke(
            cli, ["check-origin", "https://x.example", "--config", str(tmp_path / "nope.yaml")]
        )

        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestServe:
    def test_invalid_port_from_env_exits(self, monkeypatch, restore_root_logger):
        monkeypatch.setenv("RELAY_PORT", "nope")

        result = CliRunner().invoke(cli, ["serve", "--log-level", "INFO"])

        assert result.exit_code == 1
        assert "Invalid port" in result.output

    def test_help_lists_options(self):
        result = CliRunner().invoke(cli, ["serve", "--help"])

        assert result.exit_code == 0
        assert "--allow-origin-suffix" in result.output
