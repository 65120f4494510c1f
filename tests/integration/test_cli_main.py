#!/usr/bin/env python3
"""
Integration tests for CLI Main Entry Point

Tests end-to-end CLI command execution with real command invocation.
"""

import pytest
from click.testing import CliRunner

from fundflow.cli.main import main


@pytest.mark.integration
@pytest.mark.cli
class TestCLIMainIntegration:
    """Test main CLI entry point with real command execution."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_help_command_lists_all_subcommands(self):
        """Test fundflow --help shows all registered subcommands."""
        result = self.runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Fund Flow" in result.output
        for command in ["split", "balances", "validate", "parse", "add", "version", "config"]:
            assert command in result.output

    def test_version_command_shows_version_info(self):
        """Test fundflow version displays version and author."""
        result = self.runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "Fund Flow v0.1.0" in result.output
        assert "Author:" in result.output

    def test_config_command_shows_configuration(self):
        """Test fundflow config displays current configuration without secrets."""
        result = self.runner.invoke(main, ["config"])

        assert result.exit_code == 0
        assert "Current Configuration:" in result.output
        assert "Environment: test" in result.output
        assert "Data Directory:" in result.output
        assert "Google API Key: not set" in result.output
        assert "Tolerances: silent 10, reject 100" in result.output
        assert "Poll Interval: 30s" in result.output
        assert "Log Level:" in result.output

    def test_config_never_prints_keys(self, monkeypatch):
        """Test configured API keys are reported as set, not echoed."""
        monkeypatch.setenv("GROQ_API_KEY", "gsk-secret")

        result = self.runner.invoke(main, ["config"])
        assert "Groq API Key: set" in result.output
        assert "gsk-secret" not in result.output

    def test_invalid_command_shows_error(self):
        """Test unknown subcommands fail with a usage error."""
        result = self.runner.invoke(main, ["nonexistent"])

        assert result.exit_code != 0
        assert "No such command" in result.output

    def test_invalid_configuration_fails(self, monkeypatch):
        """Test a configuration that fails validation aborts the CLI."""
        monkeypatch.setenv("FUNDFLOW_REJECT_TOLERANCE", "1")

        result = self.runner.invoke(main, ["version"])
        assert result.exit_code != 0
        assert isinstance(result.exception, ValueError)
