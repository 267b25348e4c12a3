"""
Smoke tests — verify the bootstrap is healthy.

These tests ensure the basic scaffolding works:
- Package imports successfully
- CLI entrypoint responds
- Version is set
"""

from click.testing import CliRunner

from helix import __version__
from helix.main import cli


class TestBootstrap:
    """Verify the project bootstrap is healthy."""

    def test_version_is_set(self):
        """Version string should be defined and non-empty."""
        assert __version__
        assert isinstance(__version__, str)

    def test_cli_help(self):
        """CLI --help should exit cleanly with usage info."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "blueprints" in result.output

    def test_cli_version(self):
        """CLI --version should print the version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_plugins_command_exists(self):
        """Plugins command should be registered and callable."""
        runner = CliRunner()
        result = runner.invoke(cli, ["plugins"])
        assert result.exit_code == 0

    def test_core_package_imports(self):
        """Core sub-packages should be importable."""
        import helix.core.config.loader
        import helix.core.models
        import helix.core.observability.logging_config
        import helix.core.parser
        import helix.core.reliability.self_healing
        import helix.core.services.generators
        import helix.core.use_cases.spawn
        assert helix.core is not None

    def test_adapter_packages_import(self):
        """Adapter and plugin packages should be importable."""
        import helix.adapters
        import helix.plugins
        import helix.plugins.builtin
        assert helix.adapters is not None
