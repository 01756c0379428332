"""
Fast unit tests for CLI functionality.

The orchestrator is replaced by a mock; no cluster is contacted.
"""

import pytest
from unittest.mock import Mock, patch
from typer.testing import CliRunner

from hubdeploy.cli.main import app
from hubdeploy.core.enums import EndpointMechanism
from hubdeploy.core.errors import PartialSuccessError, PlatformError
from hubdeploy.core.types import EndpointRecord, InstallationResult


@pytest.fixture
def spec_file(tmp_path):
    """Provide an instance spec file."""
    path = tmp_path / "bd1.yaml"
    path.write_text("name: bd1\nnamespace: ns1\nsize: small\nexposure: nodeport\n")
    return path


class TestCLIBasics:
    """Test basic CLI functionality."""

    def setup_method(self) -> None:
        """Set up test environment."""
        self.runner = CliRunner()

    def test_help_command(self) -> None:
        """Test CLI help command works."""
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "create" in result.output

    def test_invalid_command(self) -> None:
        """Test behavior with invalid command."""
        result = self.runner.invoke(app, ["nonexistent-command"])

        assert result.exit_code != 0

    def test_verbose_and_log_level_conflict(self) -> None:
        """Test --verbose and --log-level are mutually exclusive."""
        result = self.runner.invoke(app, ["-v", "--log-level", "DEBUG", "flavors"])

        assert result.exit_code == 1
        assert "Cannot specify both" in result.output

    def test_flavors(self) -> None:
        """Test the flavor catalog is listed."""
        result = self.runner.invoke(app, ["flavors"])

        assert result.exit_code == 0
        for size in ("small", "medium", "large", "x-large"):
            assert size in result.output

    def test_version(self) -> None:
        """Test version information is shown."""
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "hubdeploy" in result.output

    def test_config(self) -> None:
        """Test the effective configuration is shown."""
        result = self.runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "synopsys-operator" in result.output


class TestCLICommands:
    """Test lifecycle commands against a mocked orchestrator."""

    def setup_method(self) -> None:
        """Set up test environment."""
        self.runner = CliRunner()
        self.orchestrator = Mock()

    def _invoke(self, *args):
        with patch("hubdeploy.cli.main.build_orchestrator", return_value=self.orchestrator):
            return self.runner.invoke(app, list(args))

    def test_create_prints_endpoint(self, spec_file) -> None:
        """Test create prints the resolved endpoint."""
        self.orchestrator.create.return_value = InstallationResult(
            endpoint=EndpointRecord(address="10.0.0.7", mechanism=EndpointMechanism.NODE_PORT)
        )

        result = self._invoke("create", str(spec_file))

        assert result.exit_code == 0
        assert "10.0.0.7" in result.output
        spec = self.orchestrator.create.call_args[0][0]
        assert (spec.name, spec.namespace) == ("bd1", "ns1")

    def test_create_partial_success(self, spec_file) -> None:
        """Test partial success warns but exits cleanly."""
        self.orchestrator.create.side_effect = PartialSuccessError(
            "no endpoint", result=InstallationResult()
        )

        result = self._invoke("create", str(spec_file))

        assert result.exit_code == 0
        assert "Warning" in result.output

    def test_create_failure(self, spec_file) -> None:
        """Test fatal errors exit with 1."""
        self.orchestrator.create.side_effect = PlatformError("quota exceeded", status=403)

        result = self._invoke("create", str(spec_file))

        assert result.exit_code == 1
        assert "quota exceeded" in result.output

    def test_missing_spec_file(self, tmp_path) -> None:
        """Test a missing spec file is a configuration error."""
        result = self._invoke("start", str(tmp_path / "missing.yaml"))

        assert result.exit_code == 1
        self.orchestrator.start.assert_not_called()

    def test_stop(self, spec_file) -> None:
        """Test stop calls the orchestrator."""
        result = self._invoke("stop", str(spec_file))

        assert result.exit_code == 0
        self.orchestrator.stop.assert_called_once()

    def test_apply_reconciles(self, spec_file) -> None:
        """Test apply reconciles to the desired state."""
        result = self._invoke("apply", str(spec_file))

        assert result.exit_code == 0
        self.orchestrator.reconcile.assert_called_once()
        assert "running" in result.output

    def test_delete(self) -> None:
        """Test delete takes a namespace."""
        result = self._invoke("delete", "ns1")

        assert result.exit_code == 0
        self.orchestrator.delete.assert_called_once_with("ns1")
