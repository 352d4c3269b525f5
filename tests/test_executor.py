"""Tests for running resolved command lines."""

import pytest

from shorthand.exceptions import ExecutionError
from shorthand.executor import Executor
from shorthand.output import RULE, ExecutionResult


class TestExecutor:
    @pytest.fixture
    def executor(self) -> Executor:
        return Executor(show_frame=False)

    def test_executes_simple_command(
        self, executor: Executor, capfd: pytest.CaptureFixture[str]
    ) -> None:
        result = executor.run("echo hello")
        assert isinstance(result, ExecutionResult)
        assert result.returncode == 0
        assert capfd.readouterr().out.strip() == "hello"

    def test_returns_nonzero_exit_code(self, executor: Executor) -> None:
        result = executor.run("false")
        assert result.returncode == 1
        assert result.succeeded is False

    def test_no_shell_interpretation(
        self, executor: Executor, capfd: pytest.CaptureFixture[str]
    ) -> None:
        executor.run("echo a && echo b")
        assert capfd.readouterr().out.strip() == "a && echo b"

    def test_records_duration(self, executor: Executor) -> None:
        result = executor.run("sleep 0.1")
        assert result.duration >= 0.05

    def test_passes_env_overrides(
        self, executor: Executor, capfd: pytest.CaptureFixture[str]
    ) -> None:
        executor.run("env", env={"MY_VAR": "injected"})
        assert "MY_VAR=injected" in capfd.readouterr().out

    def test_timeout_kills_long_command(self, executor: Executor) -> None:
        result = executor.run("sleep 10", timeout=1)
        assert result.returncode == -9

    def test_stores_original_command(self, executor: Executor) -> None:
        result = executor.run("echo test")
        assert result.command == "echo test"

    def test_empty_command(self, executor: Executor) -> None:
        with pytest.raises(ExecutionError, match="Empty"):
            executor.run("   ")

    def test_missing_program(self, executor: Executor) -> None:
        with pytest.raises(ExecutionError, match="no-such-program-xyz"):
            executor.run("no-such-program-xyz --flag")

    def test_frame_and_status(self, capfd: pytest.CaptureFixture[str]) -> None:
        Executor().run("true")
        out = capfd.readouterr().out
        assert out.count(RULE) == 2
        assert "✓ Command completed successfully" in out
