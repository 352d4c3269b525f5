"""Running resolved command lines."""

import os
import subprocess
import time

from shorthand.exceptions import ExecutionError
from shorthand.output import RULE, ExecutionResult, format_status


class Executor:
    """Runs a command line with the terminal attached.

    The line is split on whitespace and started directly, without a shell.
    """

    def __init__(self, show_frame: bool = True) -> None:
        self._show_frame = show_frame

    def run(
        self,
        command: str,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> ExecutionResult:
        """Execute a command and return the result."""
        argv = command.split()
        if not argv:
            raise ExecutionError("Empty command")

        run_env = os.environ.copy()
        if env:
            run_env.update(env)

        if self._show_frame:
            print(RULE)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(argv, env=run_env)
        except OSError as e:
            raise ExecutionError(f"Failed to execute command: {argv[0]}: {e}") from e

        try:
            returncode = proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
            returncode = -9
        except KeyboardInterrupt:
            proc.wait()
            returncode = proc.returncode
        finally:
            duration = time.monotonic() - start

        result = ExecutionResult(command=command, returncode=returncode, duration=duration)
        if self._show_frame:
            print(RULE)
            print(format_status(result))
        return result
