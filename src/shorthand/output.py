"""Execution results and console formatting."""

from dataclasses import dataclass, field
from datetime import datetime

from shorthand.commands import CommandSource, SearchResult

RULE = "─" * 50


@dataclass
class ExecutionResult:
    """Result of a command execution."""

    command: str
    returncode: int
    duration: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def succeeded(self) -> bool:
        """Whether the command exited with code 0."""
        return self.returncode == 0


def format_status(result: ExecutionResult) -> str:
    """One-line summary printed after a command finishes."""
    if result.succeeded:
        return "✓ Command completed successfully"
    if result.returncode < 0:
        return f"✗ Command was terminated by signal {-result.returncode}"
    return f"✗ Command exited with code {result.returncode}"


def format_search_result(result: SearchResult) -> str:
    line = f"  {result.name}  =>  {result.template}"
    if result.description:
        line += f"  -- {result.description}"
    return line


def format_conflict_option(source: CommandSource) -> str:
    return f"{source.source} ({source.template})"
