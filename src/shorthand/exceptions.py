"""Custom exception hierarchy for shorthand."""


class ShorthandError(Exception):
    """Base exception for all shorthand errors."""


class ConfigError(ShorthandError):
    """Raised when config loading or validation fails."""


class MalformedDocumentError(ConfigError):
    """Raised when a registry or variables document fails structural validation."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class CommandNotFoundError(ShorthandError):
    """Raised when a command is not defined in any registry."""

    def __init__(
        self,
        command_name: str,
        available: list[str] | None = None,
        source: str | None = None,
    ) -> None:
        self.command_name = command_name
        self.available = available or []
        self.source = source
        where = f" in source '{source}'" if source else ""
        suggestions = ""
        if self.available:
            suggestions = f" Available: {', '.join(self.available)}"
        super().__init__(f"Command not found{where}: {command_name}.{suggestions}")


class InvalidSourceError(ShorthandError):
    """Raised when a caller names a registry source that does not exist."""

    def __init__(self, source: str, available: list[str] | None = None) -> None:
        self.source = source
        self.available = available or []
        hint = ""
        if self.available:
            hint = f". Available: {', '.join(self.available)}"
        super().__init__(f"Invalid source: {source}{hint}")


class RemoteError(ShorthandError):
    """Raised when a remote registry cannot be acquired."""


class RemoteNotFoundError(RemoteError):
    """Raised when the remote repository or its registry file does not exist."""


class TransportError(RemoteError):
    """Raised when the network or git transport fails."""


class ExecutionError(ShorthandError):
    """Raised when a command cannot be started."""
