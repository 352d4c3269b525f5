"""YAML config loading and validation."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from shorthand.commands import CommandEntry, Registry, RegistryOrigin, Visibility
from shorthand.exceptions import ConfigError, MalformedDocumentError

SHORTHAND_HOME = Path("~/.config/shorthand")
HOME_ENV_VAR = "SHORTHAND_HOME"
VALID_EDITORS = ("vim", "nano", "emacs", "code")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_REGISTRY_FILES = ["shorthand.yaml", "shorthand.yml"]

SETTINGS_FILE = "settings.yaml"
MAIN_REGISTRY_FILE = "config.yaml"
CURRENT_CONTEXT_FILE = "current_context"
VARIABLES_DIR = "variables"
REGISTRIES_DIR = "registries"
YAML_SUFFIXES = (".yaml", ".yml")

DEFAULT_COMMANDS: dict[str, CommandEntry] = {
    "watch": CommandEntry.with_description(
        "watch kubectl -n #1 get pods", "Watch pods in current namespace (#1)"
    ),
    "logs": CommandEntry.simple("kubectl logs -f -n #1 #2"),
    "pods": CommandEntry.simple("kubectl get pods -n #1"),
    "describe": CommandEntry.simple("kubectl describe pod -n #1 #2"),
}


@dataclass
class Settings:
    """Settings from settings.yaml."""

    editor: str = "vim"
    log_level: str = "WARNING"
    default_context: str = "default"
    api_url: str = "https://api.github.com"
    timeout: float = 10
    registry_files: list[str] = field(default_factory=lambda: list(DEFAULT_REGISTRY_FILES))


def home_dir() -> Path:
    """Return the shorthand home directory, honouring $SHORTHAND_HOME."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return SHORTHAND_HOME.expanduser()


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(path: Path) -> Settings:
    """Load and validate settings.yaml."""
    data = _load_yaml(path)
    general = data.get("shorthand", {}) or {}
    remote = data.get("remote", {}) or {}

    editor = general.get("editor", "vim")
    if editor not in VALID_EDITORS:
        raise ConfigError(f"Invalid editor: {editor}. Must be one of {VALID_EDITORS}")

    log_level = str(general.get("log_level", "WARNING")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(f"Invalid log_level: {log_level}. Must be one of {VALID_LOG_LEVELS}")

    registry_files = remote.get("registry_files", DEFAULT_REGISTRY_FILES)
    if not isinstance(registry_files, list) or not registry_files:
        raise ConfigError("remote.registry_files must be a non-empty list")

    return Settings(
        editor=editor,
        log_level=log_level,
        default_context=general.get("default_context", "default"),
        api_url=str(remote.get("api_url", "https://api.github.com")).rstrip("/"),
        timeout=remote.get("timeout", 10),
        registry_files=[str(name) for name in registry_files],
    )


def load_home_settings() -> Settings:
    """Load settings.yaml from the home directory, or defaults if absent."""
    path = home_dir() / SETTINGS_FILE
    if path.exists():
        return load_settings(path)
    return Settings()


def _parse_entry(name: str, raw: Any, where: str) -> CommandEntry:
    if isinstance(raw, str):
        template, description, detailed = raw, None, False
    elif isinstance(raw, dict):
        template = raw.get("command")
        description = raw.get("description")
        detailed = True
        if not isinstance(template, str):
            raise MalformedDocumentError(f"Command '{name}' is missing a 'command' string", where)
        if description is not None and not isinstance(description, str):
            raise MalformedDocumentError(f"Description of '{name}' must be a string", where)
    else:
        raise MalformedDocumentError(
            f"Command '{name}' must be a string or a mapping, got {type(raw).__name__}", where
        )
    if not template.strip():
        raise MalformedDocumentError(f"Command '{name}' has an empty template", where)
    return CommandEntry(template=template, description=description, detailed=detailed)


def _parse_origin(raw: Any, where: str) -> RegistryOrigin | None:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("repo"), str):
        raise MalformedDocumentError("origin must be a mapping with a 'repo' string", where)
    try:
        visibility = Visibility(raw.get("import_type", Visibility.PUBLIC.value))
    except ValueError as e:
        raise MalformedDocumentError(f"Unknown import_type: {raw.get('import_type')}", where) from e
    return RegistryOrigin(identifier=raw["repo"], visibility=visibility)


def parse_registry(data: Any, where: str = "") -> Registry:
    """Build a Registry from a decoded YAML document."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedDocumentError(
            f"Expected a mapping, got {type(data).__name__}", where
        )
    raw_commands = data.get("commands", {}) or {}
    if not isinstance(raw_commands, dict):
        raise MalformedDocumentError("'commands' must be a mapping", where)

    commands = {
        str(name): _parse_entry(str(name), raw, where) for name, raw in raw_commands.items()
    }
    return Registry(commands=commands, origin=_parse_origin(data.get("origin"), where))


def parse_registry_text(text: str, where: str = "") -> Registry:
    """Parse registry YAML text."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedDocumentError(f"Invalid YAML: {e}", where) from e
    return parse_registry(data, where)


def load_registry(path: Path) -> Registry:
    """Load a registry document from disk."""
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    return parse_registry_text(text, where=str(path))


def registry_to_document(registry: Registry) -> dict[str, Any]:
    """Convert a Registry back to its YAML document shape."""
    commands: dict[str, Any] = {}
    for name, entry in sorted(registry.commands.items()):
        if entry.detailed or entry.description is not None:
            raw: dict[str, str] = {"command": entry.template}
            if entry.description is not None:
                raw["description"] = entry.description
            commands[name] = raw
        else:
            commands[name] = entry.template
    document: dict[str, Any] = {"commands": commands}
    if registry.origin is not None:
        document["origin"] = {
            "repo": registry.origin.identifier,
            "import_type": registry.origin.visibility.value,
        }
    return document


def dump_registry(registry: Registry) -> str:
    return yaml.safe_dump(registry_to_document(registry), sort_keys=False)


def parse_variables(data: Any, where: str = "") -> dict[str, str]:
    """Validate a variables document and return its flat mapping."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedDocumentError(f"Expected a mapping, got {type(data).__name__}", where)
    raw = data.get("vars", {}) or {}
    if not isinstance(raw, dict):
        raise MalformedDocumentError("'vars' must be a mapping", where)
    return {str(k): _scalar_text(str(k), v, where) for k, v in raw.items()}


def _scalar_text(name: str, value: Any, where: str) -> str:
    """Render a YAML scalar as command text. Booleans keep their YAML spelling."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise MalformedDocumentError(
        f"Variable '{name}' must be a string or number, got {type(value).__name__}", where
    )
