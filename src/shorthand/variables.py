"""Placeholder substitution, context-scoped variables and the active context."""

import logging
import re
from pathlib import Path

import yaml

from shorthand.config import CURRENT_CONTEXT_FILE, VARIABLES_DIR, parse_variables
from shorthand.exceptions import ConfigError, MalformedDocumentError

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "default"

# #N placeholders are looked up this far past the argument count.
FALLBACK_WINDOW = 10


def _substitute(text: str, replacements: dict[str, str]) -> str:
    """Replace every key of ``replacements`` in a single scan.

    At each position the first key in mapping order that matches wins, so
    ``{"#1": ..., "#10": ...}`` turns ``#10`` into the ``#1`` value plus
    ``0``. Replacement values are not scanned again.
    """
    if not replacements:
        return text
    pattern = re.compile("|".join(re.escape(key) for key in replacements))
    return pattern.sub(lambda m: replacements[m.group(0)], text)


def resolve_placeholders(
    template: str,
    args: list[str] | tuple[str, ...] = (),
    variables: dict[str, str] | None = None,
) -> str:
    """Resolve a command template against call-time args and stored variables.

    Three passes, in order:

    1. ``$1`` .. ``$len(args)`` are replaced by the matching argument.
    2. Every variable name is replaced literally by its value, longest
       name first.
    3. ``#1`` .. ``#len(args)+10`` still present that are not variable names
       take the next unconsumed argument, in increasing index order.

    Placeholders are matched as plain substrings, so ``$1`` also matches
    the start of ``$10``. Substituted values are never scanned again and
    anything left unmatched is kept verbatim.
    """
    variables = variables or {}

    resolved = _substitute(template, {f"${i}": arg for i, arg in enumerate(args, 1)})

    keys = sorted((k for k in variables if k), key=len, reverse=True)
    resolved = _substitute(resolved, {k: variables[k] for k in keys})

    # Consumed placeholders are masked so a longer one sharing their prefix
    # is no longer seen as present.
    remaining = resolved
    fallback: dict[str, str] = {}
    cursor = 0
    for i in range(1, len(args) + FALLBACK_WINDOW + 1):
        if cursor >= len(args):
            break
        placeholder = f"#{i}"
        if placeholder in variables or placeholder not in remaining:
            continue
        fallback[placeholder] = args[cursor]
        cursor += 1
        remaining = remaining.replace(placeholder, "\0")

    return _substitute(resolved, fallback)


class VariableStore:
    """Persistent variables, one flat mapping per context.

    Each context lives in ``<directory>/<context>.yaml`` as ``{vars: {...}}``.
    A context with no file is simply empty.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory
        self._contexts: dict[str, dict[str, str]] = {}

    def _path(self, context: str) -> Path | None:
        if self._directory is None:
            return None
        return self._directory / f"{context}.yaml"

    def variables(self, context: str) -> dict[str, str]:
        """Return a copy of the variables defined in ``context``."""
        if context not in self._contexts:
            self._contexts[context] = self._load(context)
        return dict(self._contexts[context])

    def get(self, context: str, name: str) -> str | None:
        return self.variables(context).get(name)

    def set(self, context: str, name: str, value: str) -> None:
        if not name:
            raise ConfigError("Variable name must not be empty")
        current = self.variables(context)
        current[name] = value
        self._contexts[context] = current
        self._save(context)

    def remove(self, context: str, name: str) -> bool:
        current = self.variables(context)
        if current.pop(name, None) is None:
            return False
        self._contexts[context] = current
        self._save(context)
        return True

    def resolve(self, context: str, template: str, args: list[str] | tuple[str, ...] = ()) -> str:
        """Resolve ``template`` against the variables of ``context``."""
        return resolve_placeholders(template, args, self.variables(context))

    def _load(self, context: str) -> dict[str, str]:
        path = self._path(context)
        if path is None or not path.exists():
            return {}
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise MalformedDocumentError(f"Invalid YAML: {e}", str(path)) from e
        return parse_variables(data, str(path))

    def _save(self, context: str) -> None:
        path = self._path(context)
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {"vars": dict(sorted(self._contexts[context].items()))}
        path.write_text(yaml.safe_dump(document, sort_keys=False))
        logger.debug("Saved %d variable(s) for context %s", len(document["vars"]), context)


class ContextManager:
    """Tracks the active context, persisted as plain text."""

    def __init__(self, home: Path, default: str = DEFAULT_CONTEXT) -> None:
        self._home = home
        self._default = default
        path = home / CURRENT_CONTEXT_FILE
        current = path.read_text().strip() if path.exists() else ""
        self._current = current or default

    @property
    def current(self) -> str:
        return self._current

    def switch(self, context: str) -> None:
        """Make ``context`` active and remember it."""
        context = context.strip()
        if not context:
            raise ConfigError("Context name must not be empty")
        self._home.mkdir(parents=True, exist_ok=True)
        (self._home / CURRENT_CONTEXT_FILE).write_text(context)
        self._current = context

    def list_contexts(self) -> list[str]:
        """Return the default and active contexts plus every one with a variables file."""
        names = {self._default, self._current}
        variables_dir = self._home / VARIABLES_DIR
        if variables_dir.is_dir():
            names.update(p.stem for p in variables_dir.glob("*.yaml"))
        return sorted(names)
