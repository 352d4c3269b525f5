"""Command registries, merged lookup and conflict resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from shorthand.exceptions import ConfigError, InvalidSourceError

if TYPE_CHECKING:
    from shorthand.storage import RegistryStorage

MAIN_SOURCE = "main"


@dataclass(frozen=True)
class CommandEntry:
    """A command template with an optional description.

    Registry documents accept either a bare template string or a mapping with
    ``command`` and ``description``. Both shapes load into this type; the
    ``detailed`` flag only records which shape to write back.
    """

    template: str
    description: str | None = None
    detailed: bool = False

    @classmethod
    def simple(cls, template: str) -> CommandEntry:
        return cls(template=template)

    @classmethod
    def with_description(cls, template: str, description: str | None) -> CommandEntry:
        return cls(template=template, description=description, detailed=True)


class Visibility(str, Enum):
    """How a remote registry is fetched again on sync."""

    PUBLIC = "Public"
    PRIVATE = "Private"


@dataclass(frozen=True)
class RegistryOrigin:
    """Remote repository an imported registry came from."""

    identifier: str
    visibility: Visibility


@dataclass
class Registry:
    """Mapping of command names to entries."""

    commands: dict[str, CommandEntry] = field(default_factory=dict)
    origin: RegistryOrigin | None = None

    def get(self, name: str) -> CommandEntry | None:
        return self.commands.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.commands

    def __len__(self) -> int:
        return len(self.commands)


@dataclass(frozen=True)
class CommandSource:
    """A command definition tagged with the registry it came from."""

    name: str
    entry: CommandEntry
    source: str

    @property
    def template(self) -> str:
        return self.entry.template

    @property
    def description(self) -> str | None:
        return self.entry.description


@dataclass(frozen=True)
class SearchResult:
    """One row of a merged listing."""

    name: str
    template: str
    description: str | None = None


class RegistrySet:
    """The primary registry plus any number of named imported registries.

    Single lookups prefer the primary registry. The merged listing applies
    imported registries over the primary, so there the last source wins.
    Callers rely on both orders.
    """

    def __init__(
        self,
        primary: Registry | None = None,
        sources: dict[str, Registry] | None = None,
        storage: RegistryStorage | None = None,
    ) -> None:
        self.primary = primary if primary is not None else Registry()
        self._sources: dict[str, Registry] = {}
        self._storage = storage
        for name, registry in (sources or {}).items():
            self.add_source(name, registry)

    # -- sources --------------------------------------------------------

    def source_names(self) -> list[str]:
        """Return imported source names in lookup order."""
        return sorted(self._sources)

    def has_source(self, name: str) -> bool:
        return name == MAIN_SOURCE or name in self._sources

    def source(self, name: str) -> Registry:
        """Return a registry by source name, ``"main"`` for the primary."""
        if name == MAIN_SOURCE:
            return self.primary
        if name not in self._sources:
            raise InvalidSourceError(name, available=[MAIN_SOURCE, *self.source_names()])
        return self._sources[name]

    def sources(self) -> list[tuple[str, Registry]]:
        """Return ``(name, registry)`` pairs for imported sources in lookup order."""
        return [(name, self._sources[name]) for name in self.source_names()]

    def unique_source_name(self, base: str) -> str:
        """Return ``base`` or ``base_N`` so it collides with no existing source."""
        candidate = base
        counter = 1
        while self.has_source(candidate):
            candidate = f"{base}_{counter}"
            counter += 1
        return candidate

    def add_source(self, name: str, registry: Registry) -> None:
        """Register a new imported source."""
        if self.has_source(name):
            raise ConfigError(f"Source already exists: {name}")
        self._sources[name] = registry

    def replace_source(self, name: str, registry: Registry) -> None:
        """Overwrite an imported source wholesale."""
        if name == MAIN_SOURCE:
            raise InvalidSourceError(name)
        self._sources[name] = registry

    def remove_source(self, name: str) -> Registry:
        """Drop an imported source and return it."""
        if name == MAIN_SOURCE or name not in self._sources:
            raise InvalidSourceError(name, available=self.source_names())
        return self._sources.pop(name)

    # -- lookup ---------------------------------------------------------

    def _ordered(self) -> list[tuple[str, Registry]]:
        return [(MAIN_SOURCE, self.primary), *self.sources()]

    def lookup(self, name: str) -> CommandSource | None:
        """Return the highest-priority definition of ``name``, primary first."""
        for source, registry in self._ordered():
            entry = registry.get(name)
            if entry is not None:
                return CommandSource(name=name, entry=entry, source=source)
        return None

    def conflicts(self, name: str) -> list[CommandSource]:
        """Return every definition of ``name``, primary first.

        More than one result means the caller has to pick a source.
        """
        found = []
        for source, registry in self._ordered():
            entry = registry.get(name)
            if entry is not None:
                found.append(CommandSource(name=name, entry=entry, source=source))
        return found

    def resolve_conflict(self, name: str, source: str) -> CommandSource | None:
        """Return the definition of ``name`` from one specific source."""
        entry = self.source(source).get(name)
        if entry is None:
            return None
        return CommandSource(name=name, entry=entry, source=source)

    # -- listing --------------------------------------------------------

    def merged(self) -> dict[str, CommandEntry]:
        """Flatten all registries, imported sources overwriting the primary."""
        flat = dict(self.primary.commands)
        for _, registry in self.sources():
            flat.update(registry.commands)
        return flat

    def search(self, query: str = "") -> list[SearchResult]:
        """Filter the merged view by a case-insensitive substring."""
        q = query.lower()
        results = []
        for name, entry in self.merged().items():
            if (
                not q
                or q in name.lower()
                or q in entry.template.lower()
                or (entry.description is not None and q in entry.description.lower())
            ):
                results.append(
                    SearchResult(name=name, template=entry.template, description=entry.description)
                )
        return sorted(results, key=lambda r: r.name)

    # -- mutation -------------------------------------------------------

    def add(self, name: str, template: str, description: str | None = None) -> None:
        """Insert or overwrite a command in the primary registry."""
        if not name.strip():
            raise ConfigError("Command name must not be empty")
        if not template.strip():
            raise ConfigError(f"Command '{name}' must have a non-empty template")
        if description is None:
            entry = CommandEntry.simple(template)
        else:
            entry = CommandEntry.with_description(template, description)
        self.primary.commands[name] = entry
        self._persist()

    def remove(self, name: str) -> bool:
        """Delete a command from the primary registry."""
        if self.primary.commands.pop(name, None) is None:
            return False
        self._persist()
        return True

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save_primary(self.primary)
