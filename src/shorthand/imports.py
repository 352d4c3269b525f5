"""Importing, syncing and removing secondary registries."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from shorthand.commands import MAIN_SOURCE, Registry, RegistryOrigin, RegistrySet, Visibility
from shorthand.config import YAML_SUFFIXES, load_registry, parse_registry_text
from shorthand.exceptions import ConfigError, InvalidSourceError, ShorthandError
from shorthand.remote import RemoteFetcher, parse_identifier
from shorthand.storage import RegistryStorage

logger = logging.getLogger(__name__)

SCHEMA_COMMENT_PREFIX = "# yaml-language-server:"


@dataclass
class SyncResult:
    """Outcome of refreshing one source or checkout."""

    name: str
    succeeded: bool
    error: str = ""


@dataclass
class SyncPlan:
    """What a sync would touch."""

    sources: list[tuple[str, RegistryOrigin]]
    checkouts: list[str]

    @property
    def empty(self) -> bool:
        return not self.sources and not self.checkouts


def _require_commands(registry: Registry, where: str) -> None:
    if not registry.commands:
        raise ConfigError(f"{where} contains no commands. Add them under 'commands'.")


class Importer:
    """Creates, refreshes and removes imported registries.

    Imports never touch the primary registry.
    """

    def __init__(
        self,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: RemoteFetcher | None = None,
    ) -> None:
        self._registries = registries
        self._storage = storage
        self._fetcher = fetcher or RemoteFetcher()

    # -- import ---------------------------------------------------------

    def import_file(self, path: Path) -> str:
        """Import a local registry file and return its source name."""
        if not path.is_file():
            raise ConfigError(f"Config file does not exist: {path}")
        registry = load_registry(path)
        name = self._registries.unique_source_name(path.stem or "imported")
        self._storage.save_source(name, registry)
        self._registries.add_source(name, registry)
        logger.info("Imported %s as %s", path, name)
        return name

    def import_remote(self, identifier: str) -> str:
        """Import the registry file of an ``owner/repo`` repository."""
        _, repo = parse_identifier(identifier)
        text, visibility = self._fetcher.fetch(identifier)
        registry = parse_registry_text(text, where=identifier)
        _require_commands(registry, f"Registry file of '{identifier}'")
        registry.origin = RegistryOrigin(identifier=identifier, visibility=visibility)

        name = self._registries.unique_source_name(repo)
        self._storage.save_source(name, registry)
        self._registries.add_source(name, registry)
        logger.info("Imported %s (%s) as %s", identifier, visibility.value, name)
        return name

    def import_repo(self, identifier: str) -> list[str]:
        """Clone a repository and import every YAML file in its root.

        Files that are not valid registries are skipped with a warning. The
        checkout is kept so that sync can update it with git.
        """
        owner, repo = parse_identifier(identifier)
        checkout_name = f"{owner}-{repo}"
        checkout = self._storage.checkout_path(checkout_name)

        if checkout.exists():
            logger.info("Repository already imported, replacing %s", checkout)
            self._drop_checkout(checkout_name)

        self._storage.registries_dir.mkdir(parents=True, exist_ok=True)
        self._fetcher.git.clone(identifier, checkout)

        origin = RegistryOrigin(identifier=identifier, visibility=Visibility.PRIVATE)
        imported = []
        for path in sorted(checkout.iterdir()):
            if not path.is_file() or path.suffix not in YAML_SUFFIXES:
                continue
            try:
                name = self._import_checkout_file(path, checkout_name, origin)
            except ConfigError as e:
                logger.warning("Skipped %s: %s", path.name, e)
                continue
            imported.append(name)

        if not imported:
            shutil.rmtree(checkout, ignore_errors=True)
            raise ConfigError(
                f"No valid YAML registry files found in the root of '{identifier}'"
            )
        return imported

    def _import_checkout_file(self, path: Path, checkout: str, origin: RegistryOrigin) -> str:
        text = path.read_text()
        registry = parse_registry_text(text, where=str(path))
        _require_commands(registry, path.name)
        registry.origin = origin

        first_line = text.lstrip().splitlines()[0] if text.strip() else ""
        header = first_line if first_line.startswith(SCHEMA_COMMENT_PREFIX) else ""
        self._storage.write_checkout_file(path, registry, header=header)

        name = self._registries.unique_source_name(f"{checkout}_{path.stem}")
        self._registries.add_source(name, registry)
        self._storage.track_checkout_source(name, checkout)
        return name

    # -- removal --------------------------------------------------------

    def unimport(self, name: str) -> list[str]:
        """Remove an imported source, or a whole checkout, and its files."""
        if name == MAIN_SOURCE:
            raise InvalidSourceError(name)

        if self._storage.checkout_path(name).is_dir():
            return self._drop_checkout(name)

        checkout = self._storage.checkout_of(name)
        if checkout is not None:
            raise ConfigError(
                f"Source '{name}' belongs to the repository checkout '{checkout}'. "
                f"Unimport '{checkout}' instead."
            )

        self._registries.remove_source(name)
        self._storage.delete_source(name)
        return [name]

    def _drop_checkout(self, checkout: str) -> list[str]:
        names = self._storage.forget_checkout(checkout)
        for source in names:
            if self._registries.has_source(source):
                self._registries.remove_source(source)
        self._storage.delete_checkout(checkout)
        return names

    # -- sync -----------------------------------------------------------

    def plan_sync(self) -> SyncPlan:
        """List the sources with a remote origin and the git checkouts."""
        sources = [
            (name, registry.origin)
            for name, registry in self._registries.sources()
            if registry.origin is not None and self._storage.checkout_of(name) is None
        ]
        checkouts = [
            path.name for path in self._storage.checkouts() if (path / ".git").exists()
        ]
        return SyncPlan(sources=sources, checkouts=checkouts)

    def sync(self, plan: SyncPlan | None = None) -> list[SyncResult]:
        """Replace every syncable source with its remote content.

        Local edits to imported registries are overwritten. Failures are
        reported per source and do not stop the others.
        """
        plan = plan or self.plan_sync()
        results = []
        for name, origin in plan.sources:
            try:
                self.sync_source(name, origin)
            except ShorthandError as e:
                logger.warning("Sync of %s failed: %s", name, e)
                results.append(SyncResult(name=name, succeeded=False, error=str(e)))
            else:
                results.append(SyncResult(name=name, succeeded=True))

        for checkout in plan.checkouts:
            try:
                self.sync_checkout(checkout)
            except ShorthandError as e:
                logger.warning("Sync of %s failed: %s", checkout, e)
                results.append(SyncResult(name=checkout, succeeded=False, error=str(e)))
            else:
                results.append(SyncResult(name=checkout, succeeded=True))
        return results

    def sync_source(self, name: str, origin: RegistryOrigin) -> None:
        """Overwrite one imported source with a fresh copy of its origin."""
        text, _ = self._fetcher.fetch(origin.identifier, origin.visibility)
        registry = parse_registry_text(text, where=origin.identifier)
        _require_commands(registry, f"Updated registry of '{origin.identifier}'")
        registry.origin = origin
        self._storage.save_source(name, registry)
        self._registries.replace_source(name, registry)

    def sync_checkout(self, checkout: str) -> None:
        """Update a checkout with git and reload its sources."""
        path = self._storage.checkout_path(checkout)
        self._fetcher.git.refresh(path)
        for source in self._storage.forget_checkout(checkout):
            if self._registries.has_source(source):
                self._registries.remove_source(source)
        for name, registry in self._storage.scan_checkout(path).items():
            name = self._registries.unique_source_name(name)
            self._registries.add_source(name, registry)
            self._storage.track_checkout_source(name, checkout)
