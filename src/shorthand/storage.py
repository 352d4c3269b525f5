"""On-disk persistence of the primary and imported registries."""

import logging
import shutil
from pathlib import Path

from shorthand.commands import Registry, RegistrySet
from shorthand.config import (
    DEFAULT_COMMANDS,
    MAIN_REGISTRY_FILE,
    REGISTRIES_DIR,
    VARIABLES_DIR,
    YAML_SUFFIXES,
    dump_registry,
    load_registry,
)
from shorthand.exceptions import ConfigError

logger = logging.getLogger(__name__)


class RegistryStorage:
    """Reads and writes registry documents under the home directory.

    Layout::

        config.yaml                    primary registry
        registries/<source>.yaml       one imported registry per file
        registries/<owner>-<repo>/     git checkout, one source per YAML file
    """

    def __init__(self, home: Path) -> None:
        self.home = home
        self.main_path = home / MAIN_REGISTRY_FILE
        self.registries_dir = home / REGISTRIES_DIR
        self.variables_dir = home / VARIABLES_DIR
        self._checkout_members: dict[str, str] = {}
        self._source_files: dict[str, Path] = {}

    def ensure_layout(self) -> None:
        """Create the home directory and its subdirectories if missing."""
        for directory in (self.home, self.registries_dir, self.variables_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # -- loading --------------------------------------------------------

    def load(self, seed: bool = True) -> RegistrySet:
        """Load the primary registry and every imported source.

        A missing primary registry is created, with the default commands when
        ``seed`` is true. Malformed standalone files raise; malformed files
        inside a checkout are skipped.
        """
        self.ensure_layout()
        if self.main_path.exists():
            primary = load_registry(self.main_path)
        else:
            primary = Registry(commands=dict(DEFAULT_COMMANDS) if seed else {})
            self.save_primary(primary)
            logger.info("Created %s", self.main_path)

        registry_set = RegistrySet(primary=primary, storage=self)
        self._checkout_members = {}
        self._source_files = {}

        for path in sorted(self.registries_dir.iterdir()):
            if not path.is_file() or path.suffix not in YAML_SUFFIXES:
                continue
            name = registry_set.unique_source_name(path.stem)
            if name != path.stem:
                logger.warning("Loading %s as source %s: name already in use", path, name)
            registry_set.add_source(name, load_registry(path))
            self._source_files[name] = path

        for checkout in self.checkouts():
            for name, registry in self.scan_checkout(checkout).items():
                name = registry_set.unique_source_name(name)
                registry_set.add_source(name, registry)
                self._checkout_members[name] = checkout.name

        return registry_set

    def checkouts(self) -> list[Path]:
        """Return checkout directories under registries/."""
        if not self.registries_dir.is_dir():
            return []
        return sorted(
            p for p in self.registries_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    def scan_checkout(self, checkout: Path) -> dict[str, Registry]:
        """Load every root YAML file of a checkout that defines commands.

        Files that fail to parse are logged and skipped.
        """
        found: dict[str, Registry] = {}
        for path in sorted(checkout.iterdir()):
            if not path.is_file() or path.suffix not in YAML_SUFFIXES:
                continue
            try:
                registry = load_registry(path)
            except ConfigError as e:
                logger.warning("Skipping %s: %s", path, e)
                continue
            if not registry.commands:
                logger.debug("Skipping %s: no commands", path)
                continue
            found[f"{checkout.name}_{path.stem}"] = registry
        return found

    def checkout_of(self, source: str) -> str | None:
        """Return the checkout directory name a source was loaded from."""
        return self._checkout_members.get(source)

    def checkout_sources(self, checkout: str) -> list[str]:
        return sorted(name for name, owner in self._checkout_members.items() if owner == checkout)

    def track_checkout_source(self, source: str, checkout: str) -> None:
        self._checkout_members[source] = checkout

    def forget_checkout(self, checkout: str) -> list[str]:
        """Stop tracking a checkout's sources and return their names."""
        names = self.checkout_sources(checkout)
        for name in names:
            del self._checkout_members[name]
        return names

    # -- writing --------------------------------------------------------

    def save_primary(self, registry: Registry) -> None:
        self.home.mkdir(parents=True, exist_ok=True)
        self.main_path.write_text(dump_registry(registry))

    def source_path(self, name: str) -> Path:
        """Return the file backing a source, registries/<name>.yaml for new ones."""
        return self._source_files.get(name, self.registries_dir / f"{name}.yaml")

    def save_source(self, name: str, registry: Registry) -> Path:
        """Write an imported registry back to the file it was loaded from."""
        self.registries_dir.mkdir(parents=True, exist_ok=True)
        path = self.source_path(name)
        path.write_text(dump_registry(registry))
        self._source_files[name] = path
        logger.debug("Saved source %s to %s", name, path)
        return path

    def delete_source(self, name: str) -> None:
        tracked = self._source_files.pop(name, None)
        if tracked is not None:
            tracked.unlink(missing_ok=True)
            return
        for suffix in YAML_SUFFIXES:
            path = self.registries_dir / f"{name}{suffix}"
            if path.exists():
                path.unlink()

    def write_checkout_file(self, path: Path, registry: Registry, header: str = "") -> None:
        """Rewrite a checkout file in place, keeping a leading comment line."""
        body = dump_registry(registry)
        path.write_text(f"{header}\n\n{body}" if header else body)

    def checkout_path(self, checkout: str) -> Path:
        return self.registries_dir / checkout

    def delete_checkout(self, checkout: str) -> None:
        path = self.checkout_path(checkout)
        if path.exists():
            shutil.rmtree(path)
