"""Application wiring: registries, variables, contexts and execution."""

import logging
from pathlib import Path

from shorthand import interactive
from shorthand.commands import CommandSource, RegistrySet
from shorthand.config import Settings
from shorthand.exceptions import CommandNotFoundError, ShorthandError
from shorthand.executor import Executor
from shorthand.imports import Importer
from shorthand.output import format_conflict_option, format_search_result
from shorthand.remote import GitHubClient, RemoteFetcher, is_remote_identifier
from shorthand.storage import RegistryStorage
from shorthand.variables import ContextManager, VariableStore

logger = logging.getLogger(__name__)


class ShorthandApp:
    """Main application: one instance per CLI invocation."""

    def __init__(
        self,
        settings: Settings,
        home: Path,
        executor: Executor | None = None,
        fetcher: RemoteFetcher | None = None,
    ) -> None:
        self._settings = settings
        self._home = home
        self._storage = RegistryStorage(home)
        self._registries = RegistrySet()
        self._variables = VariableStore(self._storage.variables_dir)
        self._contexts = ContextManager(home, default=settings.default_context)
        self._executor = executor or Executor()
        self._fetcher = fetcher or RemoteFetcher(
            github=GitHubClient(
                api_url=settings.api_url,
                timeout=settings.timeout,
                registry_files=settings.registry_files,
            ),
            registry_files=settings.registry_files,
        )
        self._importer = Importer(self._registries, self._storage, self._fetcher)

    @property
    def registries(self) -> RegistrySet:
        return self._registries

    @property
    def context(self) -> str:
        return self._contexts.current

    def load_config(self) -> None:
        """Load or reload every registry from disk."""
        self._registries = self._storage.load()
        self._importer = Importer(self._registries, self._storage, self._fetcher)
        logger.debug(
            "Loaded %d command(s) from %d source(s)",
            len(self._registries.merged()),
            len(self._registries.source_names()) + 1,
        )

    # -- running commands ----------------------------------------------

    def select_definition(self, name: str, source: str | None = None) -> CommandSource:
        """Pick the definition of ``name`` to run, asking when it is ambiguous."""
        if source is not None:
            chosen = self._registries.resolve_conflict(name, source)
            if chosen is None:
                available = sorted(self._registries.source(source).commands)
                raise CommandNotFoundError(name, available=available, source=source)
            return chosen

        conflicts = self._registries.conflicts(name)
        if not conflicts:
            raise CommandNotFoundError(name)
        if len(conflicts) == 1:
            return conflicts[0]

        print(f"⚠ Command '{name}' found in multiple registries:")
        index = interactive.choose([format_conflict_option(c) for c in conflicts])
        if index is None:
            raise ShorthandError("No source selected. Cancelled.")
        return conflicts[index]

    def resolve_command(self, name: str, args: list[str], source: str | None = None) -> str:
        """Return the fully resolved command line for ``name``."""
        definition = self.select_definition(name, source)
        return self._variables.resolve(self.context, definition.template, args)

    def run_command(
        self,
        name: str,
        args: list[str],
        source: str | None = None,
        dry_run: bool = False,
    ) -> int:
        """Resolve and execute a command, returning its exit status."""
        resolved = self.resolve_command(name, args, source)
        if dry_run:
            print(resolved)
            return 0
        print(f"Executing: {resolved}")
        result = self._executor.run(resolved)
        return result.returncode

    def browse(self) -> int:
        """Interactive browser over every command."""
        commands = self._registries.search("")
        if not commands:
            print("No commands available.")
            return 0
        name = interactive.select_command(commands, self.context)
        if name is None:
            return 0
        print(f"✓ Selected command: {name}")
        return self.run_command(name, [])

    # -- registry management -------------------------------------------

    def handle_add(self, name: str, template: str, description: str | None = None) -> None:
        self._registries.add(name, template, description)
        print(f"✓ Added {name}: {template}")

    def handle_remove(self, name: str) -> None:
        if self._registries.remove(name):
            print(f"✓ Removed {name}")
            remaining = self._registries.lookup(name)
            if remaining is not None:
                print(f"  '{name}' is still defined in {remaining.source}")
        else:
            print(f"'{name}' is not defined in the main registry.")

    def handle_list(self, query: str = "") -> None:
        results = self._registries.search(query)
        if not results:
            print("No matching commands." if query else "No commands configured.")
            return
        for result in results:
            print(format_search_result(result))

    def handle_which(self, name: str) -> None:
        definitions = self._registries.conflicts(name)
        if not definitions:
            raise CommandNotFoundError(name)
        for definition in definitions:
            print(f"  {definition.source}: {definition.template}")
            if definition.description:
                print(f"      {definition.description}")

    # -- variables and contexts ----------------------------------------

    def handle_var(self, name: str, value: str) -> None:
        self._variables.set(self.context, name, value)
        print(f"✓ Variable {name} set to {value} in context {self.context}")

    def handle_unset(self, name: str) -> None:
        if self._variables.remove(self.context, name):
            print(f"✓ Variable {name} removed from context {self.context}")
        else:
            print(f"Variable {name} is not set in context {self.context}")

    def handle_vars(self) -> None:
        """Show variables of the current context."""
        print(f"Variables in context {self.context}:")
        variables = self._variables.variables(self.context)
        if not variables:
            print("  (none)")
        for k, v in sorted(variables.items()):
            print(f"  {k} = {v}")

    def handle_context(self, name: str | None = None) -> None:
        if name:
            self._contexts.switch(name)
            print(f"✓ Switched to context {name}")
            return
        for context in self._contexts.list_contexts():
            marker = "*" if context == self.context else " "
            print(f"{marker} {context}")

    # -- imports --------------------------------------------------------

    def handle_import(self, target: str) -> None:
        if is_remote_identifier(target):
            name = self._importer.import_remote(target)
            print(f"✓ Imported '{target}' as '{name}'")
        else:
            name = self._importer.import_file(Path(target).expanduser())
            print(f"✓ Imported config file as '{name}'")

    def handle_import_repo(self, identifier: str) -> None:
        names = self._importer.import_repo(identifier)
        print(f"✓ Imported {len(names)} config file(s) from '{identifier}':")
        for name in names:
            print(f"  • {name}")

    def handle_unimport(self, name: str) -> None:
        removed = self._importer.unimport(name)
        for source in removed:
            print(f"✓ Removed source {source}")

    def handle_sync(self, assume_yes: bool = False) -> int:
        """Refresh imported registries from their origins."""
        plan = self._importer.plan_sync()
        if plan.empty:
            print("No imported configs with remote origins found. Nothing to sync.")
            return 0

        print("Sources to sync:")
        for name, origin in plan.sources:
            print(f"  • {name} -> {origin.visibility.value} ({origin.identifier})")
        for checkout in plan.checkouts:
            print(f"  • {checkout} -> git repository")
        print("WARNING: local changes in imported configs will be overwritten.")

        if not assume_yes and not interactive.confirm("Continue with the sync?"):
            print("Sync cancelled.")
            return 0

        results = self._importer.sync(plan)
        failed = [r for r in results if not r.succeeded]
        print(f"\n✓ Successful: {len(results) - len(failed)}")
        if failed:
            print(f"✗ Failed: {len(failed)}")
            for result in failed:
                print(f"  • {result.name}: {result.error}")
            return 1
        return 0
