"""Tests for importing, syncing and removing secondary registries."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from shorthand.commands import RegistryOrigin, RegistrySet, Visibility
from shorthand.config import load_registry
from shorthand.exceptions import (
    ConfigError,
    InvalidSourceError,
    MalformedDocumentError,
    RemoteNotFoundError,
    TransportError,
)
from shorthand.imports import Importer
from shorthand.remote import RemoteFetcher
from shorthand.storage import RegistryStorage

REMOTE_TEXT = "commands:\n  deploy: make deploy ENV=#1\n"
SCHEMA_HEADER = "# yaml-language-server: $schema=https://example.com/schema.json"


@pytest.fixture
def fetcher() -> MagicMock:
    return MagicMock(spec=RemoteFetcher)


@pytest.fixture
def registries(storage: RegistryStorage) -> RegistrySet:
    return storage.load(seed=False)


@pytest.fixture
def importer(registries: RegistrySet, storage: RegistryStorage, fetcher: MagicMock) -> Importer:
    return Importer(registries, storage, fetcher)


def _fake_clone(files: dict[str, str]):
    def clone(identifier: str, destination: Path) -> None:
        (destination / ".git").mkdir(parents=True)
        for name, text in files.items():
            (destination / name).write_text(text)

    return clone


class TestImportFile:
    def test_imports_under_file_stem(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fixtures_dir: Path,
    ) -> None:
        name = importer.import_file(fixtures_dir / "valid_commands.yaml")
        assert name == "valid_commands"
        assert registries.resolve_conflict("pods", name) is not None
        assert storage.source_path(name).exists()

    def test_name_collision_gets_suffix(self, importer: Importer, fixtures_dir: Path) -> None:
        importer.import_file(fixtures_dir / "valid_commands.yaml")
        assert importer.import_file(fixtures_dir / "valid_commands.yaml") == "valid_commands_1"

    def test_does_not_touch_primary(
        self, importer: Importer, registries: RegistrySet, fixtures_dir: Path
    ) -> None:
        importer.import_file(fixtures_dir / "valid_commands.yaml")
        assert len(registries.primary) == 0

    def test_missing_file(self, importer: Importer, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="does not exist"):
            importer.import_file(tmp_path / "nope.yaml")

    def test_malformed_file(self, importer: Importer, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("commands: 3\n")
        with pytest.raises(MalformedDocumentError):
            importer.import_file(bad)


class TestImportRemote:
    def test_records_origin(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: MagicMock,
    ) -> None:
        fetcher.fetch.return_value = (REMOTE_TEXT, Visibility.PUBLIC)
        name = importer.import_remote("acme/tools")
        assert name == "tools"
        origin = RegistryOrigin("acme/tools", Visibility.PUBLIC)
        assert registries.source(name).origin == origin
        assert load_registry(storage.source_path(name)).origin == origin

    def test_private_visibility_recorded(
        self, importer: Importer, registries: RegistrySet, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = (REMOTE_TEXT, Visibility.PRIVATE)
        name = importer.import_remote("acme/secret")
        origin = registries.source(name).origin
        assert origin is not None
        assert origin.visibility is Visibility.PRIVATE

    def test_empty_registry_rejected(
        self, importer: Importer, registries: RegistrySet, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = ("commands: {}\n", Visibility.PUBLIC)
        with pytest.raises(ConfigError, match="no commands"):
            importer.import_remote("acme/tools")
        assert registries.source_names() == []

    def test_not_found_propagates(self, importer: Importer, fetcher: MagicMock) -> None:
        fetcher.fetch.side_effect = RemoteNotFoundError("missing")
        with pytest.raises(RemoteNotFoundError):
            importer.import_remote("acme/tools")


class TestImportRepo:
    def test_imports_each_yaml_file(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: MagicMock,
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone(
            {
                "k8s.yaml": "commands:\n  pods: kubectl get pods\n",
                "git.yml": "commands:\n  st: git status\n",
                "README.md": "# docs",
            }
        )
        names = importer.import_repo("acme/tools")
        assert names == ["acme-tools_git", "acme-tools_k8s"]
        assert registries.source_names() == names
        assert storage.checkout_of("acme-tools_k8s") == "acme-tools"

    def test_writes_origin_and_keeps_schema_header(
        self, importer: Importer, storage: RegistryStorage, fetcher: MagicMock
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone(
            {"k8s.yaml": f"{SCHEMA_HEADER}\ncommands:\n  pods: kubectl get pods\n"}
        )
        importer.import_repo("acme/tools")
        path = storage.checkout_path("acme-tools") / "k8s.yaml"
        assert path.read_text().startswith(SCHEMA_HEADER)
        assert load_registry(path).origin == RegistryOrigin("acme/tools", Visibility.PRIVATE)

    def test_names_match_after_reload(
        self, importer: Importer, storage: RegistryStorage, fetcher: MagicMock
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone({"k8s.yaml": "commands:\n  pods: x\n"})
        names = importer.import_repo("acme/tools")
        assert RegistryStorage(storage.home).load().source_names() == names

    def test_invalid_files_skipped(
        self, importer: Importer, fetcher: MagicMock
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone(
            {
                "broken.yaml": "commands: [oops\n",
                "empty.yaml": "commands: {}\n",
                "ok.yaml": "commands:\n  a: echo a\n",
            }
        )
        assert importer.import_repo("acme/tools") == ["acme-tools_ok"]

    def test_no_valid_files_removes_checkout(
        self, importer: Importer, storage: RegistryStorage, fetcher: MagicMock
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone({"mkdocs.yml": "site_name: docs\n"})
        with pytest.raises(ConfigError, match="No valid YAML"):
            importer.import_repo("acme/tools")
        assert not storage.checkout_path("acme-tools").exists()

    def test_reimport_replaces_checkout(
        self, importer: Importer, registries: RegistrySet, fetcher: MagicMock
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone({"old.yaml": "commands:\n  a: echo a\n"})
        importer.import_repo("acme/tools")
        fetcher.git.clone.side_effect = _fake_clone({"new.yaml": "commands:\n  b: echo b\n"})
        importer.import_repo("acme/tools")
        assert registries.source_names() == ["acme-tools_new"]

    def test_clone_failure_propagates(self, importer: Importer, fetcher: MagicMock) -> None:
        fetcher.git.clone.side_effect = TransportError("denied")
        with pytest.raises(TransportError):
            importer.import_repo("acme/tools")


class TestUnimport:
    def test_removes_source_and_file(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fixtures_dir: Path,
    ) -> None:
        name = importer.import_file(fixtures_dir / "valid_commands.yaml")
        assert importer.unimport(name) == [name]
        assert registries.source_names() == []
        assert not storage.source_path(name).exists()

    def test_main_rejected(self, importer: Importer) -> None:
        with pytest.raises(InvalidSourceError):
            importer.unimport("main")

    def test_unknown_rejected(self, importer: Importer) -> None:
        with pytest.raises(InvalidSourceError):
            importer.unimport("nope")

    def test_whole_checkout(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: MagicMock,
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone(
            {"a.yaml": "commands:\n  a: echo a\n", "b.yaml": "commands:\n  b: echo b\n"}
        )
        importer.import_repo("acme/tools")
        assert importer.unimport("acme-tools") == ["acme-tools_a", "acme-tools_b"]
        assert registries.source_names() == []
        assert not storage.checkout_path("acme-tools").exists()

    def test_checkout_member_rejected(self, importer: Importer, fetcher: MagicMock) -> None:
        fetcher.git.clone.side_effect = _fake_clone({"a.yaml": "commands:\n  a: echo a\n"})
        importer.import_repo("acme/tools")
        with pytest.raises(ConfigError, match="Unimport 'acme-tools'"):
            importer.unimport("acme-tools_a")


class TestSync:
    def test_plan_lists_remote_sources_and_checkouts(
        self,
        importer: Importer,
        fetcher: MagicMock,
        fixtures_dir: Path,
    ) -> None:
        importer.import_file(fixtures_dir / "valid_commands.yaml")
        fetcher.fetch.return_value = (REMOTE_TEXT, Visibility.PUBLIC)
        importer.import_remote("acme/tools")
        fetcher.git.clone.side_effect = _fake_clone({"a.yaml": "commands:\n  a: echo a\n"})
        importer.import_repo("acme/repo")

        plan = importer.plan_sync()
        assert plan.sources == [("tools", RegistryOrigin("acme/tools", Visibility.PUBLIC))]
        assert plan.checkouts == ["acme-repo"]
        assert not plan.empty

    def test_plan_empty_without_origins(self, importer: Importer, fixtures_dir: Path) -> None:
        importer.import_file(fixtures_dir / "valid_commands.yaml")
        assert importer.plan_sync().empty

    def test_overwrites_local_edits(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: MagicMock,
    ) -> None:
        fetcher.fetch.return_value = (REMOTE_TEXT, Visibility.PRIVATE)
        importer.import_remote("acme/tools")
        storage.source_path("tools").write_text("commands:\n  local: edit\n")

        fetcher.fetch.return_value = ("commands:\n  fresh: echo fresh\n", Visibility.PRIVATE)
        results = importer.sync()

        assert [r.succeeded for r in results] == [True]
        fetcher.fetch.assert_called_with("acme/tools", Visibility.PRIVATE)
        assert registries.resolve_conflict("fresh", "tools") is not None
        reloaded = load_registry(storage.source_path("tools"))
        assert "fresh" in reloaded
        assert reloaded.origin == RegistryOrigin("acme/tools", Visibility.PRIVATE)

    def test_failures_reported_per_source(
        self, importer: Importer, registries: RegistrySet, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = (REMOTE_TEXT, Visibility.PUBLIC)
        importer.import_remote("acme/one")
        importer.import_remote("acme/two")

        fetcher.fetch.side_effect = [
            TransportError("timeout"),
            ("commands:\n  ok: echo ok\n", Visibility.PUBLIC),
        ]
        results = importer.sync()

        assert [(r.name, r.succeeded) for r in results] == [("one", False), ("two", True)]
        assert "timeout" in results[0].error
        assert registries.resolve_conflict("deploy", "one") is not None

    def test_checkout_refreshed_and_rescanned(
        self,
        importer: Importer,
        registries: RegistrySet,
        storage: RegistryStorage,
        fetcher: MagicMock,
    ) -> None:
        fetcher.git.clone.side_effect = _fake_clone({"a.yaml": "commands:\n  a: echo a\n"})
        importer.import_repo("acme/tools")
        checkout = storage.checkout_path("acme-tools")

        def refresh(path: Path) -> None:
            (path / "a.yaml").unlink()
            (path / "b.yaml").write_text("commands:\n  b: echo b\n")

        fetcher.git.refresh.side_effect = refresh
        results = importer.sync()

        assert [(r.name, r.succeeded) for r in results] == [("acme-tools", True)]
        fetcher.git.refresh.assert_called_once_with(checkout)
        assert registries.source_names() == ["acme-tools_b"]
        assert storage.checkout_of("acme-tools_b") == "acme-tools"
