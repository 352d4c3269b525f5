"""Shared test fixtures."""

from pathlib import Path

import pytest

from shorthand.commands import CommandEntry, Registry, RegistrySet
from shorthand.storage import RegistryStorage


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A temporary shorthand home directory, exported via $SHORTHAND_HOME."""
    home_dir = tmp_path / "home"
    monkeypatch.setenv("SHORTHAND_HOME", str(home_dir))
    return home_dir


@pytest.fixture
def storage(home: Path) -> RegistryStorage:
    storage = RegistryStorage(home)
    storage.ensure_layout()
    return storage


@pytest.fixture
def registry_set() -> RegistrySet:
    """Main registry plus two imported sources sharing the name 'deploy'."""
    return RegistrySet(
        primary=Registry(
            commands={
                "deploy": CommandEntry.simple("helm upgrade #1"),
                "pods": CommandEntry.simple("kubectl get pods -n #1"),
            }
        ),
        sources={
            "team": Registry(
                commands={
                    "deploy": CommandEntry.with_description("make deploy ENV=#1", "Team deploy"),
                    "lint": CommandEntry.simple("ruff check ."),
                }
            ),
            "alpha": Registry(
                commands={
                    "deploy": CommandEntry.simple("./deploy.sh #1"),
                    "lint": CommandEntry.simple("flake8"),
                }
            ),
        },
    )
