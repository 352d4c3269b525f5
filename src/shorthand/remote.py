"""Fetching registry documents from GitHub repositories."""

import base64
import binascii
import logging
import subprocess
import tempfile
from pathlib import Path

import httpx

from shorthand.commands import Visibility
from shorthand.config import DEFAULT_REGISTRY_FILES
from shorthand.exceptions import ConfigError, RemoteNotFoundError, TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "shorthand-cli/0.1.0"
RESET_BRANCHES = ("origin/main", "origin/master")


def is_remote_identifier(value: str) -> bool:
    """Tell an ``owner/repo`` identifier apart from a local file path."""
    return "/" in value and "." not in value and not value.startswith("/")


def parse_identifier(identifier: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts."""
    parts = identifier.split("/")
    if len(parts) != 2:
        raise ConfigError(
            f"Invalid repository '{identifier}'. Expected owner/repo (e.g. username/my-commands)"
        )
    owner, repo = parts
    if not owner or not repo:
        raise ConfigError("Invalid repository: owner and repository name must be non-empty")
    return owner, repo


def git_urls(identifier: str) -> list[str]:
    """Clone URLs to try, SSH first."""
    return [f"git@github.com:{identifier}.git", f"https://github.com/{identifier}.git"]


def read_registry_file(directory: Path, registry_files: list[str]) -> str:
    """Return the text of the first registry file present in ``directory``."""
    for name in registry_files:
        path = directory / name
        if path.exists():
            logger.debug("Found registry file %s", path)
            return path.read_text()
    raise RemoteNotFoundError(
        f"No registry file found. Expected one of: {', '.join(registry_files)}"
    )


class GitHubClient:
    """Reads registry files from public repositories through the contents API."""

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        timeout: float = 10,
        registry_files: list[str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._registry_files = registry_files or list(DEFAULT_REGISTRY_FILES)
        self._client = client

    def _get(self, client: httpx.Client, url: str) -> httpx.Response:
        try:
            return client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach GitHub: {e}") from e

    def fetch(self, identifier: str) -> str:
        """Return the registry text of a public repository."""
        owner, repo = parse_identifier(identifier)
        if self._client is not None:
            return self._fetch(self._client, owner, repo)
        with httpx.Client(timeout=self._timeout) as client:
            return self._fetch(client, owner, repo)

    def _fetch(self, client: httpx.Client, owner: str, repo: str) -> str:
        response = self._get(client, f"{self._api_url}/repos/{owner}/{repo}")
        if response.status_code == 404:
            raise RemoteNotFoundError(f"Repository '{owner}/{repo}' not found or not public")
        if response.is_error:
            raise TransportError(
                f"Failed to access repository '{owner}/{repo}': HTTP {response.status_code}"
            )

        for name in self._registry_files:
            url = f"{self._api_url}/repos/{owner}/{repo}/contents/{name}"
            response = self._get(client, url)
            if not response.is_success:
                continue
            try:
                payload = response.json()
            except ValueError as e:
                raise TransportError("Failed to parse GitHub API response") from e
            if payload.get("encoding") != "base64":
                continue
            try:
                raw = base64.b64decode(payload.get("content", "").replace("\n", ""))
                return raw.decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                raise TransportError(f"Could not decode {name} from GitHub") from e

        raise RemoteNotFoundError(
            f"No registry file found in '{owner}/{repo}'. "
            f"Expected one of: {', '.join(self._registry_files)}"
        )


class GitClient:
    """Thin wrapper over the git command line."""

    def __init__(self, executable: str = "git") -> None:
        self._executable = executable

    def _run(self, args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self._executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise TransportError(
                "git not found. Install git and set up SSH keys or credentials "
                "to use private repositories."
            ) from e

    def clone(self, identifier: str, destination: Path) -> None:
        """Shallow-clone a repository, trying SSH and then HTTPS."""
        last_error = ""
        for url in git_urls(identifier):
            logger.info("Cloning %s", url)
            result = self._run(["clone", "--depth=1", "--quiet", url, str(destination)])
            if result.returncode == 0:
                return
            last_error = result.stderr.strip()
            logger.debug("Clone of %s failed: %s", url, last_error)
        raise TransportError(f"Failed to clone '{identifier}': {last_error}")

    def refresh(self, checkout: Path) -> None:
        """Discard local changes and move a checkout to the remote head."""
        if not (checkout / ".git").exists():
            raise TransportError(f"{checkout} is not a git repository")

        result = self._run(["fetch", "--all", "--prune"], cwd=checkout)
        if result.returncode != 0:
            raise TransportError(f"Failed to fetch remote changes: {result.stderr.strip()}")

        last_error = ""
        for branch in RESET_BRANCHES:
            result = self._run(["reset", "--hard", branch], cwd=checkout)
            if result.returncode == 0:
                break
            last_error = result.stderr.strip()
        else:
            raise TransportError(f"Failed to reset to remote state: {last_error}")

        result = self._run(["clean", "-fd"], cwd=checkout)
        if result.returncode != 0:
            logger.warning("Failed to clean untracked files in %s: %s", checkout, result.stderr)


class RemoteFetcher:
    """Acquires registry text for an ``owner/repo`` identifier."""

    def __init__(
        self,
        github: GitHubClient | None = None,
        git: GitClient | None = None,
        registry_files: list[str] | None = None,
    ) -> None:
        self._registry_files = registry_files or list(DEFAULT_REGISTRY_FILES)
        self._github = github or GitHubClient(registry_files=self._registry_files)
        self._git = git or GitClient()

    @property
    def git(self) -> GitClient:
        return self._git

    def fetch(self, identifier: str, visibility: Visibility | None = None) -> tuple[str, Visibility]:
        """Return the registry text and how it was obtained.

        With no ``visibility`` the public API is tried first and a git clone
        is used when the repository is not publicly visible.
        """
        parse_identifier(identifier)
        if visibility is Visibility.PRIVATE:
            return self._fetch_private(identifier), Visibility.PRIVATE
        try:
            return self._github.fetch(identifier), Visibility.PUBLIC
        except RemoteNotFoundError:
            if visibility is Visibility.PUBLIC:
                raise
            logger.info("'%s' not available via the public API, trying git clone", identifier)
        return self._fetch_private(identifier), Visibility.PRIVATE

    def _fetch_private(self, identifier: str) -> str:
        with tempfile.TemporaryDirectory(prefix="shorthand-") as tmp:
            checkout = Path(tmp) / "repo"
            self._git.clone(identifier, checkout)
            return read_registry_file(checkout, self._registry_files)
