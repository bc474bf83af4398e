"""
Code-hosting client driving the local `git` CLI.

The repository lives in the provisioned workspace; the hosted remote is
expected to exist already (created by the operator or a hosting API).
"""

import logging
import re
import subprocess
from pathlib import Path

from ..errors import CodeHostError

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"

_SLUG_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")
_SSH_PATTERN = re.compile(r"^git@([^:]+):(.+?)(?:\.git)?$")
_HTTPS_PATTERN = re.compile(r"^https?://([^/]+)/(.+?)(?:\.git)?/?$")


def normalize_remote_url(url: str, host: str = "github.com") -> str:
    """
    Normalize a repository reference into an https clone URL.

    Accepts `owner/repo`, `https://github.com/owner/repo(.git)` and
    `git@github.com:owner/repo.git`.

    Raises:
        ValueError: If the reference is not recognised
    """
    url = url.strip()
    if _SLUG_PATTERN.match(url):
        return f"https://{host}/{url.removesuffix('.git')}.git"

    for pattern in (_SSH_PATTERN, _HTTPS_PATTERN):
        match = pattern.match(url)
        if match:
            return f"https://{match.group(1)}/{match.group(2)}.git"

    raise ValueError(f"Unrecognised repository URL: {url}")


def repository_slug(url: str) -> str:
    """`owner/repo` part of a repository reference."""
    normalized = normalize_remote_url(url)
    return normalized.split("://", 1)[1].split("/", 1)[1].removesuffix(".git")


class GitRemote:
    """Runs git commands inside one workspace directory."""

    def __init__(self, workspace: Path, git_binary: str = "git"):
        self.workspace = Path(workspace)
        self.git_binary = git_binary

    def _git(self, *args: str) -> str:
        command = [self.git_binary, *args]
        logger.debug(f"Running {' '.join(command)} in {self.workspace}")
        try:
            completed = subprocess.run(
                command,
                cwd=self.workspace,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise CodeHostError(f"git {args[0]} failed: {stderr or e}") from e
        except OSError as e:
            raise CodeHostError(f"Could not run git: {e}") from e
        return completed.stdout

    def init(self, branch: str = "main") -> None:
        self._git("init", "-b", branch)

    def commit_all(self, message: str) -> None:
        self._git("add", "-A")
        self._git("commit", "-m", message)

    def add_remote(self, url: str) -> None:
        self._git("remote", "add", REMOTE_NAME, url)
        logger.info(f"Added remote {REMOTE_NAME} -> {url}")

    def remove_remote(self) -> None:
        self._git("remote", "remove", REMOTE_NAME)

    def push(self, branch: str = "main") -> None:
        self._git("push", "-u", REMOTE_NAME, branch)
        logger.info(f"Pushed {branch} to {REMOTE_NAME}")
