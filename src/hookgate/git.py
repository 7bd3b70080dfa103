"""Git access for hook adapters."""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .config import Config
from .errors import InputUnavailable

# Diff headers are parsed as a/ and b/ whatever diff.noprefix or
# diff.mnemonicPrefix say.
DIFF_PREFIX_ARGS = ("--src-prefix=a/", "--dst-prefix=b/")


def _is_null_sha(sha: str) -> bool:
    return bool(sha) and set(sha) == {"0"}


@dataclass(frozen=True)
class PushUpdate:
    """One ref update git is about to push, as written to pre-push stdin."""

    local_ref: str
    local_sha: str
    remote_ref: str
    remote_sha: str

    @property
    def is_delete(self) -> bool:
        """True when the push deletes the remote ref."""
        return _is_null_sha(self.local_sha)

    @property
    def is_new_ref(self) -> bool:
        """True when the remote ref does not exist yet."""
        return _is_null_sha(self.remote_sha)


def parse_push_updates(stdin_text: str) -> list[PushUpdate]:
    """
    Parse the ref lines git passes to a pre-push hook.

    Each line is ``<local ref> <local sha> <remote ref> <remote sha>``.

    Raises:
        InputUnavailable: If a line does not have exactly four fields
    """
    updates = []
    for number, line in enumerate(stdin_text.splitlines(), start=1):
        if not line.strip():
            continue
        parts = line.split()
        if len(parts) != 4:
            raise InputUnavailable(f"malformed push ref line {number}: {line!r}")
        updates.append(PushUpdate(*parts))
    return updates


def _diff_path(header_value: str) -> Optional[str]:
    """Extract the file path from a ``+++`` header value."""
    value = header_value.rstrip("\t").strip()
    if value == "/dev/null":
        return None
    if value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    if value.startswith("b/"):
        value = value[2:]
    return value


def parse_added_lines(diff_text: str) -> dict[str, str]:
    """
    Collect the lines a unified diff adds, grouped by file.

    Works on ``git diff`` and ``git log -p`` output. Only ``+`` lines inside
    hunks are kept, without their ``+`` marker; context, removed lines and
    headers are dropped. A file changed by several commits has its added
    lines concatenated in output order.

    Args:
        diff_text: Unified diff text

    Returns:
        Mapping of file path to added text (newline-joined)
    """
    segments: dict[str, list[str]] = {}
    current: Optional[str] = None
    in_hunk = False

    for line in diff_text.splitlines():
        if line.startswith("diff --git "):
            current = None
            in_hunk = False
            continue
        if not in_hunk:
            if line.startswith("+++ "):
                current = _diff_path(line[4:])
            elif line.startswith("@@"):
                in_hunk = True
            continue
        if line.startswith("@@"):
            continue
        if current is not None and line.startswith("+"):
            segments.setdefault(current, []).append(line[1:])

    return {path: "\n".join(lines) for path, lines in segments.items()}


class GitRepository:
    """Read-only git queries used to build gate inputs."""

    def __init__(self, repo_path: Union[str, Path] = ".", timeout: Optional[int] = None):
        """
        Initialize git access.

        Args:
            repo_path: Path inside the repository
            timeout: Seconds before a git command is abandoned
        """
        self.repo_path = Path(repo_path).resolve()
        self.timeout = timeout or Config.GIT_TIMEOUT

    def _run_git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """
        Run a git command.

        Args:
            *args: Git command arguments
            check: Raise InputUnavailable on a non-zero exit

        Returns:
            CompletedProcess instance

        Raises:
            InputUnavailable: If git is missing, times out or fails
        """
        cmd = ["git", "-C", str(self.repo_path), "-c", "core.quotePath=false"] + list(args)
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise InputUnavailable("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise InputUnavailable(f"git {args[0]} timed out after {self.timeout}s") from e

        if check and result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise InputUnavailable(f"git {' '.join(args)} failed: {detail}")
        return result

    def toplevel(self) -> Path:
        """Return the repository's top-level directory."""
        result = self._run_git("rev-parse", "--show-toplevel")
        return Path(result.stdout.strip())

    def has_commit(self, sha: str) -> bool:
        """Check whether a commit object exists locally."""
        result = self._run_git("cat-file", "-e", f"{sha}^{{commit}}", check=False)
        return result.returncode == 0

    def comment_char(self) -> str:
        """
        Prefix of comment lines in commit message files.

        Reads ``core.commentChar``; unset or ``auto`` falls back to ``#``.
        """
        result = self._run_git("config", "--get", "core.commentChar", check=False)
        value = result.stdout.rstrip("\n")
        if not value or value == "auto":
            return "#"
        return value

    def staged_diff(self) -> str:
        """Unified diff of the index against HEAD (added, copied, modified, renamed)."""
        return self._run_git(
            "diff",
            "--cached",
            "--no-color",
            "--no-ext-diff",
            "--unified=0",
            *DIFF_PREFIX_ARGS,
            "--diff-filter=ACMR",
        ).stdout

    def staged_paths(self) -> list[str]:
        """Paths staged for the next commit, deletions excluded."""
        output = self._run_git(
            "diff", "--cached", "--name-only", "--diff-filter=ACMR", "-z"
        ).stdout
        return [p for p in output.split("\0") if p]

    def _push_range(self, update: PushUpdate, remote: str) -> list[str]:
        """Revision arguments selecting the commits a push would transfer."""
        revisions = [update.local_sha, "--not", f"--remotes={remote}"]
        if not update.is_new_ref and self.has_commit(update.remote_sha):
            revisions.append(update.remote_sha)
        return revisions

    def push_diff(self, update: PushUpdate, remote: str) -> str:
        """
        Patches of every commit the update would transfer.

        Each commit is inspected separately, so content added in one commit
        and removed in a later one is still reported.
        """
        if update.is_delete:
            return ""
        return self._run_git(
            "log",
            "-p",
            "--no-color",
            "--no-ext-diff",
            "--unified=0",
            *DIFF_PREFIX_ARGS,
            "--format=",
            "--reverse",
            *self._push_range(update, remote),
        ).stdout

    def push_paths(self, update: PushUpdate, remote: str) -> list[str]:
        """Paths touched by the commits the update would transfer."""
        if update.is_delete:
            return []
        output = self._run_git(
            "log", "--name-only", "--format=", *self._push_range(update, remote)
        ).stdout
        seen: dict[str, None] = {}
        for path in output.splitlines():
            if path.strip():
                seen.setdefault(path.strip(), None)
        return list(seen)
