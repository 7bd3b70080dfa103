"""Hook adapters: one per git trigger point."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Union

from loguru import logger

from ..errors import InputUnavailable
from ..git import GitRepository, parse_added_lines, parse_push_updates
from .models import GateInput, HookOutcome, HookState, Rule, TriggerPoint
from .runner import GateRunner

SCISSORS_MARKER = "------------------------ >8 ------------------------"


def clean_commit_message(raw: str, comment_char: str = "#") -> str:
    """
    Reduce a commit message file to the text git will record.

    Mirrors git's default ``strip`` cleanup: everything from the scissors
    line on is dropped (``commit -v``), then comment lines, trailing
    whitespace and surrounding blank lines.
    """
    lines = []
    for line in raw.splitlines():
        if line.startswith(comment_char) and SCISSORS_MARKER in line:
            break
        if line.startswith(comment_char):
            continue
        lines.append(line.rstrip())
    return "\n".join(lines).strip("\n")


class HookAdapter(ABC):
    """
    Abstract base class for trigger adapters.

    An adapter extracts the input git makes available at its trigger point,
    runs the gate and returns a HookOutcome. It never prints or exits;
    the caller turns the outcome into diagnostics and an exit status.
    """

    trigger: TriggerPoint

    def __init__(self, runner: Optional[GateRunner] = None):
        self.runner = runner or GateRunner()

    @abstractmethod
    def extract_input(self) -> GateInput:
        """
        Build the gate input for this trigger.

        Raises:
            InputUnavailable: If the expected context cannot be read
        """

    def run(self, rules: Sequence[Rule]) -> HookOutcome:
        """
        Run one invocation: extract input, evaluate rules, decide.

        Args:
            rules: Ordered, already validated rules

        Returns:
            HookOutcome in state ALLOWED or DENIED
        """
        logger.debug(f"{self.trigger.value}: {HookState.START.value}")
        try:
            gate_input = self.extract_input()
        except InputUnavailable as e:
            logger.warning(f"{self.trigger.value}: input unavailable: {e}")
            return HookOutcome(trigger=self.trigger, state=HookState.DENIED, error=str(e))

        if gate_input.is_empty():
            logger.debug(
                f"{self.trigger.value}: {HookState.INPUT_EXTRACTED.value} (nothing to check)"
            )
        else:
            logger.debug(
                f"{self.trigger.value}: {HookState.INPUT_EXTRACTED.value} "
                f"({len(gate_input.text)} chars, {len(gate_input.paths)} paths)"
            )

        result = self.runner.run(rules, gate_input)
        logger.debug(f"{self.trigger.value}: {HookState.RULES_EVALUATED.value}")

        state = HookState.ALLOWED if result.allowed else HookState.DENIED
        logger.debug(f"{self.trigger.value}: {state.value}")
        return HookOutcome(trigger=self.trigger, state=state, result=result)


class PreCommitAdapter(HookAdapter):
    """Checks the lines added by the staged changes."""

    trigger = TriggerPoint.PRE_COMMIT

    def __init__(self, repo: GitRepository, runner: Optional[GateRunner] = None):
        super().__init__(runner)
        self.repo = repo

    def extract_input(self) -> GateInput:
        segments = parse_added_lines(self.repo.staged_diff())
        return GateInput.from_segments(segments, paths=self.repo.staged_paths())


class CommitMsgAdapter(HookAdapter):
    """Checks the proposed commit message, read from the file git passes."""

    trigger = TriggerPoint.COMMIT_MSG

    def __init__(
        self,
        message_path: Union[str, Path],
        runner: Optional[GateRunner] = None,
        comment_char: Optional[str] = None,
        repo: Optional[GitRepository] = None,
    ):
        super().__init__(runner)
        self.message_path = Path(message_path)
        self.comment_char = comment_char
        self.repo = repo

    def _comment_char(self) -> str:
        """Explicit comment prefix, else the repository's core.commentChar."""
        if self.comment_char is not None:
            return self.comment_char
        if self.repo is None:
            return "#"
        return self.repo.comment_char()

    def extract_input(self) -> GateInput:
        try:
            raw = self.message_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise InputUnavailable(
                f"cannot read commit message file {self.message_path}: {e.strerror or e}"
            ) from e
        return GateInput(text=clean_commit_message(raw, self._comment_char()))


class PrePushAdapter(HookAdapter):
    """
    Checks every commit a push would transfer.

    Git writes one line per ref update to the hook's stdin; the caller reads
    it and passes the text in. Ref deletions transfer nothing and are skipped.
    """

    trigger = TriggerPoint.PRE_PUSH

    def __init__(
        self,
        repo: GitRepository,
        remote: str,
        stdin_text: str,
        url: str = "",
        runner: Optional[GateRunner] = None,
    ):
        super().__init__(runner)
        self.repo = repo
        self.remote = remote
        self.url = url
        self.stdin_text = stdin_text

    def extract_input(self) -> GateInput:
        updates = parse_push_updates(self.stdin_text)
        segments: dict[str, str] = {}
        paths: dict[str, None] = {}

        for update in updates:
            if update.is_delete:
                logger.debug(f"Skipping deletion of {update.remote_ref}")
                continue
            added = parse_added_lines(self.repo.push_diff(update, self.remote))
            for path, text in added.items():
                segments[path] = f"{segments[path]}\n{text}" if path in segments else text
            for path in self.repo.push_paths(update, self.remote):
                paths.setdefault(path, None)

        logger.debug(
            f"Pushing {len(updates)} refs to {self.remote} {self.url}".rstrip()
        )
        return GateInput.from_segments(segments, paths=list(paths))


class PreparedInputAdapter(HookAdapter):
    """
    Runs a trigger's rules against input supplied by the caller.

    Used for dry runs, where rule authors check text without git.
    """

    def __init__(
        self,
        trigger: TriggerPoint,
        gate_input: GateInput,
        runner: Optional[GateRunner] = None,
    ):
        super().__init__(runner)
        self.trigger = trigger
        self.gate_input = gate_input

    def extract_input(self) -> GateInput:
        return self.gate_input
