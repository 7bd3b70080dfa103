"""Command-line entry point invoked from git hooks."""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from . import __version__
from .audit import AuditLogger
from .config import Config
from .errors import ConfigurationError, InputUnavailable
from .git import GitRepository
from .hooks import (
    CommitMsgAdapter,
    GateInput,
    GateRunner,
    HookAdapter,
    HookOutcome,
    HookState,
    PreCommitAdapter,
    PreparedInputAdapter,
    PrePushAdapter,
    TriggerPoint,
    clean_commit_message,
)
from .rulebook import RuleBook, load_rulebook

EXIT_ALLOW = 0
EXIT_DENY = 1
EXIT_CONFIG_ERROR = 2

TRIGGER_CHOICES = [t.value for t in TriggerPoint]


def configure_logging(verbose: bool = False) -> None:
    """Configure loguru sinks for a hook invocation."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>",
        level="DEBUG" if verbose else Config.LOG_LEVEL,
    )
    if Config.LOG_FILE:
        logger.add(
            Config.LOG_FILE,
            rotation=Config.LOG_ROTATION,
            retention=Config.LOG_RETENTION,
            level="DEBUG",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hookgate",
        description="Pattern-rule policy gates for git hooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Hook shims (in .git/hooks/<name>, executable):
  pre-commit:  exec hookgate pre-commit
  commit-msg:  exec hookgate commit-msg "$1"
  pre-push:    exec hookgate pre-push "$1" "$2"

Exit status: 0 allow, 1 deny, 2 configuration error.
        """,
    )
    parser.add_argument(
        "--config",
        help="Rules file (default: $HOOKGATE_CONFIG or .hookgate.yaml at the repository root)",
    )
    parser.add_argument(
        "--repo",
        default=".",
        help="Path inside the repository (default: current directory)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first blocking rule",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("pre-commit", help="Check the staged changes")

    commit_msg = subparsers.add_parser("commit-msg", help="Check a commit message file")
    commit_msg.add_argument("message_file", help="Path git passes to the commit-msg hook")

    pre_push = subparsers.add_parser(
        "pre-push", help="Check commits about to be pushed (ref lines on stdin)"
    )
    pre_push.add_argument("remote", help="Remote name (or URL when pushing to a URL)")
    pre_push.add_argument("url", nargs="?", default="", help="Remote URL")

    check = subparsers.add_parser(
        "check", help="Run a trigger's rules against a file or stdin, without git"
    )
    check.add_argument("trigger", choices=TRIGGER_CHOICES)
    check.add_argument("--file", help="Read input from this file instead of stdin")
    check.add_argument(
        "--path",
        action="append",
        dest="paths",
        default=[],
        help="Treat the input as content of this path (repeatable)",
    )

    rules = subparsers.add_parser("rules", help="List the effective rules")
    rules.add_argument("trigger", nargs="?", choices=TRIGGER_CHOICES)

    return parser


def resolve_config_path(config: Optional[str], repo: str) -> Path:
    """
    Locate the rules file.

    An explicit path wins. Otherwise Config.CONFIG_FILE is used, relative
    paths being resolved against the repository root (or ``repo`` itself
    when it is not inside a git repository).
    """
    if config:
        return Path(config)

    path = Path(Config.CONFIG_FILE)
    if path.is_absolute():
        return path

    try:
        root = GitRepository(repo).toplevel()
    except InputUnavailable as e:
        logger.debug(f"Resolving rules file against {repo}: {e}")
        root = Path(repo)
    return root / path


def _audit(outcome: HookOutcome, **context) -> None:
    if not Config.AUDIT_LOG_PATH:
        return
    try:
        AuditLogger(Config.AUDIT_LOG_PATH).log_outcome(outcome, **context)
    except OSError as e:
        logger.error(f"Failed to write audit record to {Config.AUDIT_LOG_PATH}: {e}")


def _print_diagnostics(outcome: HookOutcome) -> None:
    for line in outcome.diagnostics():
        print(line, file=sys.stderr)


def _run_adapter(adapter: HookAdapter, rulebook: RuleBook, **context) -> int:
    outcome = adapter.run(rulebook.rules_for(adapter.trigger))
    _print_diagnostics(outcome)
    _audit(outcome, **context)
    return outcome.exit_code


def _read_stdin() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read()


def _check_input(args: argparse.Namespace) -> GateInput:
    if args.file:
        try:
            text = Path(args.file).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise InputUnavailable(f"cannot read {args.file}: {e.strerror or e}") from e
    else:
        text = _read_stdin()

    if args.trigger == TriggerPoint.COMMIT_MSG.value:
        text = clean_commit_message(text)
    if args.paths:
        return GateInput.from_segments({path: text for path in args.paths})
    return GateInput(text=text)


def _print_rules(rulebook: RuleBook, trigger: Optional[str]) -> None:
    triggers = [TriggerPoint(trigger)] if trigger else list(TriggerPoint)
    if not rulebook.enabled:
        print("All rules are disabled.")
        return
    for point in triggers:
        print(f"{point.value}:")
        rules = rulebook.rules_for(point)
        if not rules:
            print("  (no rules)")
        for rule in rules:
            scope = f" [{', '.join(rule.paths)}]" if rule.paths else ""
            print(
                f"  {rule.rule_id:<24} {rule.severity.value:<5} "
                f"{rule.mode.value:<14} {rule.target.value:<5}{scope}"
            )
            if rule.description:
                print(f"      {rule.description}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run one hookgate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        Config.validate()
        configure_logging(args.verbose)
        config_path = resolve_config_path(args.config, args.repo)
        rulebook = load_rulebook(config_path)
    except (ConfigurationError, ValueError) as e:
        print(f"hookgate: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.command == "rules":
        _print_rules(rulebook, args.trigger)
        return EXIT_ALLOW

    runner = GateRunner(fail_fast=args.fail_fast or Config.FAIL_FAST)

    if args.command == "pre-commit":
        adapter: HookAdapter = PreCommitAdapter(GitRepository(args.repo), runner=runner)
        return _run_adapter(adapter, rulebook, repository=str(Path(args.repo).resolve()))

    if args.command == "commit-msg":
        adapter = CommitMsgAdapter(
            args.message_file, runner=runner, repo=GitRepository(args.repo)
        )
        return _run_adapter(adapter, rulebook, repository=str(Path(args.repo).resolve()))

    if args.command == "pre-push":
        adapter = PrePushAdapter(
            GitRepository(args.repo),
            remote=args.remote,
            url=args.url,
            stdin_text=_read_stdin(),
            runner=runner,
        )
        return _run_adapter(
            adapter,
            rulebook,
            repository=str(Path(args.repo).resolve()),
            remote=args.remote,
        )

    # check
    trigger = TriggerPoint(args.trigger)
    try:
        gate_input = _check_input(args)
    except InputUnavailable as e:
        outcome = HookOutcome(trigger=trigger, state=HookState.DENIED, error=str(e))
    else:
        outcome = PreparedInputAdapter(trigger, gate_input, runner=runner).run(
            rulebook.rules_for(trigger)
        )
    _print_diagnostics(outcome)
    if outcome.allowed:
        print(f"{trigger.value}: allowed")
    return outcome.exit_code


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
