"""Tests for rule set loading and merging."""

import textwrap

import pytest

from hookgate.errors import ConfigurationError
from hookgate.hooks import GateInput, GateRunner, MatchMode, Severity, TriggerPoint
from hookgate.rulebook import DEFAULT_RULES, RuleBook, load_rulebook


def _write(tmp_path, content: str):
    path = tmp_path / ".hookgate.yaml"
    path.write_text(textwrap.dedent(content))
    return path


def _ids(rulebook: RuleBook, trigger: TriggerPoint) -> list[str]:
    return [rule.rule_id for rule in rulebook.rules_for(trigger)]


class TestDefaults:
    """Tests for the built-in rule set."""

    def test_every_trigger_has_rules(self):
        rulebook = RuleBook.defaults()
        for trigger in TriggerPoint:
            assert rulebook.rules_for(trigger)

    def test_missing_file_gives_defaults(self, tmp_path):
        rulebook = load_rulebook(tmp_path / "absent.yaml")
        assert rulebook.rules == DEFAULT_RULES
        assert rulebook.enabled

    def test_none_gives_defaults(self):
        assert load_rulebook(None).rules == DEFAULT_RULES

    def test_empty_file_gives_defaults(self, tmp_path):
        rulebook = load_rulebook(_write(tmp_path, ""))
        assert rulebook.rules == DEFAULT_RULES
        assert rulebook.source == tmp_path / ".hookgate.yaml"

    def test_default_commit_rules(self):
        rules = RuleBook.defaults().rules_for(TriggerPoint.COMMIT_MSG)
        runner = GateRunner()
        assert runner.run(rules, GateInput(text="feat(api): add search #12")).allowed
        assert runner.run(rules, GateInput(text="Merge branch 'main'")).allowed
        assert not runner.run(rules, GateInput(text="added search")).allowed

    def test_default_push_rules_block_credentials(self):
        rules = RuleBook.defaults().rules_for(TriggerPoint.PRE_PUSH)
        runner = GateRunner()
        leak = GateInput.from_segments({"settings.py": 'API_KEY = "abcd1234"'})
        clean = GateInput.from_segments({"settings.py": 'API_KEY = os.environ["API_KEY"]'})
        assert not runner.run(rules, leak).allowed
        assert runner.run(rules, clean).allowed

    def test_default_push_rules_block_env_file(self):
        rules = RuleBook.defaults().rules_for(TriggerPoint.PRE_PUSH)
        gate_input = GateInput(paths=("app/.env",))
        result = GateRunner().run(rules, gate_input)
        assert [v.rule_id for v in result.blocking] == ["env-file"]

    def test_default_debug_rule_only_warns(self):
        rules = RuleBook.defaults().rules_for(TriggerPoint.PRE_COMMIT)
        gate_input = GateInput.from_segments({"tool.py": "breakpoint()"})
        result = GateRunner().run(rules, gate_input)
        assert result.allowed
        assert [v.rule_id for v in result.warnings] == ["debug-statement"]


class TestLoadRulebook:
    """Tests for merging a rules file with the defaults."""

    def test_custom_rule_appended(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              pre-commit:
                rules:
                  - id: no-todo
                    pattern: TODO
                    severity: warn
            """,
        )
        rulebook = load_rulebook(path)
        assert _ids(rulebook, TriggerPoint.PRE_COMMIT) == [
            "unterminated-statement",
            "debug-statement",
            "no-todo",
        ]
        assert rulebook.rules_for(TriggerPoint.COMMIT_MSG) == DEFAULT_RULES[TriggerPoint.COMMIT_MSG]

    def test_list_shorthand(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              commit-msg:
                - id: signed-off
                  pattern: "Signed-off-by: "
                  mode: must_match
            """,
        )
        rules = load_rulebook(path).rules_for(TriggerPoint.COMMIT_MSG)
        assert rules[-1].rule_id == "signed-off"
        assert rules[-1].mode is MatchMode.MUST_MATCH

    def test_same_id_overrides_default_in_place(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              commit-msg:
                rules:
                  - id: conventional-subject
                    pattern: "^[A-Z]+-\\\\d+ "
                    mode: must_match
            """,
        )
        rules = load_rulebook(path).rules_for(TriggerPoint.COMMIT_MSG)
        assert [r.rule_id for r in rules] == ["conventional-subject", "issue-reference"]
        assert rules[0].pattern == r"^[A-Z]+-\d+ "

    def test_replace_defaults(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              pre-push:
                replace_defaults: true
                rules:
                  - id: only
                    pattern: forbidden
            """,
        )
        assert _ids(load_rulebook(path), TriggerPoint.PRE_PUSH) == ["only"]

    def test_disable_default(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              commit-msg:
                disable: [issue-reference]
            """,
        )
        assert _ids(load_rulebook(path), TriggerPoint.COMMIT_MSG) == ["conventional-subject"]

    def test_disable_unknown_rule(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              commit-msg:
                disable: [no-such-rule]
            """,
        )
        with pytest.raises(ConfigurationError, match="disables unknown rules: no-such-rule"):
            load_rulebook(path)

    def test_globally_disabled(self, tmp_path):
        rulebook = load_rulebook(_write(tmp_path, "enabled: false\n"))
        assert not rulebook.enabled
        for trigger in TriggerPoint:
            assert rulebook.rules_for(trigger) == ()

    def test_rule_fields_from_yaml(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              pre-commit:
                replace_defaults: true
                rules:
                  - id: no-large-fixtures
                    pattern: "fixtures/.*\\\\.bin$"
                    target: paths
                    paths: ["tests/*"]
                    severity: block
                    message: "Binary fixture staged: {line}"
                    description: Keep binaries out of the repo
            """,
        )
        (rule,) = load_rulebook(path).rules_for(TriggerPoint.PRE_COMMIT)
        assert rule.paths == ("tests/*",)
        assert rule.severity is Severity.BLOCK
        assert rule.description == "Keep binaries out of the repo"


class TestInvalidRulesFile:
    """Malformed rules files fail before any rule runs."""

    @pytest.mark.parametrize(
        "content,match",
        [
            ("hooks: [unclosed\n", "Failed to parse"),
            ("- just\n- a list\n", "must contain a mapping"),
            ("enabled: true\nextra: 1\n", "unknown keys: extra"),
            ("hooks: [pre-commit]\n", "'hooks' .* must be a mapping"),
            ("hooks:\n  post-merge: []\n", "Unknown hook 'post-merge'"),
            ("hooks:\n  pre-commit: 3\n", "must be a mapping or a list"),
            ("hooks:\n  pre-commit:\n    rule: []\n", "unknown keys: rule"),
            ("hooks:\n  pre-commit:\n    rules: {id: x}\n", "rules must be a list"),
            ("hooks:\n  pre-commit:\n    disable: debug-statement\n", "disable must be a list"),
            ("hooks:\n  pre-commit:\n    disable: [{id: x}]\n", "disable must be a list of rule ids"),
            ("hooks:\n  pre-commit:\n    disable: [[x]]\n", "disable must be a list of rule ids"),
            ("hooks:\n  pre-commit:\n    - {id: r, pattern: x, paths: 5}\n", "invalid paths filter"),
            ("hooks:\n  pre-commit:\n    - {id: r, pattern: x, paths: {a: 1}}\n", "invalid paths filter"),
            ("hooks:\n  pre-commit:\n    - {id: r, pattern: x, description: [d]}\n", "description must be"),
        ],
    )
    def test_structural_errors(self, tmp_path, content, match):
        with pytest.raises(ConfigurationError, match=match):
            load_rulebook(_write(tmp_path, content))

    def test_invalid_pattern(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              pre-push:
                - id: broken
                  pattern: "(unclosed"
            """,
        )
        with pytest.raises(ConfigurationError, match="invalid pattern"):
            load_rulebook(path)

    def test_duplicate_ids(self, tmp_path):
        path = _write(
            tmp_path,
            """
            hooks:
              pre-push:
                - {id: dup, pattern: a}
                - {id: dup, pattern: b}
            """,
        )
        with pytest.raises(ConfigurationError, match="Duplicate rule id 'dup'"):
            load_rulebook(path)

    def test_unreadable_path(self, tmp_path):
        directory = tmp_path / "rules"
        directory.mkdir()
        with pytest.raises(ConfigurationError, match="Failed to read"):
            load_rulebook(directory)
