"""Tests for gapcheck.rules.wrapping: WRP001."""

import textwrap

import pytest

from gapcheck import errors, java, lines, tree
from gapcheck.rules import base, wrapping

_K = tree.NodeKind
_MISSING = base.ViolationKind.MISSING_BLOCK_SEPARATOR
_FORBIDDEN = base.ViolationKind.FORBIDDEN_BLOCK_SEPARATOR


def _check(source: str, **options: str) -> list[base.Diagnostic]:
    rule = wrapping.WRP001().configure(options)
    parsed = java.parse(textwrap.dedent(source))
    return rule.check(parsed.tree, parsed.lines)


def _lines(source: str, **options: str) -> list[int]:
    return [diag.line for diag in _check(source, **options)]


_CLASS_CASES = """\
    package p;

    public class ClassCases {

        private static class NoEmptyLineClass {
            int i;
        }

        private static class NoEmptyLineClassComment {
            /**
             * Comment
             */
            int i;
            /**
             * Comment
             */
        }

        private static class TopEmptyLineClass {

            int i;
        }

        private static class TopEmptyLineClassComment {

            int i;
            /**
             * Comment.
             */
        }

        private static class BottomEmptyLineClass {
            int i;

        }

        private static class BottomEmptyLineClassComment {
            /**
             * Comment.
             */
            int i;

        }

        private static class TopAndBottomEmptyLineClass {

            int i;

        }

        private static class EmptyClass {
        }

    }
"""

_CONTROL_FLOW = """\
    class Foo {

        void run(int n) {
            if (n > 0) {

                n--;
            } else {
                n++;

            }
            for (int i = 0; i < n; i++) {
                n--;
            }
            while (n > 0) {

                n--;
            }
            switch (n) {
                case 1:
                    break;
            }
        }
    }
"""


# ---------------------------------------------------------------------------
# Type bodies
# ---------------------------------------------------------------------------


class TestTypeBodies:
    def test_defaults_report_nothing(self) -> None:
        assert _lines(_CLASS_CASES) == []

    def test_top_empty_line_required(self) -> None:
        assert _lines(_CLASS_CASES, top_separator="empty_line") == [5, 9, 32, 37]

    def test_bottom_empty_line_required(self) -> None:
        assert _lines(_CLASS_CASES, bottom_separator="empty_line") == [7, 17, 22, 30]

    def test_top_empty_line_forbidden(self) -> None:
        assert _lines(_CLASS_CASES, top_separator="no_empty_line") == [3, 19, 24, 45]

    def test_bottom_empty_line_forbidden(self) -> None:
        assert _lines(_CLASS_CASES, bottom_separator="no_empty_line") == [
            35,
            43,
            49,
            54,
        ]

    def test_both_edges_required(self) -> None:
        found = _lines(
            _CLASS_CASES, top_separator="empty_line", bottom_separator="empty_line"
        )
        assert sorted(found) == [5, 7, 9, 17, 22, 30, 32, 37]

    def test_allowed_with_every_block_kind_reports_nothing(self) -> None:
        assert (
            _lines(_CLASS_CASES, blocks="type_body, method_body, if, while, for, switch")
            == []
        )

    def test_member_on_brace_line(self) -> None:
        source = "package p;\n\nclass C {\n    int i; }\n" + "\n" * 56
        diagnostics = _check(source, top_separator="empty_line")
        assert [(diag.line, diag.kind) for diag in diagnostics] == [(3, _MISSING)]
        assert diagnostics[0].message == (
            "Block should be wrapped with an empty line after '{'"
        )

    def test_blank_line_must_precede_leading_comment(self) -> None:
        source = """\
            class Foo {
                // about x

                int x;
            }
        """
        assert _lines(source, top_separator="empty_line") == [1]

    def test_blank_line_above_leading_comment(self) -> None:
        source = """\
            class Foo {

                // about x
                int x;
            }
        """
        assert _lines(source, top_separator="empty_line") == []

    def test_forbidden_bottom_message(self) -> None:
        diagnostics = _check(
            """\
            class Foo {
                int x;

            }
            """,
            bottom_separator="no_empty_line",
        )
        assert [(diag.line, diag.kind) for diag in diagnostics] == [(4, _FORBIDDEN)]
        assert diagnostics[0].message == (
            "Block should not be wrapped with an empty line before '}'"
        )
        assert diagnostics[0].rule_id == "WRP001"

    def test_empty_body_is_skipped(self) -> None:
        source = """\
            class Foo {
            }
        """
        assert (
            _lines(source, top_separator="empty_line", bottom_separator="empty_line")
            == []
        )

    def test_method_bodies_not_checked_by_default(self) -> None:
        assert _lines(_CONTROL_FLOW, top_separator="no_empty_line") == [1]


# ---------------------------------------------------------------------------
# Other block kinds
# ---------------------------------------------------------------------------


class TestBlockKinds:
    def test_method_body(self) -> None:
        found = _lines(_CONTROL_FLOW, blocks="method_body", top_separator="empty_line")
        assert found == [3]

    def test_if_checks_both_branches(self) -> None:
        found = _lines(
            _CONTROL_FLOW,
            blocks="if",
            top_separator="no_empty_line",
            bottom_separator="no_empty_line",
        )
        assert found == [4, 10]

    def test_for(self) -> None:
        assert _lines(_CONTROL_FLOW, blocks="for", top_separator="empty_line") == [11]

    def test_while(self) -> None:
        assert _lines(_CONTROL_FLOW, blocks="while", top_separator="no_empty_line") == [
            14
        ]

    def test_switch(self) -> None:
        assert _lines(_CONTROL_FLOW, blocks="switch", top_separator="empty_line") == [
            18
        ]

    def test_empty_method_body_is_skipped(self) -> None:
        source = """\
            class Foo {
                void run() {}
            }
        """
        assert _lines(source, blocks="method_body", top_separator="empty_line") == []


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


def _body_without_braces() -> tree.SyntaxTree:
    builder = tree.TreeBuilder()
    builder.open(_K.ROOT, 1, 3)
    builder.open(_K.TYPE_BODY, 1, 3)
    builder.open(_K.FIELD, 2, 2, "x")
    builder.close()
    builder.close()
    builder.close()
    return builder.build()


class TestEvaluator:
    def test_reports_brace_lines(self) -> None:
        parsed = java.parse("class Foo {\n    int x;\n}\n")
        body = next(
            node for node in parsed.tree.walk() if node.kind is _K.TYPE_BODY
        )
        policy = wrapping.WrappingPolicy(
            top_separator=wrapping.BlockSeparator.EMPTY_LINE,
            bottom_separator=wrapping.BlockSeparator.EMPTY_LINE,
        )
        found: list[base.Violation] = []
        wrapping.evaluate_block_wrapping(
            parsed.tree, body, parsed.lines, policy, found.append
        )
        assert found == [
            base.Violation(line=1, kind=_MISSING, subject="{"),
            base.Violation(line=3, kind=_MISSING, subject="}"),
        ]

    def test_block_without_braces_raises(self) -> None:
        syntax_tree = _body_without_braces()
        body = syntax_tree.children(syntax_tree.root.index)[0]
        with pytest.raises(errors.ContractViolation):
            wrapping.evaluate_block_wrapping(
                syntax_tree,
                body,
                lines.LineView(["class Foo {", "int x;", "}"]),
                wrapping.WrappingPolicy(),
                lambda _: None,
            )

    def test_brace_outside_view_raises(self) -> None:
        parsed = java.parse("class Foo {\n    int x;\n}\n")
        body = next(
            node for node in parsed.tree.walk() if node.kind is _K.TYPE_BODY
        )
        with pytest.raises(errors.ContractViolation):
            wrapping.evaluate_block_wrapping(
                parsed.tree,
                body,
                lines.LineView(["class Foo {"]),
                wrapping.WrappingPolicy(),
                lambda _: None,
            )

    def test_iter_wrapped_blocks_yields_branch_blocks(self) -> None:
        parsed = java.parse(textwrap.dedent(_CONTROL_FLOW))
        blocks = wrapping.iter_wrapped_blocks(parsed.tree, {_K.IF})
        assert [block.line for block in blocks] == [4, 7]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestBlockSeparator:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("empty_line", wrapping.BlockSeparator.EMPTY_LINE),
            ("  Empty_Line ", wrapping.BlockSeparator.EMPTY_LINE),
            ("NO_EMPTY_LINE", wrapping.BlockSeparator.NO_EMPTY_LINE),
            ("empty_line_allowed", wrapping.BlockSeparator.EMPTY_LINE_ALLOWED),
        ],
    )
    def test_parse(self, raw: str, expected: wrapping.BlockSeparator) -> None:
        assert wrapping.BlockSeparator.parse(raw) is expected

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(errors.ConfigurationError, match="unable to parse sometimes"):
            wrapping.BlockSeparator.parse("sometimes")

    def test_parse_non_string_raises(self) -> None:
        with pytest.raises(errors.ConfigurationError):
            wrapping.BlockSeparator.parse(1)

    def test_allowed_never_reports(self) -> None:
        allowed = wrapping.BlockSeparator.EMPTY_LINE_ALLOWED
        assert allowed.violation(True) is None
        assert allowed.violation(False) is None


class TestConfigure:
    def test_defaults(self) -> None:
        assert wrapping.WRP001().policy == wrapping.WrappingPolicy(
            top_separator=wrapping.BlockSeparator.EMPTY_LINE_ALLOWED,
            bottom_separator=wrapping.BlockSeparator.EMPTY_LINE_ALLOWED,
            blocks=frozenset({_K.TYPE_BODY}),
        )

    def test_configure_returns_new_rule(self) -> None:
        rule = wrapping.WRP001()
        configured = rule.configure({"top_separator": "no_empty_line"})
        assert isinstance(configured, wrapping.WRP001)
        assert configured.policy.top_separator is wrapping.BlockSeparator.NO_EMPTY_LINE
        assert rule.policy.top_separator is wrapping.BlockSeparator.EMPTY_LINE_ALLOWED

    def test_bad_separator_raises(self) -> None:
        with pytest.raises(errors.ConfigurationError):
            wrapping.WRP001().configure({"bottom_separator": "sometimes"})

    def test_parse_block_kinds(self) -> None:
        assert wrapping.parse_block_kinds("type_body, IF") == frozenset(
            {_K.TYPE_BODY, _K.IF}
        )

    @pytest.mark.parametrize("raw", ["block", "loop", 3])
    def test_parse_block_kinds_rejects_unknown(self, raw: object) -> None:
        with pytest.raises(errors.ConfigurationError):
            wrapping.parse_block_kinds(raw)
