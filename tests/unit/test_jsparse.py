import pytest

pytest.importorskip("tree_sitter_javascript")

from ledgerbuild.errors import JsSyntaxError  # noqa: E402
from ledgerbuild.jsparse import check_syntax, first_error, parse  # noqa: E402

VALID_SCRIPT = """\
function getRows(sheet) {
  try {
    return load(sheet);
  } catch {}
  return [];
}
function firstNegative(values) {
  outer: for (const row of values) {
    for (let i = 0; i < row.length; i++) {
      if (row[i] < 0) break outer;
      if (row[i] === 0) continue;
    }
  }
  switch (values.length) {
    case 0:
      break;
    default:
      return values[0];
  }
  try {
    cleanup();
  } finally {
    done();
  }
  const pick = (x) => { return x; };
  return pick(null);
}
"""


def test_valid_script_is_accepted() -> None:
    check_syntax(VALID_SCRIPT)
    assert first_error(parse(VALID_SCRIPT.encode("utf-8")).root_node) is None


def test_empty_catch_is_accepted() -> None:
    check_syntax("try {} catch {}\n")


def test_top_level_return_is_rejected() -> None:
    with pytest.raises(JsSyntaxError, match="illegal return") as excinfo:
        check_syntax("var a = 1;\nreturn a;\n")
    assert excinfo.value.line == 2


def test_return_in_top_level_block_is_rejected() -> None:
    with pytest.raises(JsSyntaxError, match="illegal return") as excinfo:
        check_syntax("if (ready) {\n  return 1;\n}\n")
    assert excinfo.value.line == 2


def test_try_without_handler_is_rejected() -> None:
    code = "function f() {\n  try {\n    g();\n  }\n  return 1;\n}\n"
    with pytest.raises(JsSyntaxError, match="missing catch or finally") as excinfo:
        check_syntax(code)
    assert excinfo.value.line == 2


def test_bare_try_block_is_rejected() -> None:
    with pytest.raises(JsSyntaxError):
        check_syntax("try {}\n")


def test_break_outside_loop_is_rejected() -> None:
    with pytest.raises(JsSyntaxError, match="illegal break") as excinfo:
        check_syntax("break;\n")
    assert excinfo.value.line == 1


def test_break_does_not_cross_function_boundary() -> None:
    code = "while (x) {\n  const stop = () => {\n    break;\n  };\n}\n"
    with pytest.raises(JsSyntaxError, match="illegal break") as excinfo:
        check_syntax(code)
    assert excinfo.value.line == 3


def test_continue_inside_switch_only_is_rejected() -> None:
    code = "switch (x) {\n  case 1:\n    continue;\n}\n"
    with pytest.raises(JsSyntaxError, match="illegal continue") as excinfo:
        check_syntax(code)
    assert excinfo.value.line == 3


def test_stray_closing_brace_reports_its_line() -> None:
    with pytest.raises(JsSyntaxError, match="at line 3") as excinfo:
        check_syntax("const a = 1;\nconst b = 2;\n}\n")
    assert excinfo.value.line == 3


def test_unclosed_function_is_rejected() -> None:
    with pytest.raises(JsSyntaxError) as excinfo:
        check_syntax("function f() {\n  g();\n")
    assert excinfo.value.line is not None
