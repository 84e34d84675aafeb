from __future__ import annotations

import pytest
from helpers import make_file_ctx, run_rule

from stylesentinel.rules.correctness import (
    C01SwitchFallthrough,
    C02SwitchDefault,
    C03VirtualDestructor,
    C04NullMacro,
    C05SizedInteger,
    sized_replacement,
)


def _in_function(body: str) -> str:
    return "void F(int32 X)\n{\n" + body + "}\n"


def test_c01_flags_case_that_falls_into_the_next(project_ctx) -> None:
    source = _in_function("\tswitch (X) { case 1: f(); case 2: g(); break; }\n")
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    violations = run_rule(C01SwitchFallthrough(), ctx)
    assert len(violations) == 1
    assert (violations[0].location.line, violations[0].location.col) == (3, 15)
    assert violations[0].severity == "warn"


def test_c01_adjacent_labels_share_a_block(project_ctx) -> None:
    source = _in_function("\tswitch (X) { case 1: case 2: g(); break; }\n")
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    assert run_rule(C01SwitchFallthrough(), ctx) == []


def test_c01_accepts_terminators_and_fallthrough_markers(project_ctx) -> None:
    source = _in_function(
        "\tswitch (X)\n"
        "\t{\n"
        "\tcase 1:\n"
        "\t\tf();\n"
        "\t\t// fall through\n"
        "\tcase 2:\n"
        "\t\tg();\n"
        "\t\t[[fallthrough]];\n"
        "\tcase 3:\n"
        "\t\treturn;\n"
        "\tcase 4:\n"
        "\t{\n"
        "\t\th();\n"
        "\t\tbreak;\n"
        "\t}\n"
        "\tdefault:\n"
        "\t\tthrow 1;\n"
        "\t}\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    assert run_rule(C01SwitchFallthrough(), ctx) == []


@pytest.mark.parametrize(
    "case_body",
    [
        "while (X) { f(); break; }",
        "if (X) { return; }",
        "for (;;) { if (X) { continue; } }",
    ],
)
def test_c01_terminator_inside_nested_statement_does_not_end_the_case(project_ctx, case_body: str) -> None:
    source = _in_function(f"\tswitch (X) {{ case 1: {case_body} case 2: g(); break; }}\n")
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    violations = run_rule(C01SwitchFallthrough(), ctx)
    assert [(v.location.line, v.location.col) for v in violations] == [(3, 15)]


def test_c01_braced_case_body_may_be_followed_by_break(project_ctx) -> None:
    source = _in_function("\tswitch (X) { case 1: { f(); } break; case 2: { g(); return; } default: break; }\n")
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    assert run_rule(C01SwitchFallthrough(), ctx) == []


def test_c01_fallthrough_comment_must_follow_the_last_statement(project_ctx) -> None:
    source = _in_function(
        "\tswitch (X)\n"
        "\t{\n"
        "\tcase 1:\n"
        "\t\t// falls through to the shared cleanup below\n"
        "\t\tf();\n"
        "\tcase 2:\n"
        "\t\tg();\n"
        "\t\t// does not fall through\n"
        "\tcase 3:\n"
        "\t\th();\n"
        "\t\tbreak;\n"
        "\t}\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    violations = run_rule(C01SwitchFallthrough(), ctx)
    assert [v.location.line for v in violations] == [5, 8]


def test_c02_switch_without_default(project_ctx) -> None:
    source = _in_function("\tswitch (X) { case 1: break; }\n\tswitch (X) { default: break; }\n")
    ctx = make_file_ctx(project_ctx, relpath="Source/Switch.cpp", content=source)
    violations = run_rule(C02SwitchDefault(), ctx)
    assert [(v.location.line, v.severity) for v in violations] == [(3, "info")]


def test_c03_base_class_with_virtuals_needs_virtual_destructor(project_ctx) -> None:
    source = "class FShape\n{\npublic:\n\tvirtual float Area() const;\n};\n"
    ctx = make_file_ctx(project_ctx, relpath="Source/Shape.h", content=source)
    (violation,) = run_rule(C03VirtualDestructor(), ctx)
    assert violation.severity == "error"
    assert "`Area`" in violation.message
    assert violation.suggestion == "Declare `virtual ~FShape() = default;`."


@pytest.mark.parametrize(
    "source",
    [
        "class FShape\n{\npublic:\n\tvirtual ~FShape();\n\tvirtual float Area() const;\n};\n",
        "class FCircle : public FShape\n{\npublic:\n\tvirtual float Area() const override;\n};\n",
        "class FPlain\n{\npublic:\n\tfloat Area() const;\n\t~FPlain();\n};\n",
    ],
)
def test_c03_passes(project_ctx, source: str) -> None:
    ctx = make_file_ctx(project_ctx, relpath="Source/Shape.h", content=source)
    assert run_rule(C03VirtualDestructor(), ctx) == []


def test_c04_null_macro_outside_literals_and_comments(project_ctx) -> None:
    source = (
        "AActor *Target = NULL; // NULL in a comment\n"
        "const TCHAR *Label = TEXT(\"NULL\");\n"
        "AActor *Other = nullptr;\n"
        "bool bSame = Target == NULL;\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Null.cpp", content=source)
    violations = run_rule(C04NullMacro(), ctx)
    assert [(v.location.line, v.location.col) for v in violations] == [(1, 18), (4, 24)]


@pytest.mark.parametrize(
    ("type_text", "expected"),
    [
        ("int", "int32"),
        ("unsigned int", "uint32"),
        ("unsigned", "uint32"),
        ("long", "int32"),
        ("short", "int16"),
        ("unsigned short", "uint16"),
        ("long long", "int64"),
        ("unsigned long long", "uint64"),
        ("unsigned char", "uint8"),
        ("signed char", "int8"),
        ("const int", "int32"),
        ("static unsigned long", "uint32"),
        ("int*", "int32"),
        ("char", None),
        ("int32", None),
        ("float", None),
        ("TArray<int>", None),
    ],
)
def test_sized_replacement(type_text: str, expected: str | None) -> None:
    assert sized_replacement(type_text) == expected


def test_c05_flags_variables_and_return_types(project_ctx) -> None:
    source = (
        "int main()\n{\n\treturn 0;\n}\n"
        "unsigned int Count;\n"
        "int32 Sized;\n"
        "short GetLevel();\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Main.cpp", content=source)
    violations = run_rule(C05SizedInteger(), ctx)
    assert [v.suggestion for v in violations] == ["Use `uint32`.", "Use `int16`."]
    assert "return type of `GetLevel`" in violations[1].message
    assert all(v.severity == "info" for v in violations)
