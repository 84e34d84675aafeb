from __future__ import annotations

import pytest
from helpers import make_file_ctx, run_rule

from stylesentinel.rules.layout import (
    L01BraceStyle,
    L02PointerSpacing,
    L03MemberOrder,
    L04TabIndentation,
    L05CommentSpacing,
    L06ControlBraces,
)


def test_l01_flags_braces_sharing_a_line(project_ctx) -> None:
    source = (
        "namespace Game {\n"
        "class FFoo {\n"
        "};\n"
        "void Run()\n"
        "{\n"
        "\tif (bReady) {\n"
        "\t\tFire();\n"
        "\t}\n"
        "}\n"
        "}\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content=source)
    violations = run_rule(L01BraceStyle(), ctx)
    assert [(v.location.line, v.location.col) for v in violations] == [(1, 16), (2, 12), (6, 14)]
    assert "namespace `Game`" in violations[0].message
    assert "class `FFoo`" in violations[1].message
    assert "`if` statement" in violations[2].message


def test_l01_accepts_allman_braces(project_ctx) -> None:
    source = (
        "enum class EMode : uint8\n"
        "{\n"
        "\tIdle,\n"
        "};\n"
        "void Run(int32 X)\n"
        "{\n"
        "\tswitch (X)\n"
        "\t{\n"
        "\tdefault:\n"
        "\t\tbreak;\n"
        "\t}\n"
        "}\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content=source)
    assert run_rule(L01BraceStyle(), ctx) == []


def test_l01_flags_single_line_function_body(project_ctx) -> None:
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content="void Run() {}\n")
    (violation,) = run_rule(L01BraceStyle(), ctx)
    assert "function `Run`" in violation.message


@pytest.mark.parametrize(
    ("decl", "detail"),
    [
        ("AController *Instigator;", None),
        ("AController* Instigator;", "attaches"),
        ("AController * Instigator;", "has a space between"),
        ("AController*Instigator;", "needs exactly one space"),
        ("const FString &Name = TEXT(\"x\");", None),
        ("const FString& Name = TEXT(\"x\");", "attaches"),
        ("FVector&& Moved = MoveTemp(Other);", "attaches"),
        ("int32 Count;", None),
    ],
)
def test_l02_pointer_spacing(project_ctx, decl: str, detail: str | None) -> None:
    ctx = make_file_ctx(project_ctx, relpath="Source/Ptr.cpp", content=decl + "\n")
    violations = run_rule(L02PointerSpacing(), ctx)
    if detail is None:
        assert violations == []
    else:
        (violation,) = violations
        assert detail in violation.message
        assert violation.location.line == 1


def test_l02_checks_parameters_and_return_types(project_ctx) -> None:
    source = (
        "const FString& GetName() const;\n"
        "const FString &GetLabel() const;\n"
        "void SetTarget(AActor* Target, AActor *Other);\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Ptr.h", content=source)
    violations = run_rule(L02PointerSpacing(), ctx)
    names = [v.message.split("`")[1] for v in violations]
    assert names == ["GetName", "Target"]


def test_l02_multiple_declarators(project_ctx) -> None:
    ctx = make_file_ctx(project_ctx, relpath="Source/Ptr.cpp", content="AActor *First, *Second;\n")
    assert run_rule(L02PointerSpacing(), ctx) == []


def test_l03_member_order_within_a_visibility_group(project_ctx) -> None:
    source = (
        "class FFoo : public FBase\n"
        "{\n"
        "public:\n"
        "\tvoid Run();\n"
        "\tFFoo();\n"
        "protected:\n"
        "\tvoid Helper();\n"
        "\tvirtual void Tick(float DeltaTime) override;\n"
        "private:\n"
        "\tint32 Count;\n"
        "\tvoid Reset();\n"
        "};\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.h", content=source)
    violations = run_rule(L03MemberOrder(), ctx)
    assert [v.location.line for v in violations] == [5, 8, 11]
    assert all(v.severity == "info" for v in violations)
    assert "public section" in violations[0].message


def test_l03_ordered_members_pass(project_ctx) -> None:
    source = (
        "class FFoo : public FBase\n"
        "{\n"
        "public:\n"
        "\tFFoo();\n"
        "\tvirtual ~FFoo();\n"
        "\tvirtual void Tick(float DeltaTime) override;\n"
        "\tvoid Run();\n"
        "\tint32 Count;\n"
        "};\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.h", content=source)
    assert run_rule(L03MemberOrder(), ctx) == []


def test_l04_space_indentation(project_ctx) -> None:
    source = "void F()\n{\n    Run();\n\t  Aligned();\n\t\n}\n"
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content=source)
    violations = run_rule(L04TabIndentation(), ctx)
    assert [(v.location.line, v.location.col) for v in violations] == [(3, 1)]


def test_l05_comment_spacing(project_ctx) -> None:
    source = "//Bad\n// Good\n/// Doc\n//~ Begin IFoo\n//\n/*Block*/\nint32 A; //Trailing\n"
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content=source)
    violations = run_rule(L05CommentSpacing(), ctx)
    assert [v.location.line for v in violations] == [1, 7]
    assert violations[0].suggestion == "Write `// Bad`."


def test_l06_control_bodies_need_braces(project_ctx) -> None:
    source = (
        "void F()\n"
        "{\n"
        "\tif (bReady)\n"
        "\t\tFire();\n"
        "\telse if (bWaiting)\n"
        "\t{\n"
        "\t\tWait();\n"
        "\t}\n"
        "\tfor (int32 I = 0; I < 3; ++I)\n"
        "\t\tTick();\n"
        "\tdo\n"
        "\t{\n"
        "\t} while (bLoop);\n"
        "}\n"
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/Foo.cpp", content=source)
    violations = run_rule(L06ControlBraces(), ctx)
    assert [(v.location.line, v.message) for v in violations] == [
        (3, "Body of `if` is not enclosed in braces."),
        (9, "Body of `for` is not enclosed in braces."),
    ]
