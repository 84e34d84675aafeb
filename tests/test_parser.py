from __future__ import annotations

from pathlib import Path

from stylesentinel.engine.nodes import (
    ClassDecl,
    ControlStmt,
    EnumDecl,
    FunctionDecl,
    IncludeList,
    NamespaceDecl,
    Opaque,
    SwitchBlock,
    VariableDecl,
    walk,
)
from stylesentinel.engine.parser import MAX_NESTING_DEPTH, parse
from stylesentinel.engine.tokens import scan_source


def _parse(text: str):
    return parse(scan_source(Path("Sample.h"), text))


def _nodes(text: str, node_type):
    return [node for node in walk(_parse(text)) if isinstance(node, node_type)]


def test_class_groups_members_by_access_label() -> None:
    text = (
        "class FThing : public FBase\n"
        "{\n"
        "public:\n"
        "\tFThing();\n"
        "\tvirtual ~FThing();\n"
        "\tvoid Run();\n"
        "private:\n"
        "\tint32 Count;\n"
        "\tbool bReady;\n"
        "};\n"
    )
    (cls,) = _nodes(text, ClassDecl)
    assert cls.name == "FThing"
    assert cls.keyword == "class"
    assert cls.bases == ("FBase",)
    assert [g.access for g in cls.groups] == ["public", "private"]

    ctor, dtor, run = cls.groups[0].members
    assert isinstance(ctor, FunctionDecl) and ctor.is_constructor
    assert isinstance(dtor, FunctionDecl) and dtor.is_destructor and dtor.is_virtual
    assert isinstance(run, FunctionDecl) and run.return_type == "void"
    assert [m.name for m in cls.groups[1].members] == ["Count", "bReady"]
    assert all(m.access == "private" for m in cls.groups[1].members)


def test_struct_members_default_to_public() -> None:
    (cls,) = _nodes("struct FPoint\n{\n\tint32 X;\n};\n", ClassDecl)
    assert cls.keyword == "struct"
    (member,) = cls.children
    assert isinstance(member, VariableDecl)
    assert member.access == "public"
    assert member.role == "member"


def test_reflection_macros_become_opaque_and_export_macro_is_skipped() -> None:
    text = (
        "UCLASS(Blueprintable)\n"
        "class ENGINE_API AMyActor : public AActor\n"
        "{\n"
        "\tGENERATED_BODY()\n"
        "public:\n"
        "\tUPROPERTY(EditAnywhere)\n"
        "\tfloat Speed;\n"
        "};\n"
    )
    tree = _parse(text)
    assert isinstance(tree.children[0], Opaque)
    (cls,) = [n for n in walk(tree) if isinstance(n, ClassDecl)]
    assert cls.name == "AMyActor"
    assert cls.bases == ("AActor",)
    speeds = [m for m in cls.variables() if m.name == "Speed"]
    assert len(speeds) == 1


def test_pure_virtual_and_override_flags() -> None:
    text = (
        "class IRunnable\n"
        "{\n"
        "public:\n"
        "\tvirtual void Run() = 0;\n"
        "\tvoid Tick(float DeltaTime) override;\n"
        "};\n"
    )
    run, tick = _nodes(text, FunctionDecl)
    assert run.is_virtual and run.is_pure
    assert tick.is_override and not tick.is_pure
    (param,) = tick.parameters
    assert param.name == "DeltaTime"
    assert param.role == "parameter"
    assert param.type_text == "float"


def test_out_of_line_definition_with_body() -> None:
    text = "void AMyActor::Tick(float DeltaTime)\n{\n\tint32 Local = 0;\n}\n"
    (fn,) = _nodes(text, FunctionDecl)
    assert fn.name == "Tick"
    assert fn.open_brace is not None
    assert fn.open_brace.line == 2
    locals_ = [n for n in fn.body if isinstance(n, VariableDecl)]
    assert [(v.name, v.role) for v in locals_] == [("Local", "local")]


def test_template_class_is_flagged_and_span_covers_template_keyword() -> None:
    text = "template <typename T>\nclass TBox\n{\n\tT Value;\n};\n"
    tree = _parse(text)
    (cls,) = [n for n in walk(tree) if isinstance(n, ClassDecl)]
    assert cls.is_template
    assert cls.span.first == 0


def test_enum_and_namespace() -> None:
    text = "namespace Game\n{\nenum class EColor : uint8\n{\n\tRed,\n\tGreen,\n};\n}\n"
    (ns,) = _nodes(text, NamespaceDecl)
    assert ns.name == "Game"
    (enum,) = _nodes(text, EnumDecl)
    assert enum.name == "EColor"
    assert enum.is_scoped
    assert [e.name for e in enum.enumerators] == ["Red", "Green"]


def test_multiple_declarators_produce_separate_variables() -> None:
    variables = _nodes("AActor *First, *Second;\n", VariableDecl)
    assert [v.name for v in variables] == ["First", "Second"]
    assert all(v.role == "global" for v in variables)


def test_bitfield_width_is_recorded() -> None:
    (var,) = _nodes("struct FFlags\n{\n\tuint8 bHidden : 1;\n};\n", VariableDecl)
    assert var.bitfield_width == 1
    assert var.is_bool


def test_consecutive_includes_form_one_list() -> None:
    text = (
        "#pragma once\n"
        "#include \"CoreMinimal.h\"\n"
        "\n"
        "#include <vector>\n"
        "#define FOO 1\n"
        "#include \"Other.h\"\n"
    )
    lists = _nodes(text, IncludeList)
    assert [[i.target for i in lst.includes] for lst in lists] == [["CoreMinimal.h", "vector"], ["Other.h"]]
    assert [i.is_system for i in lists[0].includes] == [False, True]


def test_switch_cases_count_statements_and_terminators() -> None:
    text = (
        "void F(int32 X)\n"
        "{\n"
        "\tswitch (X) { case 1: case 2: g(); break; case 3: h(); // falls through\n"
        "\tdefault: return; }\n"
        "}\n"
    )
    (switch,) = _nodes(text, SwitchBlock)
    cases = switch.cases
    assert [c.statements for c in cases] == [0, 2, 1, 1]
    assert [c.terminator for c in cases] == [None, "break", None, "return"]
    assert cases[2].has_fallthrough_marker
    assert switch.has_default


def test_control_statements_record_braces() -> None:
    text = (
        "void F()\n"
        "{\n"
        "\tif (A) B();\n"
        "\telse if (C) { D(); }\n"
        "\telse { E(); }\n"
        "\tdo { G(); } while (H);\n"
        "}\n"
    )
    controls = _nodes(text, ControlStmt)
    assert [c.keyword for c in controls] == ["if", "else if", "else", "do"]
    assert [c.open_brace is not None for c in controls] == [False, True, True, True]


def test_spans_nest_within_parents() -> None:
    text = (
        "#pragma once\n"
        "#include \"CoreMinimal.h\"\n"
        "namespace Game\n"
        "{\n"
        "template <typename T>\n"
        "class TBox : public FBase\n"
        "{\n"
        "public:\n"
        "\tvoid Set(const T& InValue, int32 Count = 0)\n"
        "\t{\n"
        "\t\tif (Count) { Value = InValue; }\n"
        "\t\tswitch (Count) { case 0: break; default: break; }\n"
        "\t}\n"
        "private:\n"
        "\tT Value;\n"
        "};\n"
        "}\n"
    )
    tree = _parse(text)
    for node in walk(tree):
        assert node.span.first <= node.span.last
        for child in node.children:
            assert node.span.first <= child.span.first
            assert child.span.last <= node.span.last


def test_deep_nesting_is_wrapped_without_recursion_error() -> None:
    depth = MAX_NESTING_DEPTH * 4
    text = "void F()\n" + "{" * depth + "}" * depth + "\n"
    tree = _parse(text)
    assert any(isinstance(n, Opaque) for n in walk(tree))


def test_deeply_chained_single_statements_do_not_recurse_forever() -> None:
    text = "void F()\n{\n" + "if (X) " * (MAX_NESTING_DEPTH * 4) + "Run();\n}\n"
    tree = _parse(text)
    controls = [n for n in walk(tree) if isinstance(n, ControlStmt)]
    assert 0 < len(controls) <= MAX_NESTING_DEPTH + 1


def test_parser_never_raises_on_garbage_tokens() -> None:
    samples = [
        "}}} {{{ ;;; ",
        "class",
        "template < ; >",
        "enum { A, B",
        "void F( {",
        "switch (X) case 1:",
        "operator+ = ;",
        "namespace = 3;",
        ":: :: ::",
    ]
    for text in samples:
        tree = _parse(text)
        assert tree.kind == "file"


def test_long_chain_of_template_heads_is_parsed_iteratively() -> None:
    text = "template <class T> " * 2000 + "class TFoo {};\n"
    (cls,) = _nodes(text, ClassDecl)
    assert cls.name == "TFoo"
    assert cls.is_template
    assert cls.span.first == 0
