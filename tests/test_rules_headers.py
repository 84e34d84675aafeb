from __future__ import annotations

from pathlib import Path

import pytest
from helpers import make_file_ctx, run_rule

from stylesentinel.config import DEFAULT_PCH_PATTERNS
from stylesentinel.engine.nodes import IncludeDirective
from stylesentinel.engine.tokens import tokenize
from stylesentinel.rules.headers import H01IncludeOrder, H02PragmaOnce, include_category

ACTOR_CLASS = "UCLASS()\nclass AMyActor : public AActor\n{\n\tGENERATED_BODY()\n};\n"


def test_h01_generated_header_before_base_class_header(project_ctx) -> None:
    source = (
        "#pragma once\n"
        '#include "MyActor.generated.h"\n'
        '#include "GameFramework/Actor.h"\n' + ACTOR_CLASS
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/MyActor.h", content=source)
    violations = run_rule(H01IncludeOrder(), ctx)
    assert len(violations) == 1
    assert violations[0].location.line == 3
    assert "`GameFramework/Actor.h` (base-class header)" in violations[0].message


def test_h01_expected_order_passes(project_ctx) -> None:
    source = (
        "#pragma once\n"
        '#include "CoreMinimal.h"\n'
        '#include "GameFramework/Actor.h"\n'
        '#include "MyActor.generated.h"\n' + ACTOR_CLASS
    )
    ctx = make_file_ctx(project_ctx, relpath="Source/MyActor.h", content=source)
    assert run_rule(H01IncludeOrder(), ctx) == []


def test_h01_precompiled_header_must_come_first(project_ctx) -> None:
    source = "#pragma once\n#include <vector>\n#include \"MyGamePCH.h\"\n"
    ctx = make_file_ctx(project_ctx, relpath="Source/Thing.h", content=source)
    (violation,) = run_rule(H01IncludeOrder(), ctx)
    assert "precompiled header" in violation.message


def test_h01_only_applies_to_headers(project_ctx) -> None:
    source = '#include "MyActor.generated.h"\n#include "CoreMinimal.h"\n'
    ctx = make_file_ctx(project_ctx, relpath="Source/MyActor.cpp", content=source)
    assert run_rule(H01IncludeOrder(), ctx) == []


def _include(target: str) -> IncludeDirective:
    (token,) = tokenize(f'#include "{target}"')
    return IncludeDirective(target=target, is_system=False, token=token)


@pytest.mark.parametrize(
    ("target", "category"),
    [
        ("CoreMinimal.h", 0),
        ("MyGamePCH.h", 0),
        ("GameFramework/Actor.h", 1),
        ("Actor.h", 1),
        ("MyActor.generated.h", 2),
        ("Components/SceneComponent.h", 3),
    ],
)
def test_include_category(target: str, category: int) -> None:
    assert include_category(_include(target), pch_patterns=DEFAULT_PCH_PATTERNS, base_stems={"AActor", "Actor"}) == category


def test_include_category_uses_configured_pch() -> None:
    assert include_category(_include("Game/Shared.h"), pch_patterns=("Game/Shared.h",), base_stems=set()) == 0


def test_h02_missing_pragma_once(project_ctx) -> None:
    ctx = make_file_ctx(project_ctx, relpath="Source/NoGuard.h", content="#ifndef NO_GUARD_H\n#define NO_GUARD_H\n#endif\n")
    (violation,) = run_rule(H02PragmaOnce(), ctx)
    assert violation.location.line == 1
    assert violation.location.path == Path(project_ctx.project_root / "Source/NoGuard.h")


def test_h02_pragma_once_present_or_source_file(project_ctx) -> None:
    header = make_file_ctx(project_ctx, relpath="Source/Guarded.hpp", content="#  pragma once\nint32 A;\n")
    source = make_file_ctx(project_ctx, relpath="Source/Impl.cpp", content="int32 A;\n")
    assert run_rule(H02PragmaOnce(), header) == []
    assert run_rule(H02PragmaOnce(), source) == []
