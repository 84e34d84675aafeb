from __future__ import annotations

from pathlib import Path

import pytest

from stylesentinel.config import StyleSentinelConfig
from stylesentinel.engine.context import ProjectContext
from stylesentinel.rules.registry import set_extra_rules


@pytest.fixture()
def project_ctx(tmp_path: Path) -> ProjectContext:
    return ProjectContext(
        project_root=tmp_path,
        scan_paths=(tmp_path,),
        files=(),
        config=StyleSentinelConfig(),
    )


@pytest.fixture(autouse=True)
def _reset_rule_registry_plugins() -> None:
    set_extra_rules([])
