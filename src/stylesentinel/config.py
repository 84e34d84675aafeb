from __future__ import annotations

import fnmatch
import re
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, cast

from stylesentinel.engine.types import Severity
from stylesentinel.languages.registry import DEFAULT_EXTENSIONS, normalize_extension


class ConfigError(ValueError):
    """Raised when a StyleSentinel configuration file is invalid."""


RuleId = str
RuleGroup = str
FailOn = Literal["error", "warn", "info", "never"]

CONFIG_FILENAME = ".stylesentinel.toml"
PYPROJECT_FILENAME = "pyproject.toml"

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")
_FAIL_ON_VALUES = ("error", "warn", "info", "never")

DEFAULT_FAIL_ON: FailOn = "error"
DEFAULT_PCH_PATTERNS: tuple[str, ...] = ("*PCH.h", "CoreMinimal.h")
DEFAULT_MAX_ACRONYM_RUN = 2

# Diagnostics produced by the engine itself rather than by a registered rule.
ENGINE_RULE_IDS: tuple[RuleId, ...] = ("X01", "X02", "X03")

# Keep this list in config (not in rules) so configuration can be resolved
# without importing the rule modules.
DEFAULT_RULE_GROUPS: dict[RuleGroup, tuple[RuleId, ...]] = {
    # NOTE: keep in sync with `stylesentinel.rules.registry.builtin_rules()`.
    "naming": ("N01", "N02"),
    "layout": ("L01", "L02", "L03", "L04", "L05", "L06"),
    "correctness": ("C01", "C02", "C03", "C04", "C05"),
    "headers": ("H01", "H02"),
}
DEFAULT_RULE_GROUPS["all"] = tuple(
    rule_id for group in ("naming", "layout", "correctness", "headers") for rule_id in DEFAULT_RULE_GROUPS[group]
)


def _normalize_group(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def _normalize_rule_id(value: str) -> str:
    # Rule IDs are case-insensitive in UX, but canonicalized internally.
    return value.strip().upper()


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _validate_severity(value: Any, *, field_name: str) -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in {"info", "warn", "error"}:
        raise ConfigError(f"`{field_name}` must be one of: info, warn, error.")
    return cast(Severity, normalized)


@dataclass(frozen=True, slots=True)
class RuleOverride:
    severity: Severity | None = None


@dataclass(frozen=True, slots=True)
class RulesConfig:
    enable: str | tuple[str, ...] = "all"
    disable: tuple[str, ...] = ()
    overrides: Mapping[RuleId, RuleOverride] = field(default_factory=lambda: MappingProxyType({}))
    severity_overrides: Mapping[RuleId, Severity] = field(default_factory=lambda: MappingProxyType({}))

    def severity_for(self, rule_id: RuleId) -> Severity | None:
        override = self.overrides.get(rule_id)
        if override is not None and override.severity is not None:
            return override.severity
        return self.severity_overrides.get(rule_id)


@dataclass(frozen=True, slots=True)
class RulesConfigPatch:
    """
    Partial rules configuration.

    Fields set to None mean "inherit from the base config". The top-level
    `[rules]` table is a patch applied to the defaults; each directory
    override is a patch applied to the top-level result.
    """

    enable: str | tuple[str, ...] | None = None
    disable: tuple[str, ...] | None = None
    overrides: Mapping[RuleId, RuleOverride] | None = None
    severity_overrides: Mapping[RuleId, Severity] | None = None


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StyleConfig:
    pch: tuple[str, ...] = DEFAULT_PCH_PATTERNS
    max_acronym_run: int = DEFAULT_MAX_ACRONYM_RUN


@dataclass(frozen=True, slots=True)
class StyleSentinelConfig:
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    fail_on: FailOn = DEFAULT_FAIL_ON
    rules: RulesConfig = field(default_factory=RulesConfig)
    directory_overrides: Mapping[str, RulesConfig] = field(default_factory=lambda: MappingProxyType({}))
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    plugins: tuple[str, ...] = ()
    source: Path | None = None


def find_config_file(project_dir: Path) -> Path | None:
    """
    Return the configuration file that applies to `project_dir`, if any.

    `.stylesentinel.toml` wins over a `[tool.stylesentinel]` table in
    `pyproject.toml`.
    """

    dedicated = project_dir / CONFIG_FILENAME
    if dedicated.is_file():
        return dedicated
    pyproject = project_dir / PYPROJECT_FILENAME
    if pyproject.is_file():
        return pyproject
    return None


def load_config(project_dir: Path | str = ".") -> StyleSentinelConfig:
    """
    Load StyleSentinel configuration from `project_dir`.

    If no file / no `[tool.stylesentinel]` table exists, returns defaults.
    """

    path = find_config_file(Path(project_dir))
    if path is None:
        return StyleSentinelConfig()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc

    if path.name == CONFIG_FILENAME:
        return _parse_table(data, prefix="", source=path)

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return StyleSentinelConfig()
    table = tool_table.get("stylesentinel", {})
    if not isinstance(table, dict) or not table:
        return StyleSentinelConfig()
    return _parse_table(table, prefix="tool.stylesentinel.", source=path)


def parse_config_text(text: str) -> StyleSentinelConfig:
    """Parse the contents of a `.stylesentinel.toml` file."""

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML: {exc}") from exc
    return _parse_table(data, prefix="", source=None)


def _parse_table(table: dict[str, Any], *, prefix: str, source: Path | None) -> StyleSentinelConfig:
    extensions_raw = _validate_str_list(table.get("extensions", list(DEFAULT_EXTENSIONS)), field_name=f"{prefix}extensions")
    extensions = tuple(dict.fromkeys(ext for ext in (normalize_extension(v) for v in extensions_raw) if ext))
    if not extensions:
        raise ConfigError(f"`{prefix}extensions` must not be empty.")

    fail_on_raw = table.get("fail-on", table.get("fail_on", DEFAULT_FAIL_ON))
    fail_on = parse_fail_on(fail_on_raw, field_name=f"{prefix}fail-on")

    rules_patch = _parse_rules_patch(table.get("rules", {}), field_name=f"{prefix}rules")
    rules = _apply_rules_patch(base=RulesConfig(), patch=rules_patch)
    directory_overrides = _parse_directory_overrides(table.get("overrides", {}), base_rules=rules, prefix=prefix)
    ignore = _parse_ignore_config(table.get("ignore", {}), prefix=prefix)
    style = _parse_style_config(table.get("style", {}), prefix=prefix)
    plugins = _validate_str_list(table.get("plugins", []), field_name=f"{prefix}plugins")

    return StyleSentinelConfig(
        extensions=extensions,
        fail_on=fail_on,
        rules=rules,
        directory_overrides=directory_overrides,
        ignore=ignore,
        style=style,
        plugins=plugins,
        source=source,
    )


def parse_fail_on(value: Any, *, field_name: str = "fail-on") -> FailOn:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in _FAIL_ON_VALUES:
        raise ConfigError(f"`{field_name}` must be one of: {', '.join(_FAIL_ON_VALUES)}.")
    return cast(FailOn, normalized)


def _parse_enable(value: Any, *, field_name: str) -> str | tuple[str, ...]:
    enable: str | tuple[str, ...]
    if isinstance(value, str):
        stripped = value.strip()
        if "," in stripped or ";" in stripped:
            enable = _split_rule_tokens(stripped)
        else:
            enable = stripped or "all"
    elif isinstance(value, list) and all(isinstance(v, str) for v in value):
        enable = _split_rule_list(value)
    else:
        raise ConfigError(f"`{field_name}` must be a string or a list of strings.")
    _validate_rule_tokens((enable,) if isinstance(enable, str) else enable, field_name=field_name)
    return enable


def _parse_severity_table(value: Any, *, field_name: str) -> dict[RuleId, Severity]:
    if not isinstance(value, dict):
        raise ConfigError(f"`{field_name}` must be a table.")
    out: dict[RuleId, Severity] = {}
    for raw_rule_id, raw_severity in value.items():
        rule_id = _normalize_rule_id(str(raw_rule_id))
        if not _RULE_ID_RE.match(rule_id):
            raise ConfigError(f"`{field_name}.{raw_rule_id}` is invalid; expected a rule id like N01.")
        out[rule_id] = _validate_severity(raw_severity, field_name=f"{field_name}.{raw_rule_id}")
    return out


def _parse_rules_patch(value: Any, *, field_name: str) -> RulesConfigPatch:
    if value is None:
        return RulesConfigPatch()
    if not isinstance(value, dict):
        raise ConfigError(f"`{field_name}` must be a table.")

    enable = _parse_enable(value["enable"], field_name=f"{field_name}.enable") if "enable" in value else None

    disable: tuple[str, ...] | None = None
    if "disable" in value:
        disable = _split_rule_list(_validate_str_list(value["disable"], field_name=f"{field_name}.disable"))
        _validate_rule_tokens(disable, field_name=f"{field_name}.disable")

    severity_overrides: dict[RuleId, Severity] | None = None
    for key in ("severity_overrides", "severity-overrides"):
        if key in value:
            severity_overrides = _parse_severity_table(value[key], field_name=f"{field_name}.severity_overrides")

    overrides: dict[RuleId, RuleOverride] = {}
    for key, sub in value.items():
        if key in {"enable", "disable", "severity_overrides", "severity-overrides"}:
            continue
        if not isinstance(sub, dict):
            raise ConfigError(f"`{field_name}.{key}` must be a table.")
        rule_id = _normalize_rule_id(str(key))
        if not _RULE_ID_RE.match(rule_id):
            raise ConfigError(f"`{field_name}.{key}` is invalid; expected a rule id like N01.")
        severity = sub.get("severity")
        overrides[rule_id] = RuleOverride(
            severity=_validate_severity(severity, field_name=f"{field_name}.{key}.severity") if severity is not None else None,
        )

    return RulesConfigPatch(
        enable=enable,
        disable=disable,
        overrides=MappingProxyType(overrides) if overrides else None,
        severity_overrides=MappingProxyType(severity_overrides) if severity_overrides is not None else None,
    )


def _apply_rules_patch(*, base: RulesConfig, patch: RulesConfigPatch) -> RulesConfig:
    enable = patch.enable if patch.enable is not None else base.enable
    disable = patch.disable if patch.disable is not None else base.disable

    overrides: dict[RuleId, RuleOverride] = dict(base.overrides)
    if patch.overrides is not None:
        overrides.update(patch.overrides)

    severity_overrides: dict[RuleId, Severity] = dict(base.severity_overrides)
    if patch.severity_overrides is not None:
        severity_overrides.update(patch.severity_overrides)

    return RulesConfig(
        enable=enable,
        disable=disable,
        overrides=MappingProxyType(overrides),
        severity_overrides=MappingProxyType(severity_overrides),
    )


def _normalize_override_prefix(value: str, *, field_name: str) -> str:
    prefix = value.strip().replace("\\", "/")
    if prefix.startswith("./"):
        prefix = prefix[2:]
    if prefix.startswith("/"):
        raise ConfigError(f"`{field_name}` must be a relative path prefix (no leading '/').")
    if not prefix:
        raise ConfigError(f"`{field_name}` must not be empty.")
    if ".." in Path(prefix).parts:
        raise ConfigError(f"`{field_name}` must not contain '..' segments.")
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


def _parse_directory_overrides(value: Any, *, base_rules: RulesConfig, prefix: str) -> Mapping[str, RulesConfig]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, dict):
        raise ConfigError(f"`{prefix}overrides` must be a table.")

    out: dict[str, RulesConfig] = {}
    for raw_prefix, raw_table in value.items():
        field_name = f"{prefix}overrides.{raw_prefix}"
        if not isinstance(raw_table, dict):
            raise ConfigError(f"`{field_name}` must be a table.")
        rules_table = raw_table.get("rules")
        if rules_table is None:
            continue

        normalized_prefix = _normalize_override_prefix(str(raw_prefix), field_name=field_name)
        if normalized_prefix in out:
            raise ConfigError(f"`{field_name}` duplicates another override prefix after normalization: {normalized_prefix!r}.")

        patch = _parse_rules_patch(rules_table, field_name=f"{field_name}.rules")
        out[normalized_prefix] = _apply_rules_patch(base=base_rules, patch=patch)

    return MappingProxyType(out)


def _split_rule_tokens(value: str) -> tuple[str, ...]:
    parts = []
    for raw in value.replace(";", ",").split(","):
        token = raw.strip()
        if token:
            parts.append(token)
    return tuple(parts)


def _split_rule_list(values: Iterable[str]) -> tuple[str, ...]:
    parts: list[str] = []
    for raw in values:
        parts.extend(_split_rule_tokens(raw))
    return tuple(parts)


def _validate_rule_tokens(tokens: Iterable[str], *, field_name: str) -> None:
    for token in tokens:
        stripped = token.strip()
        if not stripped:
            continue
        if _normalize_group(stripped) in DEFAULT_RULE_GROUPS:
            continue
        if _RULE_ID_RE.match(_normalize_rule_id(stripped)):
            continue

        groups = ", ".join(sorted(DEFAULT_RULE_GROUPS))
        raise ConfigError(
            f"`{field_name}` contains unknown rule group or invalid rule id: {token!r}. "
            f"Valid groups: {groups}. Valid ids look like N01/L03."
        )


def _parse_ignore_config(value: Any, *, prefix: str) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"`{prefix}ignore` must be a table.")
    return IgnoreConfig(paths=_validate_str_list(value.get("paths", []), field_name=f"{prefix}ignore.paths"))


def _parse_style_config(value: Any, *, prefix: str) -> StyleConfig:
    if value is None:
        return StyleConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"`{prefix}style` must be a table.")

    pch = DEFAULT_PCH_PATTERNS
    if "pch" in value:
        pch = tuple(p for p in _validate_str_list(value["pch"], field_name=f"{prefix}style.pch") if p)

    max_run = value.get("max-acronym-run", value.get("max_acronym_run", DEFAULT_MAX_ACRONYM_RUN))
    if not isinstance(max_run, int) or isinstance(max_run, bool):
        raise ConfigError(f"`{prefix}style.max-acronym-run` must be an integer.")
    if max_run < 1:
        raise ConfigError(f"`{prefix}style.max-acronym-run` must be >= 1.")

    return StyleConfig(pch=pch, max_acronym_run=max_run)


def compute_enabled_rule_ids(
    rules: RulesConfig,
    *,
    available_rule_ids: Iterable[RuleId] | None = None,
) -> set[RuleId]:
    """
    Resolve the final enabled rules set from `rules.enable` + `rules.disable`.

    - `enable = "all"` enables every known rule (plugins included when
      `available_rule_ids` is given).
    - `enable = ["naming", "L01"]` enables group(s) and/or explicit IDs.
    - `disable = ["L04"]` disables specific IDs (or groups).

    If `available_rule_ids` is provided, the result is intersected with it.
    """

    available: set[RuleId] | None = set(available_rule_ids) if available_rule_ids is not None else None
    everything = available if available is not None else set(DEFAULT_RULE_GROUPS["all"])

    enable_tokens = (rules.enable,) if isinstance(rules.enable, str) else rules.enable

    enabled: set[RuleId] = set()
    for token in enable_tokens:
        group = _normalize_group(token)
        if group == "all":
            enabled.update(everything)
        elif group in DEFAULT_RULE_GROUPS:
            enabled.update(DEFAULT_RULE_GROUPS[group])
        else:
            enabled.add(_normalize_rule_id(token))

    for token in rules.disable:
        group = _normalize_group(token)
        if group == "all":
            enabled.difference_update(everything)
        elif group in DEFAULT_RULE_GROUPS:
            enabled.difference_update(DEFAULT_RULE_GROUPS[group])
        else:
            enabled.discard(_normalize_rule_id(token))

    if available is not None:
        enabled.intersection_update(available)

    return enabled


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style relative path from `project_root`.

    Supported patterns:
    - Directory prefixes: "ThirdParty/" matches "ThirdParty/..." under root.
    - Globs without slashes: "*.generated.h" matches basenames.
    - Globs with slashes: "Source/**/Intermediate/*.h" matches full relative paths.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    basename = relative.name

    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        elif fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern):
            return True

    return False
