from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from stylesentinel.rules.base import BaseRule

logger = logging.getLogger(__name__)


class PluginLoadError(RuntimeError):
    """Raised when a configured plugin cannot be imported or doesn't expose rules."""


def load_plugin_rules(plugin_specs: Iterable[str]) -> list[BaseRule]:
    """
    Import rules from `module` or `module:attr` specs.

    A module exports `stylesentinel_rules()` or `RULES`; an attribute may be a
    callable returning rules or a list/tuple of `BaseRule` instances.
    """

    rules: list[BaseRule] = []
    for raw_spec in plugin_specs:
        spec = raw_spec.strip()
        if not spec:
            continue
        loaded = _load_one(spec)
        logger.debug("loaded %d rule(s) from plugin %s", len(loaded), spec)
        rules.extend(loaded)
    return rules


def _load_one(spec: str) -> list[BaseRule]:
    module_name, sep, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"Failed to import plugin module {module_name!r}: {exc}") from exc

    if sep:
        try:
            obj: Any = getattr(module, attr)
        except AttributeError as exc:
            raise PluginLoadError(f"Plugin module {module_name!r} has no attribute {attr!r}") from exc
    else:
        obj = module
    return list(_extract_rules(obj))


def _extract_rules(obj: Any) -> Iterable[BaseRule]:
    if isinstance(obj, ModuleType):
        if hasattr(obj, "stylesentinel_rules"):
            return _extract_rules(obj.stylesentinel_rules)
        if hasattr(obj, "RULES"):
            return _extract_rules(obj.RULES)
        raise PluginLoadError(f"Plugin module {obj.__name__!r} must define `stylesentinel_rules()` or `RULES`.")

    if isinstance(obj, BaseRule):
        return [obj]

    if callable(obj):
        try:
            produced = obj()
        except Exception as exc:  # noqa: BLE001
            raise PluginLoadError(f"Plugin rule factory raised: {exc}") from exc
        return _extract_rules(produced)

    if isinstance(obj, list | tuple):
        out: list[BaseRule] = []
        for item in obj:
            if not isinstance(item, BaseRule):
                raise PluginLoadError(f"Plugin rules must be BaseRule instances, got: {type(item).__name__}")
            out.append(item)
        return out

    raise PluginLoadError(f"Unsupported plugin export type: {type(obj).__name__}")
