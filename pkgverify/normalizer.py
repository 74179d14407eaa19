"""Turns a raw manifest mapping into a fully resolved NormalizedConfig."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ManifestError
from .models import (
    CompiledPattern,
    DeriveConfig,
    DeriveRule,
    ExpectedPath,
    Expectations,
    NormalizedConfig,
    Policy,
    Severity,
)
from .paths import canonical_relative, compile_glob, compile_matcher, resolve_under

_SEVERITIES = {severity.value: severity for severity in Severity}


def resolve_severity(value: Any, fallback: Severity) -> Severity:
    """Case-insensitively map ``value`` to a Severity, else return ``fallback``."""
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str):
        return fallback
    return _SEVERITIES.get(value.lower(), fallback)


def normalize(
    manifest: Mapping[str, Any], working_directory: str | Path | None = None
) -> NormalizedConfig:
    """Resolve paths, policy defaults, and matchers. Performs no filesystem access."""
    if not isinstance(manifest, Mapping):
        raise ManifestError("Manifest must contain a mapping at the root")

    cwd = os.path.abspath(working_directory if working_directory is not None else os.getcwd())
    package_root_value = _as_dict(manifest.get("context")).get("packageRoot")
    if not isinstance(package_root_value, str) or not package_root_value.strip():
        raise ManifestError("Manifest is missing context.packageRoot")
    package_root = Path(os.path.normpath(os.path.join(cwd, package_root_value)))

    policy = _normalize_policy(_as_dict(manifest.get("policy")))
    expect = _normalize_expect(_as_dict(manifest.get("expect")), package_root)
    derive = _normalize_derive(_as_dict(manifest.get("derive")), cwd)

    return NormalizedConfig(package_root=package_root, policy=policy, expect=expect, derive=derive)


def _normalize_policy(data: Mapping[str, Any]) -> Policy:
    on = _as_dict(data.get("on"))
    return Policy(
        default_severity=resolve_severity(data.get("defaultSeverity"), Severity.ERROR),
        unexpected_files=resolve_severity(data.get("unexpectedFiles"), Severity.WARN),
        missing_expected=resolve_severity(on.get("missingExpected"), Severity.ERROR),
        empty_pattern=resolve_severity(on.get("emptyPattern"), Severity.WARN),
        derive_failure=resolve_severity(on.get("deriveFailure"), Severity.WARN),
        fail_on_warnings=data.get("failOnWarnings") is True,
    )


def _normalize_expect(data: Mapping[str, Any], package_root: Path) -> Expectations:
    files = _resolve_paths(_as_str_list(data.get("files")), package_root)
    patterns = tuple(
        CompiledPattern(pattern=pattern, base=package_root, regex=compile_glob(pattern))
        for pattern in _as_str_list(data.get("patterns"))
    )
    groups_value = data.get("atLeastOne")
    groups: List[Tuple[ExpectedPath, ...]] = []
    if isinstance(groups_value, Sequence) and not isinstance(groups_value, str):
        for group in groups_value:
            groups.append(_resolve_paths(_as_str_list(group), package_root))
    return Expectations(files=files, patterns=patterns, at_least_one=tuple(groups))


def _normalize_derive(data: Mapping[str, Any], cwd: str) -> Optional[DeriveConfig]:
    if not data:
        return None

    sources = _as_dict(data.get("sources"))
    root_value = sources.get("root")
    root = root_value if isinstance(root_value, str) and root_value else "."
    include_value = sources.get("include")
    include = include_value if isinstance(include_value, str) and include_value else "**"

    rules: List[DeriveRule] = []
    rules_value = data.get("rules")
    if isinstance(rules_value, Sequence) and not isinstance(rules_value, str):
        for rule in rules_value:
            rule_data = _as_dict(rule)
            rules.append(
                DeriveRule(
                    mode=str(rule_data.get("mode", "")),
                    match=tuple(canonical_relative(item) for item in _as_str_list(rule_data.get("match"))),
                    default=rule_data.get("default") is True,
                )
            )

    targets: Dict[str, Tuple[str, ...]] = {
        str(mode): tuple(_as_str_list(templates))
        for mode, templates in _as_dict(data.get("targets")).items()
    }

    return DeriveConfig(
        source_root=Path(os.path.normpath(os.path.join(cwd, root))),
        include=compile_matcher(include),
        exclude=tuple(
            compile_matcher(entry, as_prefix=True) for entry in _as_str_list(sources.get("exclude"))
        ),
        rules=tuple(rules),
        targets=targets,
    )


def _resolve_paths(paths: Sequence[str], root: Path) -> Tuple[ExpectedPath, ...]:
    resolved: List[ExpectedPath] = []
    for path in paths:
        relative = canonical_relative(path)
        resolved.append(ExpectedPath(relative=relative, absolute=resolve_under(root, relative)))
    return tuple(resolved)


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [item for item in value if isinstance(item, str)]
    return []


__all__ = ["normalize", "resolve_severity"]
