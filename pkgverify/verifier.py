"""Evaluates a NormalizedConfig against the package tree on disk."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar, Union, assert_never

from .events import Observer, VerificationEvent
from .models import (
    DeriveCheck,
    DeriveConfig,
    DeriveRule,
    FileCheck,
    GroupCheck,
    NormalizedConfig,
    PatternCheck,
    Severity,
    Summary,
    UnexpectedFile,
    VerificationResult,
)
from .paths import canonical_relative, list_files, path_exists, resolve_under

DEFAULT_CONCURRENCY = 16

_T = TypeVar("_T")


def _tally(severity: Severity) -> Tuple[int, int]:
    """Return the (errors, warnings) increment for one unsatisfied check."""
    if severity is Severity.ERROR:
        return 1, 0
    if severity is Severity.WARN:
        return 0, 1
    if severity is Severity.IGNORE:
        return 0, 0
    assert_never(severity)


@dataclass
class _ResultBuilder:
    """Mutable accumulator owned by a single verification run."""

    files: List[FileCheck] = field(default_factory=list)
    patterns: List[PatternCheck] = field(default_factory=list)
    at_least_one: List[GroupCheck] = field(default_factory=list)
    derive: List[DeriveCheck] = field(default_factory=list)
    unexpected: List[UnexpectedFile] = field(default_factory=list)
    errors: int = 0
    warnings: int = 0

    def apply_policy(self, satisfied: bool, severity: Severity) -> None:
        if satisfied:
            return
        errors, warnings = _tally(severity)
        self.errors += errors
        self.warnings += warnings

    def allowed_files(self) -> Set[str]:
        allowed: Set[str] = set()
        allowed.update(check.relative for check in self.files if check.exists)
        for pattern in self.patterns:
            allowed.update(pattern.matches)
        for group in self.at_least_one:
            allowed.update(member.relative for member in group.group if member.exists)
        allowed.update(
            check.target for check in self.derive if check.exists and check.target is not None
        )
        return allowed

    def build(self) -> VerificationResult:
        return VerificationResult(
            files=tuple(self.files),
            patterns=tuple(self.patterns),
            at_least_one=tuple(self.at_least_one),
            derive=tuple(self.derive),
            unexpected=tuple(self.unexpected),
            summary=Summary(errors=self.errors, warnings=self.warnings),
        )


@dataclass(frozen=True)
class _PlannedTarget:
    source: str
    mode: str
    target: str
    absolute: Path


_DerivePlanItem = Union[_PlannedTarget, DeriveCheck]


def split_source_path(rel_path: str) -> Tuple[str, str, str]:
    """Return the ``{dir}``, ``{name}`` and ``{ext}`` values for a source path."""
    directory, _, basename = rel_path.rpartition("/")
    stem, dot, suffix = basename.rpartition(".")
    if dot and suffix:
        return directory, stem, suffix
    return directory, basename, ""


def expand_template(template: str, rel_path: str) -> str:
    directory, name, ext = split_source_path(rel_path)
    expanded = template.replace("{dir}", directory).replace("{name}", name).replace("{ext}", ext)
    return canonical_relative(expanded)


def select_rule(rules: Sequence[DeriveRule], rel_path: str) -> Tuple[Optional[DeriveRule], Optional[str]]:
    """Pick the rule for ``rel_path``; ambiguity is reported, never resolved.

    Returns ``(rule, None)`` on success or ``(None, reason)`` on failure.
    """
    matching = [rule for rule in rules if rel_path in rule.match]
    if len(matching) > 1:
        return None, "multiple matching rules"
    if matching:
        return matching[0], None
    defaults = [rule for rule in rules if rule.default]
    if not defaults:
        return None, "no default rule"
    if len(defaults) > 1:
        return None, "multiple default rules"
    return defaults[0], None


class TreeVerifier:
    """Runs the expectation, derivation and unexpected-file passes for one config."""

    def __init__(
        self,
        config: NormalizedConfig,
        observer: Optional[Observer] = None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.config = config
        self.observer = observer
        self.concurrency = concurrency
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._listings: Dict[Path, asyncio.Future[List[str]]] = {}

    async def verify(self) -> VerificationResult:
        """Evaluate every check and return the frozen result.

        Expectation failures are recorded, not raised. FilesystemError
        propagates when a required directory cannot be listed.
        """
        self._semaphore = asyncio.Semaphore(self.concurrency)
        self._listings = {}
        builder = _ResultBuilder()
        config = self.config

        self._emit("stage", "Starting package verification ...")
        self._emit("stage", f"Package root: {config.package_root}")

        self._emit("stage", "Step 1 / 3: Checking expected files, patterns, and groups ...")
        await self._check_files(builder)
        await self._check_patterns(builder)
        await self._check_groups(builder)

        self._emit("stage", "Step 2 / 3: Checking derived files ...")
        if config.derive is not None:
            await self._check_derive(builder, config.derive)

        self._emit("stage", "Step 3 / 3: Checking for unexpected files ...")
        await self._check_unexpected(builder)

        result = builder.build()
        self._emit(
            "stage",
            f"Verification finished: {result.summary.errors} error(s), "
            f"{result.summary.warnings} warning(s)",
        )
        return result

    async def _check_files(self, builder: _ResultBuilder) -> None:
        severity = self.config.policy.missing_expected
        files = self.config.expect.files
        flags = await asyncio.gather(*(self._exists(item.absolute) for item in files))
        for item, exists in zip(files, flags):
            builder.files.append(
                FileCheck(relative=item.relative, absolute=item.absolute, exists=exists, severity=severity)
            )
            builder.apply_policy(exists, severity)
            self._emit("file", item.relative, ok=exists, severity=severity)

    async def _check_patterns(self, builder: _ResultBuilder) -> None:
        severity = self.config.policy.empty_pattern
        patterns = self.config.expect.patterns
        listings = await asyncio.gather(*(self._list(pattern.base) for pattern in patterns))
        for pattern, listing in zip(patterns, listings):
            matches = tuple(path for path in listing if pattern.regex.fullmatch(path))
            exists = bool(matches)
            builder.patterns.append(
                PatternCheck(
                    pattern=pattern.pattern,
                    base=pattern.base,
                    regex=pattern.regex,
                    exists=exists,
                    matches=matches,
                    severity=severity,
                )
            )
            builder.apply_policy(exists, severity)
            self._emit(
                "pattern",
                f"pattern: {pattern.pattern} -> {', '.join(matches)}",
                ok=exists,
                severity=severity,
            )

    async def _check_groups(self, builder: _ResultBuilder) -> None:
        severity = self.config.policy.missing_expected
        groups = self.config.expect.at_least_one
        group_flags = await asyncio.gather(
            *(asyncio.gather(*(self._exists(member.absolute) for member in group)) for group in groups)
        )
        for group, flags in zip(groups, group_flags):
            members = tuple(
                FileCheck(relative=member.relative, absolute=member.absolute, exists=exists, severity=severity)
                for member, exists in zip(group, flags)
            )
            valid = any(member.exists for member in members)
            for member in members:
                self._emit("group", f"(group) {member.relative}", ok=member.exists, severity=severity)
            builder.at_least_one.append(GroupCheck(group=members, valid=valid, severity=severity))
            builder.apply_policy(valid, severity)

    async def _check_derive(self, builder: _ResultBuilder, derive: DeriveConfig) -> None:
        severity = self.config.policy.derive_failure
        listing = await self._list(derive.source_root)
        candidates = [
            path
            for path in listing
            if derive.include.matches(path) and not any(ex.matches(path) for ex in derive.exclude)
        ]

        plan: List[_DerivePlanItem] = []
        for source in candidates:
            rule, failure = select_rule(derive.rules, source)
            if rule is None:
                plan.append(self._derive_failure(source, None, failure or "no rule", severity))
                continue
            templates = derive.targets.get(rule.mode)
            if templates is None:
                plan.append(
                    self._derive_failure(source, rule.mode, f'no targets for mode "{rule.mode}"', severity)
                )
                continue
            for template in templates:
                target = expand_template(template, source)
                plan.append(
                    _PlannedTarget(
                        source=source,
                        mode=rule.mode,
                        target=target,
                        absolute=resolve_under(self.config.package_root, target),
                    )
                )

        planned = [item for item in plan if isinstance(item, _PlannedTarget)]
        flags = await asyncio.gather(*(self._exists(item.absolute) for item in planned))
        probes = iter(flags)

        for item in plan:
            if isinstance(item, DeriveCheck):
                builder.derive.append(item)
                builder.apply_policy(False, severity)
                self._emit(
                    "derive",
                    f"{item.failure} for {item.source}",
                    ok=False,
                    severity=severity,
                )
                continue
            exists = next(probes)
            builder.derive.append(
                DeriveCheck(
                    source=item.source,
                    mode=item.mode,
                    target=item.target,
                    absolute=item.absolute,
                    exists=exists,
                    severity=severity,
                )
            )
            builder.apply_policy(exists, severity)
            self._emit("derive", f"(derive: {item.mode}) {item.target}", ok=exists, severity=severity)

    async def _check_unexpected(self, builder: _ResultBuilder) -> None:
        severity = self.config.policy.unexpected_files
        if severity is Severity.IGNORE:
            return

        allowed = builder.allowed_files()
        package_root = self.config.package_root
        for rel_path in await self._list(package_root):
            if rel_path in allowed:
                continue
            builder.unexpected.append(
                UnexpectedFile(relative=rel_path, absolute=resolve_under(package_root, rel_path), severity=severity)
            )
            builder.apply_policy(False, severity)
            self._emit("unexpected", rel_path, ok=False, severity=severity)

    @staticmethod
    def _derive_failure(source: str, mode: Optional[str], reason: str, severity: Severity) -> DeriveCheck:
        return DeriveCheck(
            source=source,
            mode=mode,
            target=None,
            absolute=None,
            exists=False,
            severity=severity,
            failure=reason,
        )

    async def _run_blocking(self, func: Callable[..., _T], *args: object) -> _T:
        assert self._semaphore is not None
        async with self._semaphore:
            return await asyncio.to_thread(func, *args)

    async def _exists(self, path: Path) -> bool:
        return await self._run_blocking(path_exists, path)

    async def _list(self, base: Path) -> List[str]:
        # Listings are shared by every pass within one run.
        listing = self._listings.get(base)
        if listing is None:
            listing = asyncio.ensure_future(self._run_blocking(list_files, base))
            self._listings[base] = listing
        return await listing

    def _emit(
        self,
        kind: str,
        message: str,
        *,
        ok: Optional[bool] = None,
        severity: Optional[Severity] = None,
    ) -> None:
        if self.observer is not None:
            self.observer(VerificationEvent(kind=kind, message=message, ok=ok, severity=severity))


async def verify(
    config: NormalizedConfig,
    observer: Optional[Observer] = None,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> VerificationResult:
    """Verify ``config`` against the filesystem."""
    return await TreeVerifier(config, observer, concurrency=concurrency).verify()


__all__ = [
    "DEFAULT_CONCURRENCY",
    "TreeVerifier",
    "expand_template",
    "select_rule",
    "split_source_path",
    "verify",
]
