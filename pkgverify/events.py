"""Structured events emitted by the tree verifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .logging import check_level, check_tag, get_logger
from .models import Severity


@dataclass(frozen=True)
class VerificationEvent:
    """A single progress or check notification.

    ``ok`` is None for stage notifications and a boolean for checks.
    """

    kind: str
    message: str
    ok: Optional[bool] = None
    severity: Optional[Severity] = None


Observer = Callable[[VerificationEvent], None]


class LoggingObserver:
    """Renders verifier events through the pkgverify logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("verifier")

    def __call__(self, event: VerificationEvent) -> None:
        if event.ok is None:
            self.logger.info(event.message)
            return
        self.logger.log(
            check_level(event.severity, event.ok),
            event.message,
            extra={"check_tag": check_tag(event.kind, event.ok)},
        )


class CollectingObserver:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: List[VerificationEvent] = []

    def __call__(self, event: VerificationEvent) -> None:
        self.events.append(event)


__all__ = ["CollectingObserver", "LoggingObserver", "Observer", "VerificationEvent"]
