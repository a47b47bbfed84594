from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True)
class NegotiationTimings:
    """Simulated latencies of the negotiation, in seconds."""

    match_delay: float = 0.0
    quote_delay: tuple[float, float] = (2.0, 5.0)
    revision_delay: float = 2.0
    dispatch_delay: float = 0.0
    service_duration: float = 15.0
    completed_linger: float = 3.0

    @classmethod
    def from_env(cls) -> Self:
        default = cls()
        return cls(
            match_delay=float(
                os.environ.get("ROADSIDE_MATCH_DELAY", default.match_delay)
            ),
            quote_delay=(
                float(os.environ.get("ROADSIDE_QUOTE_DELAY_MIN", default.quote_delay[0])),
                float(os.environ.get("ROADSIDE_QUOTE_DELAY_MAX", default.quote_delay[1])),
            ),
            revision_delay=float(
                os.environ.get("ROADSIDE_REVISION_DELAY", default.revision_delay)
            ),
            dispatch_delay=float(
                os.environ.get("ROADSIDE_DISPATCH_DELAY", default.dispatch_delay)
            ),
            service_duration=float(
                os.environ.get("ROADSIDE_SERVICE_DURATION", default.service_duration)
            ),
            completed_linger=float(
                os.environ.get("ROADSIDE_COMPLETED_LINGER", default.completed_linger)
            ),
        )

    @classmethod
    def instant(cls) -> Self:
        return cls(
            match_delay=0.0,
            quote_delay=(0.0, 0.0),
            revision_delay=0.0,
            dispatch_delay=0.0,
            service_duration=0.0,
            completed_linger=0.0,
        )
