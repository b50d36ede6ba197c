"""Per-request relay context and stage tracking."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

from chatrelay.util.logger import logger

RECEIVED = "received"
VALIDATING = "validating"
ACQUIRING_TOKEN = "acquiring_token"
INVOKING = "invoking"
NORMALIZING = "normalizing"
RESPONDING = "responding"
FAILED = "failed"


def new_request_id() -> str:
    return f"chat-{uuid.uuid4().hex[:16]}"


@dataclass(slots=True)
class RequestContext:
    route: str
    profile: str
    request_id: str = field(default_factory=new_request_id)
    stage: str = RECEIVED
    failure_kind: str = ""
    started_at: float = field(default_factory=time.perf_counter)
    stages: list[str] = field(default_factory=lambda: [RECEIVED])

    def advance(self, stage: str, **fields: object) -> None:
        self.stage = stage
        self.stages.append(stage)
        logger.info(
            "event=relay_stage request_id=%s route=%s profile=%s stage=%s elapsed_ms=%.1f payload=%s",
            self.request_id,
            self.route,
            self.profile,
            stage,
            self.elapsed_ms(),
            fields,
        )

    def fail(self, kind: str, **fields: object) -> None:
        self.failure_kind = kind
        self.advance(FAILED, kind=kind, **fields)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000.0
