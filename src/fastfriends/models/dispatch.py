"""Result types returned by the dispatch engine and response ingestion."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class TickSummary(BaseModel):
    """What one dispatch tick did, for logs, manual triggers and tests."""

    games_evaluated: int = 0
    games_due: int = 0
    games_dispatched: int = 0
    messages_sent: int = 0
    errors: list[str] = Field(default_factory=list)


class IngestOutcome(str, Enum):
    IGNORED = "ignored"
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    UNKNOWN_MESSAGE = "unknown_message"


class IngestResult(BaseModel):
    outcome: IngestOutcome
    action_kind: str | None = None
    points: int = 0
