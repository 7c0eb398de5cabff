"""Game configuration models consumed by the dispatch engine."""

from __future__ import annotations

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

ONBOARDING_TEMPLATE_NAME = "onboarding"


class GameTemplateKind(str, Enum):
    """How a game is dispatched. Resolved once from the template row."""

    PAIRING = "pairing"
    ONBOARDING_LINK = "onboarding_link"

    @classmethod
    def from_template_name(cls, template_name: str | None) -> GameTemplateKind:
        if template_name == ONBOARDING_TEMPLATE_NAME:
            return cls.ONBOARDING_LINK
        return cls.PAIRING


class GameSchedule(BaseModel):
    """When a game fires: target days, time of day, timezone and repeat frequency."""

    schedule_type: Literal["weekly", "monthly"]
    scheduled_days: list[int] = Field(min_length=1)
    scheduled_time: str
    timezone: str = "UTC"
    frequency_minutes: int | None = Field(default=None, ge=1)

    @field_validator("scheduled_time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        """Accept ``9:00`` and ``09:00``; store zero-padded ``HH:mm``."""
        match = _TIME_RE.match(value.strip())
        if match is None:
            msg = f"scheduled_time must be HH:mm, got {value!r}"
            raise ValueError(msg)
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    @field_validator("timezone", mode="before")
    @classmethod
    def _default_timezone(cls, value: str | None) -> str:
        return value or "UTC"

    @model_validator(mode="after")
    def _check_day_range(self) -> GameSchedule:
        low, high = (0, 6) if self.schedule_type == "weekly" else (1, 31)
        bad = [d for d in self.scheduled_days if not low <= d <= high]
        if bad:
            msg = f"{self.schedule_type} scheduled_days must be in {low}..{high}, got {bad}"
            raise ValueError(msg)
        return self


class DispatchableGame(BaseModel):
    """Plain snapshot of a game row, safe to use after the DB session closes."""

    id: str
    name: str
    workspace_id: str
    group_id: str
    group_members: list[str] = Field(default_factory=list)
    kind: GameTemplateKind = GameTemplateKind.PAIRING
    schedule: GameSchedule
