"""Validated parameters for configurable segments."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_MAX_TURNS = 10


class UserSimulationConfig(BaseModel):
    """Limits for a synthetic-user conversation loop.

    max_turns counts user/agent exchanges, each followed by one
    evaluation of the stop criterion.
    """

    model_config = {"extra": "forbid", "frozen": True}

    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1)
