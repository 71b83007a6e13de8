"""Strict schema baselines with forbidden extras by default."""

from datetime import time

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def hhmm(value: time) -> str:
    """Wall-clock times travel as HH:MM on the wire."""
    return value.strftime("%H:%M")
