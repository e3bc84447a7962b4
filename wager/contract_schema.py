"""Validation schema for wager contract configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class RulesConfig(BaseModel):
    undo_allowed: bool = Field(False, description="Whether undo is available during a wagered run.")
    hint_allowed: bool = Field(True, description="Whether hints are available; each costs PI.")
    draw_mode: Literal[1, 3] = Field(3, description="Cards turned per stock draw.")


class ThresholdConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    partial: int
    pass_: int = Field(alias="pass")
    great: int
    exceptional: int

    @model_validator(mode="after")
    def ensure_ascending(self) -> "ThresholdConfig":
        problems = []
        if self.partial >= self.pass_:
            problems.append(f"partial ({self.partial}) must be < pass ({self.pass_})")
        if self.pass_ >= self.great:
            problems.append(f"pass ({self.pass_}) must be < great ({self.great})")
        if self.great >= self.exceptional:
            problems.append(f"great ({self.great}) must be < exceptional ({self.exceptional})")
        if problems:
            raise ValueError("; ".join(problems))
        return self


class PayoutConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fail: float = Field(0.0, ge=0, description="Multiplier paid on a failed run.")
    partial: float = Field(ge=0)
    pass_: float = Field(alias="pass", ge=0)
    great: float = Field(ge=0)
    exceptional: float = Field(ge=0)


class ContractConfig(BaseModel):
    id: str
    mode: Literal["classicClear", "scoreTarget"]
    timer_seconds: int = Field(gt=0, description="Match length in seconds.")
    rules: RulesConfig = Field(default_factory=RulesConfig)
    stake_tiers: list[int]
    thresholds: dict[int, ThresholdConfig]
    payouts: PayoutConfig

    @field_validator("stake_tiers")
    def validate_stake_tiers(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("Must have at least one stake tier.")
        for index, tier in enumerate(value):
            if tier <= 0:
                raise ValueError(f"Stake tier at index {index} must be positive.")
            if index > 0 and tier <= value[index - 1]:
                raise ValueError("Stake tiers must be sorted ascending without duplicates.")
        return value

    @field_validator("thresholds")
    def validate_threshold_coverage(
        cls, value: dict[int, ThresholdConfig], info: ValidationInfo
    ) -> dict[int, ThresholdConfig]:
        tiers = info.data.get("stake_tiers")
        if tiers is None:
            return value
        missing = [tier for tier in tiers if tier not in value]
        if missing:
            raise ValueError(f"Missing thresholds for stake(s) {', '.join(str(tier) for tier in missing)}.")
        return value
