"""Configuration models for the MPC engine and the transport."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Reserved id of the dealer / coordinating party.
DEALER = 999

Mode = Literal["joint", "local"]


class MPCConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    n: int = Field(ge=1, description="Total number of parties")
    k: int = Field(ge=1, description="Reconstruction threshold")
    rand_mode: Mode = Field(
        default="joint",
        description="joint: parties sum re-shared random contributions, "
        "local: every party samples its own fragment",
    )
    inverse_mode: Mode = Field(
        default="joint",
        description="joint: masked inversion, local: invert the own fragment",
    )

    @model_validator(mode="after")
    def _check_threshold(self) -> "MPCConfig":
        if self.k > self.n:
            raise ValueError(f"threshold k={self.k} exceeds number of parties n={self.n}")
        if self.n >= DEALER:
            raise ValueError(f"party ids 1..{self.n} would include the dealer id {DEALER}")
        # degree reduction after a multiplication needs 2(k-1) < n
        if self.n < 2 * self.k - 1:
            raise ValueError(f"multiplication needs n >= 2k-1, got n={self.n} k={self.k}")
        return self

    @property
    def parties(self) -> range:
        return range(1, self.n + 1)


class TransportConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout: Optional[float] = Field(
        default=30.0, gt=0, description="Seconds to wait for a peer value, None waits forever"
    )
    retries: int = Field(default=3, ge=1, description="Attempts on transport failures")
    backoff_min: float = Field(default=0.05, ge=0)
    backoff_max: float = Field(default=2.0, ge=0)


DEFAULT_TRANSPORT_CONFIG = TransportConfig()
