"""
Input data models for the Position Predictor.

These models represent the slider readings submitted by the page or by
API clients.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlayerAttributes(BaseModel):
    """
    Player attribute readings (one per slider).

    Range checks against ATTRIBUTE_MIN/ATTRIBUTE_MAX happen in the predictor,
    which knows the configured slider range. Only finite numbers are accepted
    here.
    """

    model_config = ConfigDict(extra="forbid")

    pace: float = Field(..., allow_inf_nan=False, description="Pace rating", examples=[70])
    shooting: float = Field(..., allow_inf_nan=False, description="Shooting rating", examples=[70])
    passing: float = Field(..., allow_inf_nan=False, description="Passing rating", examples=[70])
    defending: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Defending rating (only used by 4-input models)",
        examples=[55],
    )

    def value_of(self, feature: str) -> Optional[float]:
        """Reading for a feature name, or None if the field is unset or unknown."""
        return getattr(self, feature, None)
