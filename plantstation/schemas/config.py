"""
Plant Config Schemas
====================

Request schema for updating a plant's watering configuration. Field names
match the JSON keys of the plant config file and the web UI.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator


class PlantConfigUpdate(BaseModel):
    """Partial update of one plant's config; omitted fields keep their value."""

    model_config = ConfigDict(extra="forbid")

    hour: Optional[StrictInt] = Field(default=None, ge=0, le=23, description="Hour of day to water (0-23)")
    start: Optional[StrictInt] = Field(default=None, ge=0, description="Minimum watering time in ms")
    max: Optional[StrictInt] = Field(default=None, ge=0, description="Maximum watering time in ms")
    low: Optional[StrictInt] = Field(default=None, ge=0, description="Weight at or below which watering is due")
    dst: Optional[StrictInt] = Field(default=None, ge=0, description="Target weight after watering")
    range: Optional[StrictInt] = Field(default=None, ge=0, description="Tolerated weight range")

    @model_validator(mode="after")
    def check_start_le_max(self) -> "PlantConfigUpdate":
        if self.start is not None and self.max is not None and self.start > self.max:
            raise ValueError("start must not exceed max")
        return self

    def changes(self) -> dict[str, int]:
        """Only the fields present in the request."""
        return self.model_dump(exclude_none=True)
