"""Pydantic argument models for the built-in functions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WeatherArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")
