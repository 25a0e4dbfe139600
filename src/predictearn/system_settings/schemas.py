"""Request/response schemas for system settings endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SettingsResponse(BaseModel):
    """Effective values, keyed by setting name."""

    settings: dict[str, int]


class SettingUpdateRequest(BaseModel):
    setting_value: int = Field(..., gt=0)
