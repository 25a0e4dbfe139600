"""Admin system settings: /api/v1/admin/settings/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, require_admin
from predictearn.database import get_session
from predictearn.system_settings import service
from predictearn.system_settings.schemas import SettingsResponse, SettingUpdateRequest

router = APIRouter(prefix="/api/v1/admin/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings_values(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    return SettingsResponse(settings=await service.get_setting_values(db))


@router.put("/{setting_key}", response_model=SettingsResponse)
async def update_setting(
    setting_key: str,
    body: SettingUpdateRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    await service.update_setting(db, setting_key, body.setting_value)
    return SettingsResponse(settings=await service.get_setting_values(db))
