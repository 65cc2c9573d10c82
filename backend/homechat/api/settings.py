"""
Runtime settings API endpoints.

Settings are a flat string key/value map edited from the UI. The site
password hash shares the table but is never exposed or written here.
"""

from typing import Any

from fastapi import APIRouter

from homechat.api.deps import CurrentSession, SettingRepo
from homechat.models.enums import SettingKey

router = APIRouter()

_HIDDEN_KEYS = {SettingKey.AUTH_PASSWORD.value}


@router.get("", response_model=dict[str, str])
async def get_settings_map(_session: CurrentSession, repo: SettingRepo):
    values = await repo.get_all()
    return {key: value for key, value in values.items() if key not in _HIDDEN_KEYS}


@router.post("")
async def update_settings(updates: dict[str, Any], _session: CurrentSession, repo: SettingRepo):
    """Upsert each pair; values are stored as strings."""
    values = {
        key: _to_setting_value(value)
        for key, value in updates.items()
        if key not in _HIDDEN_KEYS
    }
    await repo.set_many(values)
    return {"success": True}


def _to_setting_value(value: Any) -> str:
    # Match how the UI reads booleans back ("true"/"false")
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)
