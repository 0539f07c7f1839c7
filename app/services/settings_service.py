"""
TDMS Analytics - Settings Service

Runtime toggles stored in the system_settings table.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.system_setting import AUTO_APPROVAL_KEY, SystemSetting

logger = logging.getLogger(__name__)


_TRUE_VALUES = ("true", "1", "yes", "on")


class SettingsService:
    """Reads and writes system settings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, key: str) -> Optional[SystemSetting]:
        result = await self.db.execute(select(SystemSetting).where(SystemSetting.key == key))
        return result.scalar_one_or_none()

    async def get_auto_approval(self) -> bool:
        """Stored auto-approval flag, or the configured default when unset."""
        setting = await self._get(AUTO_APPROVAL_KEY)
        if setting is None or setting.value is None:
            return settings.auto_approval_default
        return setting.value.strip().lower() in _TRUE_VALUES

    async def set_auto_approval(self, enabled: bool) -> bool:
        setting = await self._get(AUTO_APPROVAL_KEY)
        value = "true" if enabled else "false"
        if setting is None:
            self.db.add(SystemSetting(key=AUTO_APPROVAL_KEY, value=value))
        else:
            setting.value = value
        await self.db.commit()

        logger.info(f"Auto-approval set to {value}")
        return enabled
