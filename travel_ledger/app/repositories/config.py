"""
SQL config repository for the single app_config row.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from travel_ledger.app.models.app_config import AppConfig, CONFIG_ROW_ID


class SqlConfigRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self) -> Optional[AppConfig]:
        return await self.session.get(AppConfig, CONFIG_ROW_ID)

    async def save(self, config: AppConfig) -> AppConfig:
        config.id = CONFIG_ROW_ID
        self.session.add(config)
        await self.session.flush()
        return config
