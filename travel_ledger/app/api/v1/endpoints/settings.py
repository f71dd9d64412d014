"""
Settings API Endpoints.

Company identity, default exchange rate and bank list.
"""

from fastapi import APIRouter, Depends
from travel_ledger.app.core.dependencies import get_uow_factory
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.schemas.settings import AppConfigResponse, AppConfigUpdate
from travel_ledger.app.services.config_store import load_config, update_config

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=AppConfigResponse)
async def get_settings(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)):
    async with uow_factory() as uow:
        config = await load_config(uow)
        await uow.commit()
    return AppConfigResponse.model_validate(config)


@router.put("", response_model=AppConfigResponse)
async def put_settings(
    config_data: AppConfigUpdate,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """Update settings. Omitted fields keep their current values."""
    async with uow_factory() as uow:
        config = await update_config(uow, config_data.model_dump(exclude_unset=True))
        await uow.commit()
    return AppConfigResponse.model_validate(config)
