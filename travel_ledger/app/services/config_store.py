"""
Config store.

The single app_config row. Created from settings on first read; the posting
engine only ever reads `default_roe` from it.
"""

import logging
from typing import Any, Dict

from travel_ledger.app.core.config import settings
from travel_ledger.app.core.exceptions import ValidationError
from travel_ledger.app.db.unit_of_work import UnitOfWork
from travel_ledger.app.models.app_config import AppConfig
from travel_ledger.app.services.audit import AuditAction, log_event

logger = logging.getLogger("travel_ledger.config")

DEFAULT_BANKS = [
    {"id": "bank1", "name": "Al Rajhi Bank", "account_number": "SA123456789"},
    {"id": "bank2", "name": "Meezan Bank", "account_number": "PK987654321"},
]


def default_config() -> AppConfig:
    return AppConfig(
        company_name=settings.company_name,
        app_subtitle=settings.app_subtitle,
        company_address=settings.company_address,
        company_phone=settings.company_phone,
        company_logo=None,
        default_roe=settings.default_roe,
        banks=[dict(bank) for bank in DEFAULT_BANKS],
    )


async def load_config(uow: UnitOfWork) -> AppConfig:
    """Return the config row, creating it from settings when absent (caller commits)."""
    config = await uow.config.get()
    if config is None:
        config = await uow.config.save(default_config())
        logger.info("Created default app config for %s", config.company_name)
    return config


async def update_config(uow: UnitOfWork, changes: Dict[str, Any]) -> AppConfig:
    """Apply a partial update. Omitted fields keep their current value."""
    config = await load_config(uow)

    if "company_name" in changes and not (changes["company_name"] or "").strip():
        raise ValidationError("company_name", "Company name is required")
    if "default_roe" in changes and (changes["default_roe"] is None or changes["default_roe"] <= 0):
        raise ValidationError("default_roe", "Default exchange rate must be greater than zero")
    if "banks" in changes and changes["banks"] is None:
        raise ValidationError("banks", "Bank list cannot be null")

    for field_name, value in changes.items():
        setattr(config, field_name, value)
    await uow.config.save(config)

    await log_event(uow.session, AuditAction.CONFIG_UPDATED, "config", str(config.id), {
        "fields": sorted(changes),
    })
    return config
