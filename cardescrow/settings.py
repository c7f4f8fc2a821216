"""
Settings: environment-driven configuration.

    from cardescrow.settings import get_settings

    settings = get_settings()
    settings.fee_rate           # Decimal("0.03")
    settings.auto_confirm_days  # 7

Environment:
    CARDESCROW_DATABASE_URL          SQLAlchemy async URL
    CARDESCROW_FEE_RATE              platform commission on item price
    CARDESCROW_AUTO_CONFIRM_DAYS     deadline stored on shipment
    CARDESCROW_MINIMUM_ITEM_PRICE    smallest accepted item price
    CARDESCROW_PAGE_SIZE             transactions per listing page
    CARDESCROW_DISPATCH_MAX_ATTEMPTS delivery attempts per notification
    CARDESCROW_DISPATCH_BATCH_SIZE   notifications per outbox drain
    CARDESCROW_LOG_LEVEL             DEBUG/INFO/WARNING/ERROR
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EscrowSettings(BaseSettings):
    """Escrow engine configuration."""

    database_url: str = Field(default="sqlite+aiosqlite:///./cardescrow.db")

    fee_rate: Decimal = Field(default=Decimal("0.03"), ge=0, lt=1)
    auto_confirm_days: int = Field(default=7, gt=0)
    minimum_item_price: Decimal = Field(default=Decimal("1"), gt=0)
    page_size: int = Field(default=20, gt=0, le=100)

    dispatch_max_attempts: int = Field(default=5, gt=0)
    dispatch_batch_size: int = Field(default=100, gt=0)

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CARDESCROW_",
        extra="ignore",
    )


@lru_cache
def get_settings() -> EscrowSettings:
    return EscrowSettings()


def configure_logging(settings: EscrowSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ("EscrowSettings", "get_settings", "configure_logging")
