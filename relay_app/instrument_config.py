"""Instrument catalog loaded from instruments.yaml.

Example:

    instruments:
      - symbol: XAUTUSDT
        asset_type: GOLD
      - symbol: PAXGUSDT
        asset_type: GOLD
      - symbol: BTCUSDT
        asset_type: CRYPTO

Symbols from the GOLD_INSTRUMENTS / CRYPTO_INSTRUMENTS settings are added on
top of the file. No file = settings only.
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from relay_app.config import Settings
from relay_core.alerts import InstrumentCatalog
from relay_core.models import AssetType

logger = logging.getLogger(__name__)


class InstrumentEntry(BaseModel):
    symbol: str
    asset_type: AssetType
    is_active: bool = True

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("symbol must not be empty")
        return value


class InstrumentFile(BaseModel):
    instruments: list[InstrumentEntry] = []


def load_instrument_file(path: Path) -> InstrumentFile:
    """Load instruments.yaml. Missing file -> empty catalog."""
    load_dotenv(path.parent / ".env", override=False)

    if not path.exists():
        logger.info("No instruments file found at %s, using settings only", path)
        return InstrumentFile()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return InstrumentFile(**raw)


def build_instrument_catalog(settings: Settings, path: Path | None = None) -> InstrumentCatalog:
    """Build the Instrument -> AssetType table used across the app."""
    config = load_instrument_file(path or Path(settings.instruments_file))

    catalog = InstrumentCatalog(gold_allowlist=settings.gold_instrument_list)
    for entry in config.instruments:
        if entry.is_active:
            catalog.register(entry.symbol, entry.asset_type)
    for symbol in settings.gold_instrument_list:
        catalog.register(symbol, AssetType.GOLD)
    for symbol in settings.crypto_instrument_list:
        if symbol not in catalog:
            catalog.register(symbol, AssetType.CRYPTO)

    logger.info("Instrument catalog loaded: %d instruments", len(catalog))
    return catalog
