"""
Locator configuration.

Values come from config/config.yaml, then .env / environment overrides:
    LEDGER_GATEWAY    memory | http
    LEDGER_BASE_URL   base URL of the HTTP ledger proxy
    LEDGER_FILE       JSON ledger used by the memory gateway
    LOG_LEVEL         loguru level
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from voucher_locator.engine.probe import FALLBACK_SCAN_START
from voucher_locator.gateway.base import RecordGateway

DEFAULT_CONFIG_PATH = "config/config.yaml"


class GatewaySettings(BaseModel):
    kind: Literal["memory", "http"] = "memory"
    base_url: str = "http://localhost:8080"
    timeout: float = 30.0
    retry_attempts: int = Field(default=2, ge=1, le=10)
    ledger_file: str = "data/ledger.json"


class SearchSettings(BaseModel):
    default_batch_size: int = Field(default=20, ge=1, le=50)
    default_max_records: int = Field(default=500, ge=1, le=1000)
    fallback_scan_start: int = Field(default=FALLBACK_SCAN_START, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/locator.log"


class LocatorConfig(BaseModel):
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _load_yaml(path: str | Path) -> dict:
    path = Path(path)
    if not path.exists():
        logger.debug(f"[Config] {path} not found - using defaults")
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> LocatorConfig:
    """Read YAML config and apply environment overrides."""
    load_dotenv()
    raw = _load_yaml(path)

    gateway = raw.setdefault("gateway", {})
    if os.getenv("LEDGER_GATEWAY"):
        gateway["kind"] = os.environ["LEDGER_GATEWAY"]
    if os.getenv("LEDGER_BASE_URL"):
        gateway["base_url"] = os.environ["LEDGER_BASE_URL"]
    if os.getenv("LEDGER_FILE"):
        gateway["ledger_file"] = os.environ["LEDGER_FILE"]
    if os.getenv("LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = os.environ["LOG_LEVEL"]

    return LocatorConfig.model_validate(raw)


def build_gateway(cfg: LocatorConfig) -> RecordGateway:
    """Instantiate the gateway named in config."""
    gw = cfg.gateway
    if gw.kind == "http":
        from voucher_locator.gateway.http_gateway import HttpLedgerGateway

        return HttpLedgerGateway(gw.model_dump())

    from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway

    return InMemoryLedgerGateway.from_file(gw.ledger_file)
