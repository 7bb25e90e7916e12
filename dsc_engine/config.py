"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    BONUS_PRECISION,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_COLLATERAL_ASSETS,
    MIN_HEALTH_FACTOR,
)

logger = logging.getLogger(__name__)

_PROVIDERS = ("pyth", "static")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskConfig:
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_precision: int = LIQUIDATION_PRECISION
    liquidation_bonus: int = LIQUIDATION_BONUS
    bonus_precision: int = BONUS_PRECISION
    min_health_factor: int = MIN_HEALTH_FACTOR
    max_price_age_seconds: int | None = None


@dataclass(frozen=True)
class EngineConfig:
    address: str = "dsc-engine"
    risk: RiskConfig = field(default_factory=RiskConfig)


@dataclass(frozen=True)
class CollateralConfig:
    asset: str = ""
    feed_id: str = ""


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    timeout: int = 10


@dataclass(frozen=True)
class StaticFeedConfig:
    prices: dict[str, str] = field(default_factory=dict)
    expo: int = -8


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)
    static: StaticFeedConfig = field(default_factory=StaticFeedConfig)


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_risk(raw: dict[str, Any]) -> RiskConfig:
    max_age = raw.get("max_price_age_seconds")
    return RiskConfig(
        liquidation_threshold=int(raw.get("liquidation_threshold", LIQUIDATION_THRESHOLD)),
        liquidation_precision=int(raw.get("liquidation_precision", LIQUIDATION_PRECISION)),
        liquidation_bonus=int(raw.get("liquidation_bonus", LIQUIDATION_BONUS)),
        bonus_precision=int(raw.get("bonus_precision", BONUS_PRECISION)),
        min_health_factor=int(raw.get("min_health_factor", MIN_HEALTH_FACTOR)),
        max_price_age_seconds=int(max_age) if max_age not in (None, "") else None,
    )


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        address=raw.get("address", "dsc-engine"),
        risk=_build_risk(raw.get("risk", {})),
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    collateral: list[CollateralConfig] = []
    for c in raw:
        collateral.append(
            CollateralConfig(
                asset=str(c.get("asset", "")),
                feed_id=str(c.get("feed_id", "")),
            )
        )
    return tuple(collateral)


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    static_raw = raw.get("static", {})
    return PriceOracleConfig(
        provider=raw.get("provider") or "pyth",
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            timeout=int(pyth_raw.get("timeout", PythConfig.timeout)),
        ),
        static=StaticFeedConfig(
            prices={str(k): str(v) for k, v in static_raw.get("prices", {}).items()},
            expo=int(static_raw.get("expo", StaticFeedConfig.expo)),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate engine configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {})),
        collateral=_build_collateral(raw.get("collateral", [])),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")
    if len(cfg.collateral) > MAX_COLLATERAL_ASSETS:
        raise ValueError(
            f"At most {MAX_COLLATERAL_ASSETS} collateral assets are supported"
        )

    for entry in cfg.collateral:
        if not entry.asset:
            raise ValueError("Collateral entry has no asset")
        if not entry.feed_id:
            raise ValueError(f"Collateral '{entry.asset}' has no feed_id")

    risk = cfg.engine.risk
    if risk.liquidation_precision <= 0 or risk.bonus_precision <= 0:
        raise ValueError("Risk precisions must be positive")
    if not 0 < risk.liquidation_threshold <= risk.liquidation_precision:
        raise ValueError("liquidation_threshold must be in (0, liquidation_precision]")
    if risk.liquidation_bonus < 0:
        raise ValueError("liquidation_bonus must not be negative")
    if risk.min_health_factor <= 0:
        raise ValueError("min_health_factor must be positive")

    oracle = cfg.price_oracle
    if oracle.provider not in _PROVIDERS:
        raise ValueError(f"Unknown price oracle provider '{oracle.provider}'")
    if oracle.provider == "static":
        for entry in cfg.collateral:
            if entry.feed_id not in oracle.static.prices:
                raise ValueError(
                    f"Collateral '{entry.asset}' references unpriced feed '{entry.feed_id}'"
                )
