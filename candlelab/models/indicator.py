from typing import Any, Literal

from pydantic import BaseModel, model_validator

from candlelab.config import settings

IndicatorKind = Literal["SMA", "EMA", "RSI", "MACD"]

OVERLAY_INDICATORS = {"SMA", "EMA"}  # drawn on the price axis
OSCILLATOR_INDICATORS = {"RSI", "MACD"}

DEFAULT_PERIODS: dict[str, int] = {"SMA": 20, "EMA": 20, "RSI": 14}


def clamp_period(value: Any, minimum: int = 1) -> int:
    """Coerce user input into a usable period. Never raises."""
    try:
        period = int(value)
    except (TypeError, ValueError):
        period = minimum
    return max(minimum, min(settings.max_period, period))


class IndicatorConfig(BaseModel):
    """One indicator line (or MACD triple) shown on the chart."""
    kind: IndicatorKind
    enabled: bool = True
    period: int = 20
    fast: int = 12
    slow: int = 26
    signal: int = 9

    @model_validator(mode="before")
    @classmethod
    def _clamp(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind = str(data.get("kind", "")).upper()
        data["kind"] = kind
        if "period" not in data and kind in DEFAULT_PERIODS:
            data["period"] = DEFAULT_PERIODS[kind]
        if "period" in data:
            data["period"] = clamp_period(data["period"], 2 if kind == "RSI" else 1)
        if "fast" in data:
            data["fast"] = clamp_period(data["fast"], 1)
        if "slow" in data:
            data["slow"] = clamp_period(data["slow"], 2)
        if "signal" in data:
            data["signal"] = clamp_period(data["signal"], 1)
        return data

    @property
    def is_overlay(self) -> bool:
        return self.kind in OVERLAY_INDICATORS

    @property
    def params(self) -> dict[str, int]:
        if self.kind == "MACD":
            return {"fast": self.fast, "slow": self.slow, "signal": self.signal}
        return {"period": self.period}
