from pydantic import BaseModel, model_validator


class Bar(BaseModel):
    index: int
    open: float
    high: float
    low: float
    close: float

    @model_validator(mode="after")
    def _check_ordering(self):
        if not (self.low <= min(self.open, self.close) and max(self.open, self.close) <= self.high):
            raise ValueError(
                f"Bar {self.index} violates low <= open/close <= high: "
                f"o={self.open} h={self.high} l={self.low} c={self.close}"
            )
        return self

    @property
    def body_high(self) -> float:
        return max(self.open, self.close)

    @property
    def body_low(self) -> float:
        return min(self.open, self.close)


class Viewport(BaseModel):
    start: float = 0.0  # fractional index of the left-most visible bar
    count: int = 80


class MACDSeries(BaseModel):
    macd: list[float | None] = []
    signal: list[float | None] = []
    histogram: list[float | None] = []
