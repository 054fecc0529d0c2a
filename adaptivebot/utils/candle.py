from dataclasses import dataclass

@dataclass
class Candle:
    epoch: float
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open


@dataclass
class Tick:
    epoch: float
    price: float


def parse_candle(raw) -> Candle:
    """Flexible candle parser — handles dict, list, or object."""
    if isinstance(raw, dict):
        return Candle(
            epoch=float(raw.get("epoch", raw.get("time", raw.get("timestamp", 0))) or 0),
            open=float(raw.get("open", 0) or 0),
            high=float(raw.get("high", 0) or 0),
            low=float(raw.get("low", 0) or 0),
            close=float(raw.get("close", 0) or 0),
            volume=float(raw.get("volume", 0) or 0),
        )
    elif isinstance(raw, (list, tuple)):
        return Candle(
            epoch=float(raw[0]),
            open=float(raw[1]),
            high=float(raw[2]),
            low=float(raw[3]),
            close=float(raw[4]),
            volume=float(raw[5]) if len(raw) > 5 else 0,
        )
    else:
        return Candle(
            epoch=float(getattr(raw, "epoch", getattr(raw, "time", getattr(raw, "timestamp", 0))) or 0),
            open=float(getattr(raw, "open", 0) or 0),
            high=float(getattr(raw, "high", 0) or 0),
            low=float(getattr(raw, "low", 0) or 0),
            close=float(getattr(raw, "close", 0) or 0),
            volume=float(getattr(raw, "volume", 0) or 0),
        )


def parse_tick(raw) -> Tick:
    """Ticks arrive either as {epoch, quote|price} dicts or as streamed candles."""
    if isinstance(raw, dict):
        price = raw.get("quote", raw.get("price", raw.get("close", 0)))
        epoch = raw.get("epoch", raw.get("time", raw.get("timestamp", 0)))
        return Tick(epoch=float(epoch or 0), price=float(price or 0))
    c = parse_candle(raw)
    return Tick(epoch=c.epoch, price=c.close)
