from enum import Enum

class Action(Enum):
    HOLD = "HOLD"
    BUY = "BUY"
    SELL = "SELL"
    STRONG_BUY = "STRONG BUY"
    STRONG_SELL = "STRONG SELL"

    @property
    def is_buy(self) -> bool:
        return self in (Action.BUY, Action.STRONG_BUY)

    @property
    def is_sell(self) -> bool:
        return self in (Action.SELL, Action.STRONG_SELL)

    @property
    def is_strong(self) -> bool:
        return self in (Action.STRONG_BUY, Action.STRONG_SELL)

    def weakened(self) -> "Action":
        if self == Action.STRONG_BUY:
            return Action.BUY
        if self == Action.STRONG_SELL:
            return Action.SELL
        return self

class ContractType(Enum):
    CALL = "CALL"
    PUT = "PUT"

class RegimeType(Enum):
    UNKNOWN = "UNKNOWN"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    STRONG_UPTREND = "STRONG_UPTREND"
    STRONG_DOWNTREND = "STRONG_DOWNTREND"
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    CONSOLIDATION = "CONSOLIDATION"
    NEUTRAL = "NEUTRAL"

    @property
    def is_strong(self) -> bool:
        return self in (RegimeType.STRONG_UPTREND, RegimeType.STRONG_DOWNTREND)

class PatternSignal(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    STRONG_BULLISH = "STRONG_BULLISH"
    STRONG_BEARISH = "STRONG_BEARISH"
    NEUTRAL = "NEUTRAL"
    REVERSAL_PENDING = "REVERSAL_PENDING"

    @property
    def is_bullish(self) -> bool:
        return self in (PatternSignal.BULLISH, PatternSignal.STRONG_BULLISH)

    @property
    def is_bearish(self) -> bool:
        return self in (PatternSignal.BEARISH, PatternSignal.STRONG_BEARISH)

class Mood(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"

class Session(Enum):
    ASIAN = "ASIAN"
    LONDON = "LONDON"
    US = "US"

class MicroPrediction(Enum):
    BULLISH_CONTINUATION = "BULLISH_CONTINUATION"
    BEARISH_CONTINUATION = "BEARISH_CONTINUATION"
    CONSOLIDATION_LIKELY = "CONSOLIDATION_LIKELY"
    DOJI_FORMING = "DOJI_FORMING"
    UNCERTAIN = "UNCERTAIN"

class TrendDirection(Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    SIDEWAYS = "SIDEWAYS"

class TradeMode(Enum):
    SIM = "SIM"
    LIVE = "LIVE"

class TradeResult(Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    PENDING = "PENDING"
    OPEN = "OPEN"
    WON = "WON"
    LOST = "LOST"
    SOLD = "SOLD"

    @property
    def is_win(self) -> bool:
        return self in (TradeResult.WIN, TradeResult.WON)

    @property
    def is_loss(self) -> bool:
        return self in (TradeResult.LOSS, TradeResult.LOST)

    @property
    def is_settled(self) -> bool:
        return self in (TradeResult.WIN, TradeResult.LOSS, TradeResult.WON,
                        TradeResult.LOST, TradeResult.SOLD)

class LockState(Enum):
    UNLOCKED = "UNLOCKED"
    PURCHASE_PENDING = "PURCHASE_PENDING"
    LOCKED = "LOCKED"
