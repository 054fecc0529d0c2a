from dataclasses import dataclass
from typing import Optional, Sequence

from ..constants import RegimeType
from ..utils.candle import Candle
from .indicators import atr, moving_average, rolling_volatility

MIN_CANDLES = 50


@dataclass
class Regime:
    type: RegimeType
    volatility_ratio: float = 0.0
    trend_strength: float = 0.0
    confidence: float = 0.0
    atr: Optional[float] = None


class RegimeDetector:
    @staticmethod
    def detect(candles: Sequence[Candle]) -> Regime:
        if len(candles) < MIN_CANDLES:
            return Regime(RegimeType.INSUFFICIENT_DATA)

        closes = [c.close for c in candles]
        price = closes[-1]
        ma20 = moving_average(closes, 20)[-1]
        ma50 = moving_average(closes, 50)[-1]
        atr_now = atr(candles, 14)[-1]

        trend = (ma20 - ma50) / ma50 if ma20 and ma50 else 0.0
        vol_ratio = rolling_volatility(closes, 20) / price if price else 0.0

        is_high_vol = vol_ratio > 0.01
        is_low_vol = vol_ratio < 0.003

        if abs(trend) > 0.02 and not is_low_vol:
            kind = RegimeType.STRONG_UPTREND if trend > 0 else RegimeType.STRONG_DOWNTREND
            confidence = 0.85
        elif abs(trend) > 0.01:
            kind = RegimeType.UPTREND if trend > 0 else RegimeType.DOWNTREND
            confidence = 0.7
        elif is_high_vol:
            kind, confidence = RegimeType.HIGH_VOLATILITY, 0.6
        elif is_low_vol:
            kind, confidence = RegimeType.CONSOLIDATION, 0.65
        else:
            kind, confidence = RegimeType.NEUTRAL, 0.5

        return Regime(
            type=kind,
            volatility_ratio=vol_ratio,
            trend_strength=trend,
            confidence=confidence,
            atr=atr_now,
        )
