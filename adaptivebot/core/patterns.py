"""Candlestick pattern recognition.

Patterns are checked in a fixed priority order and the first match wins, so
the order of ``PATTERNS`` is part of the behaviour: a bullish engulfing that
also satisfies DOJI is reported as DOJI.
"""
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Sequence

from ..constants import PatternSignal
from ..utils.candle import Candle


@dataclass(frozen=True)
class PatternResult:
    pattern: str
    strength: float
    signal: PatternSignal


NO_PATTERN = PatternResult("NONE", 0.0, PatternSignal.NEUTRAL)


class Window:
    """Geometry of the last three candles (c1 oldest, c3 newest).

    ``lead`` and ``lead2`` are the fifth- and fourth-from-last candles and only
    exist when five candles are available.
    """

    def __init__(self, candles: Sequence[Candle]):
        self.c1, self.c2, self.c3 = candles[-3], candles[-2], candles[-1]
        self.lead: Optional[Candle] = candles[-5] if len(candles) >= 5 else None
        self.lead2: Optional[Candle] = candles[-4] if len(candles) >= 5 else None

        self.body1, self.body2, self.body3 = self.c1.body, self.c2.body, self.c3.body
        self.range1, self.range2, self.range3 = self.c1.range, self.c2.range, self.c3.range
        self.upper1, self.upper2, self.upper3 = self.c1.upper_wick, self.c2.upper_wick, self.c3.upper_wick
        self.lower1, self.lower2, self.lower3 = self.c1.lower_wick, self.c2.lower_wick, self.c3.lower_wick
        self.bull1, self.bull2, self.bull3 = self.c1.is_bullish, self.c2.is_bullish, self.c3.is_bullish


def _close_flag_above_open(c: Candle) -> bool:
    # Compares (not close) with open, which is never true for positive
    # prices. BREAKAWAY_BULLISH and LADDER_BOTTOM depend on it and are
    # therefore effectively unreachable; left literal to keep their slot.
    return (not c.close) > c.open


class Pattern(NamedTuple):
    name: str
    strength: float
    signal: PatternSignal
    test: Callable[[Window], bool]


B, S = PatternSignal.BULLISH, PatternSignal.BEARISH
SB, SS = PatternSignal.STRONG_BULLISH, PatternSignal.STRONG_BEARISH

PATTERNS: list[Pattern] = [
    # --- single candle ---
    Pattern("DOJI", 0.70, PatternSignal.REVERSAL_PENDING,
            lambda w: w.body3 < w.range3 * 0.1 and w.range3 > 0),
    Pattern("HAMMER", 0.80, B,
            lambda w: w.lower3 > w.body3 * 2 and w.upper3 < w.body3 * 0.3 and w.bull3),
    Pattern("SHOOTING_STAR", 0.80, S,
            lambda w: w.upper3 > w.body3 * 2 and w.lower3 < w.body3 * 0.3 and not w.bull3),

    # --- engulfing ---
    Pattern("BULLISH_ENGULFING", 0.85, B,
            lambda w: not w.bull2 and w.bull3 and w.c3.open < w.c2.close
            and w.c3.close > w.c2.open and w.body3 > w.body2 * 1.2),
    Pattern("BEARISH_ENGULFING", 0.85, S,
            lambda w: w.bull2 and not w.bull3 and w.c3.open > w.c2.close
            and w.c3.close < w.c2.open and w.body3 > w.body2 * 1.2),

    # --- three in a row ---
    Pattern("THREE_WHITE_SOLDIERS", 0.90, SB,
            lambda w: w.bull1 and w.bull2 and w.bull3
            and w.c2.close > w.c1.close and w.c3.close > w.c2.close),
    Pattern("THREE_BLACK_CROWS", 0.90, SS,
            lambda w: not w.bull1 and not w.bull2 and not w.bull3
            and w.c2.close < w.c1.close and w.c3.close < w.c2.close),

    # --- stars ---
    Pattern("MORNING_STAR", 0.88, SB,
            lambda w: not w.bull1 and w.body2 < w.range2 * 0.3 and w.bull3
            and w.c2.close < w.c1.close and w.c3.close > (w.c1.open + w.c1.close) / 2),
    Pattern("EVENING_STAR", 0.88, SS,
            lambda w: w.bull1 and w.body2 < w.range2 * 0.3 and not w.bull3
            and w.c2.close > w.c1.close and w.c3.close < (w.c1.open + w.c1.close) / 2),

    # --- two-candle reversals ---
    Pattern("PIERCING_PATTERN", 0.82, B,
            lambda w: not w.bull2 and w.bull3 and w.c3.open < w.c2.low
            and w.c3.close > (w.c2.open + w.c2.close) / 2 and w.c3.close < w.c2.open),
    Pattern("DARK_CLOUD_COVER", 0.82, S,
            lambda w: w.bull2 and not w.bull3 and w.c3.open > w.c2.high
            and w.c3.close < (w.c2.open + w.c2.close) / 2 and w.c3.close > w.c2.open),
    Pattern("BULLISH_HARAMI", 0.75, B,
            lambda w: not w.bull2 and w.bull3 and w.c3.open > w.c2.close
            and w.c3.close < w.c2.open and w.body3 < w.body2 * 0.5),
    Pattern("BEARISH_HARAMI", 0.75, S,
            lambda w: w.bull2 and not w.bull3 and w.c3.open < w.c2.close
            and w.c3.close > w.c2.open and w.body3 < w.body2 * 0.5),
    Pattern("TWEEZER_BOTTOM", 0.78, B,
            lambda w: not w.bull2 and w.bull3 and abs(w.c2.low - w.c3.low) < w.range2 * 0.05),
    Pattern("TWEEZER_TOP", 0.78, S,
            lambda w: w.bull2 and not w.bull3 and abs(w.c2.high - w.c3.high) < w.range2 * 0.05),
    Pattern("HANGING_MAN", 0.76, S,
            lambda w: w.lower3 > w.body3 * 2 and w.upper3 < w.body3 * 0.5
            and w.bull3 and w.c3.close > w.c2.close),
    Pattern("INVERTED_HAMMER", 0.76, B,
            lambda w: w.upper3 > w.body3 * 2 and w.lower3 < w.body3 * 0.5
            and w.bull3 and w.c3.close < w.c2.close),

    # --- doji family ---
    Pattern("DRAGONFLY_DOJI", 0.77, B,
            lambda w: w.body3 < w.range3 * 0.1 and w.lower3 > w.range3 * 0.6
            and w.upper3 < w.range3 * 0.1),
    Pattern("GRAVESTONE_DOJI", 0.77, S,
            lambda w: w.body3 < w.range3 * 0.1 and w.upper3 > w.range3 * 0.6
            and w.lower3 < w.range3 * 0.1),
    Pattern("LONG_LEGGED_DOJI", 0.72, PatternSignal.REVERSAL_PENDING,
            lambda w: w.body3 < w.range3 * 0.1 and w.lower3 > w.range3 * 0.3
            and w.upper3 > w.range3 * 0.3),

    # --- full bodies / indecision ---
    Pattern("BULLISH_MARUBOZU", 0.83, SB,
            lambda w: w.bull3 and w.body3 > w.range3 * 0.95),
    Pattern("BEARISH_MARUBOZU", 0.83, SS,
            lambda w: not w.bull3 and w.body3 > w.range3 * 0.95),
    Pattern("SPINNING_TOP", 0.65, PatternSignal.NEUTRAL,
            lambda w: w.body3 < w.range3 * 0.3 and w.upper3 > w.body3 and w.lower3 > w.body3),

    # --- three inside / outside ---
    Pattern("THREE_INSIDE_UP", 0.86, SB,
            lambda w: not w.bull1 and not w.bull2 and w.bull3
            and w.c2.open > w.c1.close and w.c2.close < w.c1.open
            and w.c3.close > w.c1.open and w.body2 < w.body1 * 0.5),
    Pattern("THREE_INSIDE_DOWN", 0.86, SS,
            lambda w: w.bull1 and w.bull2 and not w.bull3
            and w.c2.open < w.c1.close and w.c2.close > w.c1.open
            and w.c3.close < w.c1.open and w.body2 < w.body1 * 0.5),
    Pattern("THREE_OUTSIDE_UP", 0.87, SB,
            lambda w: not w.bull1 and not w.bull2 and w.bull3
            and w.c2.open < w.c1.close and w.c2.close > w.c1.open
            and w.c3.close > w.c2.close and w.body2 > w.body1),
    Pattern("THREE_OUTSIDE_DOWN", 0.87, SS,
            lambda w: w.bull1 and w.bull2 and not w.bull3
            and w.c2.open > w.c1.close and w.c2.close < w.c1.open
            and w.c3.close < w.c2.close and w.body2 > w.body1),

    # --- continuation (five candles) ---
    Pattern("RISING_THREE_METHODS", 0.84, B,
            lambda w: w.lead is not None and w.lead.is_bullish and w.bull3
            and not w.bull1 and not w.bull2
            and w.c3.close > w.lead.close and w.c1.high < w.lead.high),
    Pattern("FALLING_THREE_METHODS", 0.84, S,
            lambda w: w.lead is not None and w.lead.close < w.lead.open and not w.bull3
            and w.bull1 and w.bull2
            and w.c3.close < w.lead.close and w.c1.low > w.lead.low),

    # --- gaps ---
    Pattern("ABANDONED_BABY_BULLISH", 0.92, SB,
            lambda w: not w.bull1 and w.body2 < w.range2 * 0.2 and w.bull3
            and w.c2.high < w.c1.low and w.c2.high < w.c3.low),
    Pattern("ABANDONED_BABY_BEARISH", 0.92, SS,
            lambda w: w.bull1 and w.body2 < w.range2 * 0.2 and not w.bull3
            and w.c2.low > w.c1.high and w.c2.low > w.c3.high),
    Pattern("UPSIDE_GAP_TWO_CROWS", 0.79, S,
            lambda w: w.bull1 and not w.bull2 and not w.bull3
            and w.c2.open > w.c1.close and w.c3.open > w.c2.open and w.c3.close < w.c2.close),
    Pattern("MAT_HOLD", 0.81, B,
            lambda w: w.lead is not None and w.lead.is_bullish and w.bull3
            and not w.bull1 and w.c3.close > w.lead.close),

    # --- belt hold / breakaway / kicking ---
    Pattern("BULLISH_BELT_HOLD", 0.74, B,
            lambda w: w.bull3 and w.lower3 < w.body3 * 0.1 and w.body3 > w.range3 * 0.7),
    Pattern("BEARISH_BELT_HOLD", 0.74, S,
            lambda w: not w.bull3 and w.upper3 < w.body3 * 0.1 and w.body3 > w.range3 * 0.7),
    Pattern("BREAKAWAY_BULLISH", 0.80, B,
            lambda w: w.lead is not None and _close_flag_above_open(w.lead)
            and w.bull3 and w.c3.close > w.lead.open),
    Pattern("KICKING_BULLISH", 0.89, SB,
            lambda w: not w.bull2 and w.bull3 and w.body2 > w.range2 * 0.9
            and w.body3 > w.range3 * 0.9 and w.c3.open > w.c2.close),
    Pattern("KICKING_BEARISH", 0.89, SS,
            lambda w: w.bull2 and not w.bull3 and w.body2 > w.range2 * 0.9
            and w.body3 > w.range3 * 0.9 and w.c3.open < w.c2.close),

    # --- ladders ---
    Pattern("LADDER_BOTTOM", 0.85, B,
            lambda w: w.lead is not None and _close_flag_above_open(w.lead)
            and _close_flag_above_open(w.lead2) and not w.bull1
            and not w.bull2 and w.bull3 and w.c3.close > w.c2.open),
    Pattern("LADDER_TOP", 0.85, S,
            lambda w: w.lead is not None and w.lead.is_bullish and w.lead2.is_bullish
            and w.bull1 and w.bull2 and not w.bull3 and w.c3.close < w.c2.open),

    # --- the rest ---
    Pattern("CONCEALING_BABY_SWALLOW", 0.83, B,
            lambda w: not w.bull1 and not w.bull2 and not w.bull3
            and w.c2.open < w.c1.open and w.c3.open > w.c2.close and w.c3.close > w.c2.open),
    Pattern("STICK_SANDWICH", 0.73, B,
            lambda w: not w.bull1 and w.bull2 and not w.bull3
            and abs(w.c1.close - w.c3.close) < w.body1 * 0.1),
    Pattern("HOMING_PIGEON", 0.71, B,
            lambda w: not w.bull2 and not w.bull3 and w.c3.open < w.c2.open
            and w.c3.close > w.c2.close and w.body3 < w.body2 * 0.7),
    Pattern("MATCHING_LOW", 0.70, B,
            lambda w: not w.bull2 and not w.bull3 and abs(w.c2.close - w.c3.close) < w.body2 * 0.1),
    Pattern("DELIBERATION", 0.76, S,
            lambda w: w.bull1 and w.bull2 and w.bull3
            and w.body3 < w.body2 and w.body2 < w.body1 and w.c3.close > w.c2.close),
    Pattern("ADVANCE_BLOCK", 0.78, S,
            lambda w: w.bull1 and w.bull2 and w.bull3
            and w.body2 < w.body1 and w.body3 < w.body2
            and w.upper2 > w.upper1 and w.upper3 > w.upper2),
]


def identify_pattern(candles: Sequence[Candle]) -> PatternResult:
    """Classify the newest candles; fewer than three gives NONE."""
    if len(candles) < 3:
        return NO_PATTERN

    w = Window(candles)
    for p in PATTERNS:
        if p.test(w):
            return PatternResult(p.name, p.strength, p.signal)
    return NO_PATTERN
