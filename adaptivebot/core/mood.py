from dataclasses import dataclass
from typing import Sequence

from ..constants import Mood
from ..utils.candle import Candle


@dataclass
class MarketMood:
    mood: Mood
    strength: float
    ratio: float


def market_mood(candles: Sequence[Candle]) -> MarketMood:
    """Sentiment from up/down move ratio (60%) and volume-weighted candle
    direction over the last 20 candles (40%)."""
    if not candles or len(candles) < 10:
        return MarketMood(Mood.NEUTRAL, 0.0, 0.5)

    closes = [c.close for c in candles]
    up_moves = sum(1 for prev, cur in zip(closes, closes[1:]) if cur > prev)
    down_moves = sum(1 for prev, cur in zip(closes, closes[1:]) if cur < prev)
    mood_ratio = up_moves / ((up_moves + down_moves) or 1)

    recent = list(candles)[-20:]
    sentiment = 0.0
    for c in recent[1:]:
        direction = 1 if c.close > c.open else -1
        sentiment += direction * (c.volume or 1)
    normalized = sentiment / len(recent)

    composite = mood_ratio * 0.6 + (normalized + 1) / 2 * 0.4

    if composite > 0.62:
        mood, strength = Mood.BULLISH, (composite - 0.62) / 0.38
    elif composite < 0.38:
        mood, strength = Mood.BEARISH, (0.38 - composite) / 0.38
    else:
        mood, strength = Mood.NEUTRAL, 1 - abs(composite - 0.5) * 2

    return MarketMood(mood=mood, strength=min(strength, 1.0), ratio=composite)
