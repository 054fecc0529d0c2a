from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..constants import Session


@dataclass
class TemporalContext:
    hour: int
    day_of_week: int            # Monday = 0
    liquidity_score: float
    volatility_expectation: float
    confidence_modifier: float
    session: Session


def temporal_context(now: Optional[datetime] = None) -> TemporalContext:
    """Static session/liquidity profile for the given UTC time."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    hour, minute, dow = now.hour, now.minute, now.weekday()

    liquidity = 1.0
    volatility = 1.0
    confidence = 1.0

    # thin hours
    if 0 <= hour < 3:
        liquidity = 0.6
        confidence = 0.85

    # Asian session (23:00 - 08:00)
    if hour >= 23 or hour < 8:
        volatility = 0.8

    # London open
    if hour == 8:
        volatility = 1.4

    # US session (13:00 - 21:00)
    if 13 <= hour <= 21:
        liquidity = 1.2
        volatility = 1.3

    if dow >= 5:
        liquidity *= 0.7
        confidence *= 0.9

    # hour transitions
    if minute < 5 or minute > 55:
        confidence *= 0.95

    if 13 <= hour <= 21:
        session = Session.US
    elif 8 <= hour < 13:
        session = Session.LONDON
    else:
        session = Session.ASIAN

    return TemporalContext(
        hour=hour,
        day_of_week=dow,
        liquidity_score=liquidity,
        volatility_expectation=volatility,
        confidence_modifier=confidence,
        session=session,
    )
