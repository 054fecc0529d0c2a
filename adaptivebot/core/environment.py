from dataclasses import dataclass, field

from ..constants import TrendDirection
from .indicators import BollingerBand


@dataclass
class Environment:
    trend: TrendDirection
    strength: float
    clarity: float
    noise: float


@dataclass
class SignalContribution:
    value: float
    weight: float
    contribution: float


@dataclass
class Rationale:
    signals: dict[str, SignalContribution] = field(default_factory=dict)
    context: dict[str, object] = field(default_factory=dict)
    composite: float = 0.0


def analyze_environment(price: float, ma14: float, ma50: float, rsi_now: float,
                        bb_now: BollingerBand, volatility: float) -> Environment:
    """Pre-decision layer: trend direction, indicator agreement and noise."""
    if ma14 > ma50 * 1.002:
        trend, strength = TrendDirection.UPTREND, min((ma14 / ma50 - 1) * 100, 1.0)
    elif ma14 < ma50 * 0.998:
        trend, strength = TrendDirection.DOWNTREND, min((1 - ma14 / ma50) * 100, 1.0)
    else:
        trend, strength = TrendDirection.SIDEWAYS, 0.3

    votes = [1 if price > ma14 else -1]
    if rsi_now < 40:
        votes.append(1)
    elif rsi_now > 60:
        votes.append(-1)
    else:
        votes.append(0)
    if price <= bb_now.lower:
        votes.append(1)
    elif price >= bb_now.upper:
        votes.append(-1)
    else:
        votes.append(0)
    clarity = abs(sum(votes) / len(votes))

    if volatility > 0.015:
        noise = 0.8
    elif volatility > 0.01:
        noise = 0.5
    else:
        noise = 0.2

    return Environment(trend=trend, strength=strength, clarity=clarity, noise=noise)


def build_rationale(values: dict[str, float], weights: dict[str, float], mood, temporal,
                    environment: Environment) -> Rationale:
    """Per-signal value/weight/contribution table kept with every decision.

    ``values`` are the unweighted signal readings, ``weights`` the factor each
    one enters the composite with.
    """
    table = {}
    for name, value in values.items():
        w = weights.get(name, 1.0)
        table[name] = SignalContribution(value=value, weight=w, contribution=value * w)
    return Rationale(
        signals=table,
        context={
            "mood": mood.mood.value,
            "mood_strength": mood.strength,
            "session": temporal.session.value,
            "liquidity_score": temporal.liquidity_score,
            "environment": environment.trend.value,
        },
        composite=sum(s.contribution for s in table.values()),
    )
