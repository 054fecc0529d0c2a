from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..constants import Action, Mood, RegimeType, Session
from ..trading.trade import TradeRecord, win_rate
from .decision import Decision


@dataclass
class HistoricalContext:
    score: float = 1.0
    insights: list[str] = field(default_factory=list)


@dataclass
class RiskAssessment:
    score: float
    category: str
    factors: list[str]
    recommendation: str


@dataclass
class DecisionQuality:
    score: int
    grade: str
    factors: list[str]


def _same_side(decision: str, action: Action) -> bool:
    return ("BUY" in decision and action.is_buy) or ("SELL" in decision and action.is_sell)


def _hour_gap(a: int, b: int) -> int:
    d = abs(a - b) % 24
    return min(d, 24 - d)


def analyze_historical_context(recent_trades: Sequence[TradeRecord], action: Action,
                               regime: RegimeType,
                               now: Optional[datetime] = None) -> HistoricalContext:
    """How trades like this one have gone lately. ``recent_trades`` is newest-first."""
    if len(recent_trades) < 3:
        return HistoricalContext()

    now = now or datetime.now(timezone.utc)
    score = 1.0
    insights = []
    last10 = list(recent_trades[:10])
    side = "BUY" if action.is_buy else "SELL"

    same_dir = [t for t in last10 if _same_side(t.decision, action)]
    if len(same_dir) >= 5:
        wr = win_rate(same_dir)
        if wr < 0.4:
            score *= 0.75
            insights.append(f"Direction fatigue: {len(same_dir)} recent {side} trades with {wr:.0%} WR")

    hour = now.hour
    same_hour = [t for t in last10
                 if _hour_gap(datetime.fromtimestamp(t.time, tz=timezone.utc).hour, hour) <= 1]
    if len(same_hour) >= 3:
        wr = win_rate(same_hour)
        if wr > 0.7:
            score *= 1.1
            insights.append(f"Strong hour performance: {wr:.0%} WR at this time")
        elif wr < 0.3:
            score *= 0.85
            insights.append(f"Weak hour performance: {wr:.0%} WR at this time")

    same_regime = [t for t in last10 if t.regime == regime.value]
    if len(same_regime) >= 4:
        wr = win_rate(same_regime)
        if wr > 0.65:
            score *= 1.08
            insights.append(f"Strong regime performance: {wr:.0%} WR in {regime.value}")
        elif wr < 0.35:
            score *= 0.8
            insights.append(f"Weak regime performance: {wr:.0%} WR in {regime.value}")

    confident = [t for t in last10 if (t.confidence or 0) > 0.75]
    if len(confident) >= 3:
        wr = win_rate(confident)
        if wr < 0.5:
            score *= 0.85
            insights.append(f"High confidence underperforming: {wr:.0%} WR on confident trades")

    recent_wins = sum(1 for t in recent_trades[:5] if t.is_win)
    if recent_wins >= 4:
        score *= 1.05
        insights.append(f"Hot streak: {recent_wins}/5 recent wins")
    elif recent_wins <= 1:
        score *= 0.9
        insights.append(f"Cold streak: {recent_wins}/5 recent wins")

    return HistoricalContext(
        score=max(0.5, min(1.5, score)),
        insights=insights or ["No significant historical patterns"],
    )


def risk_category(score: float) -> str:
    if score > 0.75:
        return "VERY HIGH"
    if score > 0.6:
        return "HIGH"
    if score < 0.35:
        return "LOW"
    if score < 0.5:
        return "MODERATE-LOW"
    return "MODERATE"


def assess_trade_risk(decision: Decision, historical: HistoricalContext) -> RiskAssessment:
    score = 0.5
    factors = []
    ind = decision.indicators
    volatility = ind.volatility if ind else 0.0
    action = decision.action

    if volatility > 0.02:
        score += 0.25
        factors.append("Extreme volatility")
    elif volatility > 0.015:
        score += 0.15
        factors.append("High volatility")
    elif volatility < 0.005:
        score += 0.1
        factors.append("Very low volatility (low profit potential)")

    regime = decision.regime
    if regime.type == RegimeType.HIGH_VOLATILITY:
        score += 0.2
        factors.append("High volatility regime")
    elif regime.type == RegimeType.CONSOLIDATION:
        score += 0.15
        factors.append("Ranging market (choppy)")
    elif regime.confidence < 0.6:
        score += 0.1
        factors.append("Uncertain regime")

    mood = decision.mood
    if mood is not None and mood.strength > 0.6:
        if (mood.mood == Mood.BULLISH and action.is_sell) or (mood.mood == Mood.BEARISH and action.is_buy):
            score += 0.15
            factors.append("Trading against market mood")

    temporal = decision.temporal
    if temporal is not None:
        if temporal.liquidity_score < 0.7:
            score += 0.1
            factors.append("Low liquidity period")
        if temporal.session == Session.ASIAN and volatility > 0.015:
            score += 0.05
            factors.append("High volatility during low-volume session")

    if ind is not None and ind.pattern.strength < 0.5:
        score += 0.08
        factors.append("Weak pattern formation")

    if historical.score < 0.8:
        score += 0.12
        factors.append("Poor historical performance in similar conditions")

    if ind is not None and ind.atr and ind.price and ind.atr / ind.price * 100 > 2:
        score += 0.1
        factors.append("High ATR relative to price")

    if decision.confidence < 0.65:
        score += 0.15
        factors.append("Low decision confidence")

    score = max(0.1, min(1.0, score))
    if score > 0.7:
        recommendation = "Consider reducing position size or avoiding trade"
    elif score > 0.55:
        recommendation = "Use conservative position sizing"
    else:
        recommendation = "Risk acceptable for standard position"

    return RiskAssessment(
        score=score,
        category=risk_category(score),
        factors=factors or ["Standard market conditions"],
        recommendation=recommendation,
    )


def quality_grade(score: int) -> str:
    if score >= 85:
        return "A+"
    if score >= 75:
        return "A"
    if score >= 65:
        return "B"
    if score >= 55:
        return "C"
    return "D"


def calculate_decision_quality(decision: Decision) -> DecisionQuality:
    score = 0
    factors = []

    if decision.confidence > 0.75:
        score += 30
        factors.append("High confidence")
    elif decision.confidence > 0.65:
        score += 20
        factors.append("Good confidence")
    else:
        score += 10
        factors.append("Moderate confidence")

    signal = abs(decision.composite_signal)
    if signal > 4:
        score += 25
        factors.append("Very strong signal")
    elif signal > 3:
        score += 18
        factors.append("Strong signal")
    else:
        score += 10
        factors.append("Moderate signal")

    pattern = decision.indicators.pattern if decision.indicators else None
    if pattern is not None and pattern.strength > 0.75:
        score += 15
        factors.append("Strong pattern")
    elif pattern is not None and pattern.strength > 0.5:
        score += 8
        factors.append("Moderate pattern")

    if decision.regime.confidence > 0.8:
        score += 15
        factors.append("Clear regime")
    elif decision.regime.confidence > 0.65:
        score += 8
        factors.append("Defined regime")

    env = decision.environment
    if env is not None and env.clarity > 0.6:
        score += 10
        factors.append("Clear market structure")
    elif env is not None and env.clarity > 0.4:
        score += 5
        factors.append("Moderate market clarity")

    mood = decision.mood
    if mood is not None and mood.strength > 0.6:
        if (mood.mood == Mood.BULLISH and decision.action.is_buy) or \
                (mood.mood == Mood.BEARISH and decision.action.is_sell):
            score += 5
            factors.append("Mood-aligned")

    if len(decision.adjustments) > 2:
        score -= 5
        factors.append("Multiple adjustments needed")

    score = max(0, min(100, score))
    return DecisionQuality(score=score, grade=quality_grade(score), factors=factors)
