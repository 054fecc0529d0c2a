import random
import time
from typing import Optional

from ..constants import Mood, RegimeType, TradeMode, TradeResult
from ..core.decision import Decision
from ..core.risk import HistoricalContext, RiskAssessment
from .agents import Agent
from .trade import TradeRecord


def win_probability(decision: Decision, historical: HistoricalContext,
                    risk: RiskAssessment, agent: Optional[Agent] = None) -> float:
    p = 0.5
    p += decision.confidence * 0.25
    p += abs(decision.composite_signal) / 10

    regime = decision.regime.type
    if regime.is_strong:
        p += 0.12
    elif regime == RegimeType.HIGH_VOLATILITY:
        p -= 0.08
    elif regime == RegimeType.CONSOLIDATION:
        p -= 0.05

    pattern = decision.indicators.pattern if decision.indicators else None
    if pattern is not None and pattern.strength > 0.75:
        p += 0.1
    elif pattern is not None and pattern.strength < 0.5:
        p -= 0.05

    mood = decision.mood
    if mood is not None and mood.strength > 0.6:
        aligned = (mood.mood == Mood.BULLISH and decision.action.is_buy) or \
                  (mood.mood == Mood.BEARISH and decision.action.is_sell)
        p += 0.08 if aligned else -0.06

    if decision.temporal is not None:
        p *= decision.temporal.confidence_modifier
    p *= historical.score

    env = decision.environment
    if env is not None and env.clarity > 0.6:
        p += 0.06
    elif env is not None and env.clarity < 0.4:
        p -= 0.04

    if risk.score > 0.7:
        p -= 0.1

    if agent is not None and agent.win_rate > 0:
        p += (agent.win_rate - 0.5) * 0.15

    return max(0.28, min(0.83, p))


class TradeSimulator:
    """Resolves a paper trade immediately against a context-aware win chance."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def run(self, decision: Decision, symbol: str, amount: float, duration: int,
            historical: HistoricalContext, risk: RiskAssessment, quality: str,
            agent: Optional[Agent] = None, now: Optional[float] = None) -> TradeRecord:
        p = win_probability(decision, historical, risk, agent)
        win = self.rng.random() < p
        volatility = decision.indicators.volatility if decision.indicators else 0.0
        payout = (1.75 + volatility * 10) if win else -1.0

        return TradeRecord(
            time=now if now is not None else time.time(),
            mode=TradeMode.SIM,
            symbol=symbol,
            amount=amount,
            decision=decision.action.value,
            result=TradeResult.WIN if win else TradeResult.LOSS,
            profit=amount * payout,
            confidence=decision.confidence,
            composite_signal=decision.composite_signal,
            regime=decision.regime.type.value,
            mood=decision.mood.mood.value if decision.mood else "",
            agent=agent.name if agent else decision.agent,
            duration=duration,
            risk_score=risk.score,
            risk_category=risk.category,
            quality=quality,
            win_probability=p,
            temporal_session=decision.temporal.session.value if decision.temporal else None,
            environment_clarity=decision.environment.clarity if decision.environment else 0.5,
        )
