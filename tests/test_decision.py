import random
from datetime import datetime, timezone

import pytest

from adaptivebot.constants import (
    Action, Mood, PatternSignal, RegimeType, TradeMode, TradeResult, TrendDirection,
)
from adaptivebot.core.decision import (
    Decision, DecisionEngine, calculate_adaptive_confidence, confirm_decision, consecutive_losses,
    efficiency_ratio,
)
from adaptivebot.core.environment import Environment
from adaptivebot.core.mood import MarketMood
from adaptivebot.core.patterns import NO_PATTERN, PatternResult
from adaptivebot.core.regime import Regime
from adaptivebot.core.temporal import temporal_context
from adaptivebot.trading.agents import AgentPool
from adaptivebot.trading.trade import TradeRecord
from adaptivebot.utils.candle import Candle

NOW = datetime(2026, 10, 14, 15, 30, tzinfo=timezone.utc)
SIDEWAYS = Environment(TrendDirection.SIDEWAYS, 0.3, 0.5, 0.2)


def _series(closes):
    out = []
    prev = closes[0]
    for i, c in enumerate(closes):
        out.append(Candle(epoch=i * 60, open=prev, high=max(prev, c) * 1.0005,
                          low=min(prev, c) * 0.9995, close=c))
        prev = c
    return out


def _trade(result, decision="SELL"):
    return TradeRecord(time=0.0, mode=TradeMode.SIM, symbol="EURUSD_otc", amount=1.0,
                       decision=decision, result=result)


def _engine(**kw):
    return DecisionEngine(agents=AgentPool(rng=random.Random(7)), **kw)


# ------------------------------------------------------------------
def test_insufficient_candles_hold():
    decision = _engine().decide(_series([100.0] * 10), now=NOW)
    assert decision.action == Action.HOLD
    assert decision.reason == "Insufficient data"
    assert decision.confidence == 0
    assert decision.regime.type == RegimeType.INSUFFICIENT_DATA


def test_default_decisions_do_not_share_regime():
    a, b = Decision.hold("a"), Decision.hold("b")
    assert a.regime.type == RegimeType.UNKNOWN
    assert a.regime is not b.regime


def test_steady_uptrend_never_sells():
    closes = [100 * 1.001 ** i for i in range(60)]
    engine = _engine()
    decision = engine.decide(_series(closes), now=NOW)
    assert engine.regime.type in (RegimeType.UPTREND, RegimeType.STRONG_UPTREND)
    assert not decision.action.is_sell
    assert decision.environment.trend == TrendDirection.UPTREND
    assert decision.indicators.pattern.pattern == "THREE_WHITE_SOLDIERS"


def test_wide_bar_uptrend_never_sells():
    # ~1% swings around a steady climb
    closes = [100 * 1.001 ** i * (1 + 0.0105 * (-1) ** i) for i in range(60)]
    engine = _engine()
    decision = engine.decide(_series(closes), now=NOW)
    assert decision.indicators.volatility == pytest.approx(0.012, abs=0.0015)
    assert engine.regime.type == RegimeType.UPTREND
    assert decision.regime is engine.regime
    assert decision.environment.trend == TrendDirection.UPTREND
    assert decision.environment.strength == 1.0
    assert not decision.action.is_sell


def test_rationale_contributions_sum_to_composite():
    closes = [100 * 1.001 ** i for i in range(60)]
    decision = _engine().decide(_series(closes), now=NOW)
    signals = decision.rationale.signals
    assert set(signals) == {"trend", "momentum", "rsi", "bb", "macd", "pattern", "micro", "mood"}
    total = sum(s.contribution for s in signals.values())
    assert total == pytest.approx(decision.composite_signal)
    for s in signals.values():
        assert s.contribution == pytest.approx(s.value * s.weight)


def test_low_volatility_holds():
    closes = [100.0 if i % 2 == 0 else 100.2 for i in range(60)]
    engine = _engine()
    decision = engine.decide(_series(closes), now=NOW)
    assert decision.action == Action.HOLD
    assert decision.reason == "Extremely low volatility - no edge"
    assert len(engine.memory) == 1


def test_memory_is_bounded():
    closes = [100.0 if i % 2 == 0 else 100.2 for i in range(60)]
    engine = _engine(memory_size=3)
    for _ in range(5):
        engine.decide(_series(closes), now=NOW)
    assert len(engine.memory) == 3
    assert engine.memory[-1]["regime"] == "CONSOLIDATION"


# ------------------------------------------------------------------
def test_consecutive_losses_counts_newest_run():
    trades = [_trade(TradeResult.LOSS), _trade(TradeResult.LOST), _trade(TradeResult.WIN),
              _trade(TradeResult.LOSS)]
    assert consecutive_losses(trades) == 2
    assert consecutive_losses([]) == 0


def test_confirm_no_adjustments():
    temporal = temporal_context(NOW)
    action, conf, adj = confirm_decision(Action.BUY, 0.8, NO_PATTERN, 0.01, SIDEWAYS, [], temporal)
    assert (action, conf, adj) == (Action.BUY, 0.8, ["No adjustments"])


def test_confirm_loss_streak_downgrades_strong():
    temporal = temporal_context(NOW)
    trades = [_trade(TradeResult.LOSS)] * 4
    action, conf, adj = confirm_decision(Action.STRONG_BUY, 0.9, NO_PATTERN, 0.02,
                                         SIDEWAYS, trades, temporal)
    assert action == Action.BUY
    assert conf == pytest.approx(0.72)
    assert adj == ["Loss streak penalty", "Downgraded from STRONG to regular"]


def test_confirm_same_direction_losses():
    temporal = temporal_context(NOW)
    trades = [_trade(TradeResult.WIN, "BUY"), _trade(TradeResult.LOSS, "BUY"),
              _trade(TradeResult.LOSS, "BUY")]
    action, conf, adj = confirm_decision(Action.BUY, 0.8, NO_PATTERN, 0.01,
                                         SIDEWAYS, trades, temporal)
    assert action == Action.BUY
    assert conf == pytest.approx(0.68)
    assert adj == ["Same-direction loss penalty"]


def test_confirm_high_volatility_losses_hold():
    temporal = temporal_context(NOW)
    trades = [_trade(TradeResult.LOSS)] * 3
    action, conf, adj = confirm_decision(Action.BUY, 0.9, NO_PATTERN, 0.03,
                                         SIDEWAYS, trades, temporal)
    assert action == Action.HOLD
    assert conf == 0
    assert "High volatility + losses → HOLD" in adj


def test_confirm_low_liquidity_weakens_strong():
    temporal = temporal_context(datetime(2026, 10, 14, 1, 30, tzinfo=timezone.utc))
    action, conf, adj = confirm_decision(Action.STRONG_SELL, 0.9, NO_PATTERN, 0.01,
                                         SIDEWAYS, [], temporal)
    assert action == Action.SELL
    assert conf == pytest.approx(0.81)
    assert adj == ["Low liquidity downgrade"]


def test_confirm_pattern_conflict():
    temporal = temporal_context(NOW)
    bullish = PatternResult("HAMMER", 0.75, PatternSignal.BULLISH)
    action, conf, adj = confirm_decision(Action.SELL, 0.8, bullish, 0.01,
                                         SIDEWAYS, [], temporal)
    assert action == Action.SELL
    assert conf == pytest.approx(0.68)
    assert adj == ["Pattern-decision conflict"]


def test_confirm_vetoes_against_strong_trend():
    temporal = temporal_context(NOW)
    up = Environment(TrendDirection.UPTREND, 0.9, 0.7, 0.2)
    down = Environment(TrendDirection.DOWNTREND, 0.9, 0.7, 0.2)

    action, conf, adj = confirm_decision(Action.SELL, 0.9, NO_PATTERN, 0.01, up, [], temporal)
    assert (action, conf) == (Action.HOLD, 0.0)
    assert adj == ["Vetoed SELL against strong uptrend"]

    action, conf, adj = confirm_decision(Action.STRONG_BUY, 0.9, NO_PATTERN, 0.01, down, [], temporal)
    assert (action, conf) == (Action.HOLD, 0.0)
    assert adj == ["Vetoed BUY against strong downtrend"]


def test_confirm_confidence_floor():
    temporal = temporal_context(NOW)
    action, conf, adj = confirm_decision(Action.BUY, 0.4, NO_PATTERN, 0.01, SIDEWAYS, [], temporal)
    assert action == Action.HOLD
    assert conf == pytest.approx(0.4)
    assert adj == ["Confidence below threshold"]


# ------------------------------------------------------------------
def test_adaptive_confidence_is_clamped():
    temporal = temporal_context(NOW)
    calm = MarketMood(Mood.NEUTRAL, 0.0, 0.5)
    weak = calculate_adaptive_confidence(0.0, NO_PATTERN, 0.01, [], Regime(RegimeType.NEUTRAL, confidence=0.5),
                                         calm, temporal, 0.5)
    assert weak == 0.25

    strong_pattern = PatternResult("THREE_WHITE_SOLDIERS", 0.9, PatternSignal.STRONG_BULLISH)
    hot = MarketMood(Mood.BULLISH, 1.0, 1.0)
    strong = calculate_adaptive_confidence(50.0, strong_pattern, 0.01, [], Regime(RegimeType.STRONG_UPTREND, confidence=1.0),
                                           hot, temporal, 0.9)
    assert strong == 0.98


def test_efficiency_ratio():
    assert efficiency_ratio([1.0] * 5) == 0.0
    assert efficiency_ratio([float(i) for i in range(20)]) == pytest.approx(19 / 20)
