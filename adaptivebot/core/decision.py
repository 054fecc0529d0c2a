"""Decision engine: fuses weighted indicator, pattern, micro-structure and
mood signals into a composite score, derives an action and then runs the
multi-stage confirmation chain over it."""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..constants import Action, Mood, RegimeType, TrendDirection
from ..errors import DataInsufficient
from ..trading.agents import AgentPool, effective_weights
from ..trading.trade import TradeRecord, win_rate
from ..trading.weights import IndicatorWeights
from ..utils.candle import Candle, Tick
from ..utils.logger import log
from .environment import Environment, Rationale, analyze_environment, build_rationale
from .indicators import BollingerBand, atr, bollinger, macd, moving_average, rolling_volatility, rsi
from .microstructure import MICRO_WEIGHT, MicroStructure, analyze_micro_structure
from .mood import MarketMood, market_mood
from .patterns import PatternResult, identify_pattern
from .regime import MIN_CANDLES, Regime, RegimeDetector
from .temporal import TemporalContext, temporal_context

VOLATILITY_FLOOR = 0.002
MACD_WEIGHT = 0.8
MOOD_WEIGHT = 0.5
MIN_CONFIRMED_CONFIDENCE = 0.45


@dataclass
class IndicatorSnapshot:
    price: float
    ma14: float
    ma50: float
    rsi: float
    bb: BollingerBand
    macd: float                             # histogram
    volatility: float                       # stddev(20) / price
    atr: Optional[float]
    pattern: PatternResult
    micro: MicroStructure


@dataclass
class Decision:
    action: Action
    reason: str
    confidence: float
    composite_signal: float = 0.0
    indicators: Optional[IndicatorSnapshot] = None
    regime: Regime = field(default_factory=lambda: Regime(RegimeType.UNKNOWN))
    mood: Optional[MarketMood] = None
    temporal: Optional[TemporalContext] = None
    environment: Optional[Environment] = None
    rationale: Optional[Rationale] = None
    agent: str = ""
    agent_stats: dict = field(default_factory=dict)
    weights: dict[str, float] = field(default_factory=dict)
    adjustments: list[str] = field(default_factory=list)

    @classmethod
    def hold(cls, reason: str, **kw) -> "Decision":
        return cls(action=Action.HOLD, reason=reason, confidence=0.0, **kw)


def efficiency_ratio(closes: Sequence[float], period: int = 20) -> float:
    """Net move over the window divided by the summed absolute moves."""
    if len(closes) < period:
        return 0.0
    recent = list(closes)[-period:]
    net = recent[-1] - recent[0]
    avg_change = sum(abs(b - a) for a, b in zip(recent, recent[1:])) / (period - 1)
    return abs(net) / (avg_change * period or 1)


def calculate_adaptive_confidence(composite: float, pattern: PatternResult, volatility: float,
                                  closes: Sequence[float], regime: Regime, mood: MarketMood,
                                  temporal: TemporalContext, recent_win_rate: float) -> float:
    strength = abs(composite)
    confidence = min(strength / 5, 1.0) * 0.5
    confidence += strength / 10 * 0.15
    confidence *= regime.confidence

    if pattern.strength > 0.7:
        confidence += 0.1 * pattern.strength
    confidence += mood.strength * 0.08

    if recent_win_rate > 0.6:
        confidence *= 1.1
    elif recent_win_rate < 0.4:
        confidence *= 0.85

    confidence *= temporal.confidence_modifier

    if volatility > 0.018:
        confidence *= 0.9
    if efficiency_ratio(closes) > 0.6:
        confidence *= 1.08

    return max(0.25, min(0.98, confidence * 1.05))


def consecutive_losses(trades: Sequence[TradeRecord]) -> int:
    """Length of the losing run at the newest end of ``trades``."""
    n = 0
    for t in trades:
        if not t.is_loss:
            break
        n += 1
    return n


def confirm_decision(action: Action, confidence: float, pattern: PatternResult,
                     volatility: float, environment: Environment,
                     recent_trades: Sequence[TradeRecord],
                     temporal: TemporalContext) -> tuple[Action, float, list[str]]:
    """Apply the confirmation chain in order. ``recent_trades`` is newest-first."""
    adjusted, conf = action, confidence
    adjustments: list[str] = []

    last5 = list(recent_trades[:5])
    streak = consecutive_losses(last5)

    if streak >= 4:
        conf *= 0.8
        adjustments.append("Loss streak penalty")
        if action.is_strong and volatility > 0.015:
            adjusted = action.weakened()
            adjustments.append("Downgraded from STRONG to regular")

    same_dir = [t for t in last5 if t.decision == action.value]
    if len(same_dir) >= 3 and sum(1 for t in same_dir if t.is_loss) >= 2:
        conf *= 0.85
        adjustments.append("Same-direction loss penalty")

    if volatility > 0.025 and streak >= 3:
        adjusted, conf = Action.HOLD, 0.0
        adjustments.append("High volatility + losses → HOLD")

    if temporal.liquidity_score < 0.7 and action.is_strong:
        if adjusted != Action.HOLD:
            adjusted = adjusted.weakened()
        conf *= 0.9
        adjustments.append("Low liquidity downgrade")

    if (pattern.signal.is_bullish and action.is_sell) or (pattern.signal.is_bearish and action.is_buy):
        conf *= 0.85
        adjustments.append("Pattern-decision conflict")

    if environment.strength > 0.7:
        if environment.trend == TrendDirection.UPTREND and adjusted.is_sell:
            adjusted, conf = Action.HOLD, 0.0
            adjustments.append("Vetoed SELL against strong uptrend")
        elif environment.trend == TrendDirection.DOWNTREND and adjusted.is_buy:
            adjusted, conf = Action.HOLD, 0.0
            adjustments.append("Vetoed BUY against strong downtrend")

    if conf < MIN_CONFIRMED_CONFIDENCE and adjusted != Action.HOLD:
        adjusted = Action.HOLD
        adjustments.append("Confidence below threshold")

    return adjusted, max(0.0, min(1.0, conf)), adjustments or ["No adjustments"]


class DecisionEngine:
    def __init__(self, weights: Optional[IndicatorWeights] = None,
                 agents: Optional[AgentPool] = None, memory_size: int = 50):
        self.weights = weights or IndicatorWeights()
        self.agents = agents or AgentPool()
        self.regime = Regime(RegimeType.UNKNOWN)
        self.memory: deque[dict] = deque(maxlen=memory_size)

    # ------------------------------------------------------------------
    def decide(self, candles: Sequence[Candle], ticks: Sequence[Tick] = (),
               history: Sequence[TradeRecord] = (), now: Optional[datetime] = None) -> Decision:
        """One decision cycle. ``history`` is the newest-first trade list."""
        try:
            return self._decide(list(candles), ticks, list(history), now)
        except DataInsufficient as e:
            return Decision.hold(str(e), regime=self.regime)

    def _decide(self, candles: list[Candle], ticks: Sequence[Tick],
                history: list[TradeRecord], now: Optional[datetime]) -> Decision:
        if len(candles) < MIN_CANDLES:
            self.regime = RegimeDetector.detect(candles)
            raise DataInsufficient("Insufficient data")

        now = now or datetime.now(timezone.utc)
        closes = [c.close for c in candles]

        ma14 = moving_average(closes, 14)[-1]
        ma50 = moving_average(closes, 50)[-1]
        rsi_now = rsi(closes, 14)[-1]
        bb_now = bollinger(closes, 20, 2.0)[-1]
        macd_now = macd(closes).histogram[-1]
        atr_now = atr(candles, 14)[-1]
        price, prev_price = closes[-1], closes[-2]
        volatility = rolling_volatility(closes, 20) / price if price else 0.0
        if rsi_now is None:
            rsi_now = 50.0

        self.regime = RegimeDetector.detect(candles)
        recent = history[:20]
        recent_wr = win_rate(recent)

        self.weights.update_for_regime(self.regime.type, recent)
        self.weights.refine(history, self.regime.type)
        agent = self.agents.select(history)
        weights = effective_weights(self.weights, agent)

        mood = market_mood(candles)
        temporal = temporal_context(now)
        pattern = identify_pattern(candles)
        micro = analyze_micro_structure(ticks, candles[-1])

        if ma14 is None or bb_now is None:
            raise DataInsufficient("Indicators not ready")

        indicators = IndicatorSnapshot(
            price=price, ma14=ma14, ma50=ma50, rsi=rsi_now, bb=bb_now, macd=macd_now,
            volatility=volatility, atr=atr_now, pattern=pattern, micro=micro,
        )
        environment = analyze_environment(price, ma14, ma50, rsi_now, bb_now, volatility)

        # --- unweighted readings ---
        values = {
            "trend": 1.0 if price > ma14 else -1.0,
            "momentum": (price - prev_price) / prev_price * 1000 if prev_price else 0.0,
            "rsi": 1.0 if rsi_now < 30 else (-1.0 if rsi_now > 70 else 0.0),
            "bb": 1.0 if price <= bb_now.lower else (-1.0 if price >= bb_now.upper else 0.0),
            "macd": 1.0 if macd_now > 0 else -1.0,
            "pattern": (pattern.strength if pattern.signal.is_bullish
                        else -pattern.strength if pattern.signal.is_bearish else 0.0),
            "micro": float(micro.direction),
            "mood": (mood.strength if mood.mood == Mood.BULLISH
                     else -mood.strength if mood.mood == Mood.BEARISH else 0.0),
        }
        factors = {
            "trend": weights["ma"], "momentum": weights["momentum"],
            "rsi": weights["rsi"], "bb": weights["bb"], "macd": MACD_WEIGHT,
            "pattern": 1.0, "micro": MICRO_WEIGHT, "mood": MOOD_WEIGHT,
        }
        rationale = build_rationale(values, factors, mood, temporal, environment)
        composite = rationale.composite

        confidence = calculate_adaptive_confidence(
            composite, pattern, volatility, closes, self.regime, mood, temporal, recent_wr)

        context = dict(
            composite_signal=composite, indicators=indicators, regime=self.regime,
            mood=mood, temporal=temporal, environment=environment, rationale=rationale,
            agent=agent.name, agent_stats=agent.stats(), weights=weights,
        )

        if volatility < VOLATILITY_FLOOR:
            decision = Decision.hold("Extremely low volatility - no edge", **context)
            self._remember(decision, now)
            return decision

        # --- thresholds ---
        env_mult = 1.1 if environment.clarity > 0.6 else 0.95
        threshold = 2.0 / env_mult
        strong = 4.0 / env_mult
        tag = f"{self.regime.type.value} | {pattern.pattern} | {mood.mood.value}"

        if composite > threshold and confidence > 0.55:
            action = Action.STRONG_BUY if composite > strong else Action.BUY
            reason = f"Bullish composite signal ({composite:.2f}) | {tag}"
        elif composite < -threshold and confidence > 0.55:
            action = Action.STRONG_SELL if composite < -strong else Action.SELL
            reason = f"Bearish composite signal ({composite:.2f}) | {tag}"
        elif abs(composite) > 1.5 and confidence > 0.7 and environment.clarity > 0.5:
            action = Action.BUY if composite > 0 else Action.SELL
            reason = (f"Moderate {'bullish' if composite > 0 else 'bearish'} "
                      f"signal with high confidence and clarity")
        else:
            action = Action.HOLD
            reason = (f"Insufficient signal strength ({composite:.2f}) or confidence "
                      f"({confidence * 100:.0f}%) | Clarity: {environment.clarity:.2f}")

        action, confidence, adjustments = confirm_decision(
            action, confidence, pattern, volatility, environment, recent, temporal)
        adjustments = [a for a in adjustments if a != "No adjustments"]

        if mood.strength > 0.6:
            if mood.mood == Mood.BULLISH and action.is_sell:
                confidence *= 0.88
                adjustments.append("Mood conflict: bullish mood vs sell signal")
            elif mood.mood == Mood.BEARISH and action.is_buy:
                confidence *= 0.88
                adjustments.append("Mood conflict: bearish mood vs buy signal")

        last = next((t for t in history if t.result.is_settled), None)
        if last is not None and last.is_loss and action != Action.HOLD and last.decision == action.value:
            confidence *= 0.82
            adjustments.append("Penalized: repeating last losing direction")

        if adjustments:
            reason += " | Adjustments: " + ", ".join(adjustments)
        else:
            adjustments = ["No adjustments"]

        decision = Decision(action=action, reason=reason, confidence=confidence,
                            adjustments=adjustments, **context)
        self._remember(decision, now)
        log.info("🧭 Decision: %s (%.0f%%) signal=%+.2f regime=%s agent=%s",
                 action.value, confidence * 100, composite, self.regime.type.value, agent.name)
        return decision

    def _remember(self, decision: Decision, now: datetime):
        self.memory.append({
            "time": now.isoformat(),
            "decision": decision.action.value,
            "confidence": decision.confidence,
            "composite_signal": decision.composite_signal,
            "mood": decision.mood.mood.value if decision.mood else None,
            "regime": decision.regime.type.value,
        })
