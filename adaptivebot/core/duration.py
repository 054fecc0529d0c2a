from dataclasses import dataclass

from ..constants import RegimeType


@dataclass
class DurationPlan:
    seconds: int
    risk_score: float
    rationale: str


class DurationOptimizer:
    """
    Picks the contract length for each trade:
      • Regime  → strong trend = hold longer, volatile/ranging = shorter
      • Pattern strength → a strong formation justifies a longer hold
      • Volatility ratio → high vol = shorter exposure
      • Confidence → high confidence = can go longer

    Never shorter than ``min_seconds`` (15 minutes by default).
    """

    def __init__(self, granularity: int = 60, min_seconds: int = 900):
        self.granularity = granularity
        self.min_seconds = min_seconds

    def optimize(self, confidence: float, regime: RegimeType, volatility: float,
                 pattern_strength: float) -> DurationPlan:
        multiplier = 1.0
        risk = 0.5

        # ── 1. Regime ──
        if regime.is_strong:
            multiplier, risk = 1.5, 0.3
        elif regime == RegimeType.HIGH_VOLATILITY:
            multiplier, risk = 0.7, 0.7
        elif regime == RegimeType.CONSOLIDATION:
            multiplier, risk = 0.8, 0.6

        # ── 2. Pattern ──
        if pattern_strength > 0.8:
            multiplier *= 1.2
            risk *= 0.85

        # ── 3. Volatility ──
        if volatility > 0.015:
            multiplier *= 0.8
            risk *= 1.2
        elif volatility < 0.005:
            multiplier *= 1.1
            risk *= 0.9

        # ── 4. Confidence ──
        if confidence > 0.8:
            multiplier *= 1.15
            risk *= 0.9
        elif confidence < 0.6:
            multiplier *= 0.85
            risk *= 1.1

        optimized = round(self.granularity * multiplier)
        seconds = max(self.min_seconds, optimized)
        return DurationPlan(
            seconds=seconds,
            risk_score=min(risk, 1.0),
            rationale=(f"Optimized from {self.granularity}s to {seconds}s "
                       f"({regime.value}, Vol: {volatility * 100:.3f}%)"),
        )
