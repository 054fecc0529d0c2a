from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np

from ..constants import RegimeType
from ..utils.logger import log
from .trade import TradeRecord, win_rate

WEIGHT_TARGET_SUM = 4.0
WEIGHT_MIN = 0.3
WEIGHT_MAX = 2.0

# (ma, momentum, rsi, bb) per regime; anything else resets to 1.0.
REGIME_PRESETS = {
    RegimeType.STRONG_UPTREND: (1.3, 1.4, 0.8, 0.9),
    RegimeType.STRONG_DOWNTREND: (1.3, 1.4, 0.8, 0.9),
    RegimeType.HIGH_VOLATILITY: (0.7, 1.1, 1.2, 1.5),
    RegimeType.CONSOLIDATION: (0.6, 0.5, 1.4, 1.3),
}


@dataclass
class IndicatorWeights:
    ma: float = 1.0
    rsi: float = 1.0
    bb: float = 1.0
    momentum: float = 1.0
    volume: float = 1.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    def total(self) -> float:
        return self.ma + self.rsi + self.bb + self.momentum + self.volume

    def scale(self, factor: float):
        for name, value in self.as_dict().items():
            setattr(self, name, value * factor)

    # ------------------------------------------------------------------
    def update_for_regime(self, regime: RegimeType, recent: Sequence[TradeRecord]):
        """Reset to the regime preset, then scale by the recent win rate.

        ``recent`` is the newest-first slice the caller considers recent (20).
        """
        ma, momentum, rsi, bb = REGIME_PRESETS.get(regime, (1.0, 1.0, 1.0, 1.0))
        self.ma, self.momentum, self.rsi, self.bb, self.volume = ma, momentum, rsi, bb, 1.0

        wr = win_rate(recent)
        if wr > 0.65:
            self.scale(1.1)
        elif wr < 0.45:
            self.scale(0.85)

    def refine(self, history: Sequence[TradeRecord], regime: RegimeType):
        """Nudge weights from the 200 newest trades, then renormalise."""
        if len(history) < 50:
            return

        wr = win_rate(history[:200])
        if wr < 0.45:
            self.momentum *= 1.08
            self.ma *= 0.95
            self.rsi *= 1.05
        elif wr > 0.60:
            self.rsi *= 0.92
            self.bb *= 1.05
            self.momentum *= 0.97

        if regime == RegimeType.HIGH_VOLATILITY:
            self.bb *= 1.1
            self.momentum *= 0.9
        elif regime.is_strong:
            self.ma *= 1.15
            self.momentum *= 1.1

        self.normalize()
        log.debug("⚖️ Weights refined (WR %.1f%%): %s", wr * 100, self.summary())

    def normalize(self, target: float = WEIGHT_TARGET_SUM):
        """Scale to ``target`` sum with every weight inside [WEIGHT_MIN, WEIGHT_MAX].

        Finds the common factor f with sum(clip(w * f)) == target by
        bisection; the clipped sum is monotone in f.
        """
        names = list(self.as_dict())
        raw = np.array([max(getattr(self, n), 0.0) for n in names], dtype=np.float64)
        if raw.sum() <= 0:
            raw = np.ones_like(raw)

        def clipped(f: float) -> np.ndarray:
            return np.clip(raw * f, WEIGHT_MIN, WEIGHT_MAX)

        lo, hi = 0.0, 1.0
        while clipped(hi).sum() < target and hi < 1e12:
            hi *= 2.0
        for _ in range(200):
            mid = (lo + hi) / 2
            if clipped(mid).sum() < target:
                lo = mid
            else:
                hi = mid

        for name, value in zip(names, clipped(hi)):
            setattr(self, name, float(value))

    def summary(self) -> str:
        return (f"MA:{self.ma:.2f} RSI:{self.rsi:.2f} BB:{self.bb:.2f} "
                f"MOM:{self.momentum:.2f} VOL:{self.volume:.2f}")
