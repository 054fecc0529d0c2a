from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..constants import MicroPrediction
from ..utils.candle import Candle, Tick

MICRO_WEIGHT = 0.6
MICRO_DIRECTION = {
    MicroPrediction.BULLISH_CONTINUATION: 1,
    MicroPrediction.BEARISH_CONTINUATION: -1,
}


@dataclass
class MicroStructure:
    momentum: float
    volatility: float
    prediction: MicroPrediction
    confidence: float

    @property
    def direction(self) -> int:
        return MICRO_DIRECTION.get(self.prediction, 0)

    @property
    def signal(self) -> float:
        return self.direction * MICRO_WEIGHT


def analyze_micro_structure(ticks: Sequence[Tick], current: Optional[Candle]) -> MicroStructure:
    if len(ticks) < 10:
        return MicroStructure(0.0, 0.0, MicroPrediction.UNCERTAIN, 0.0)

    recent = list(ticks)[-20:]
    prices = np.array([t.price for t in recent], dtype=np.float64)
    avg = float(np.mean(prices))

    momentum = float((prices[-1] - prices[0]) / prices[0]) if prices[0] else 0.0
    micro_vol = float(np.std(prices)) / avg if avg else 0.0

    if micro_vol > 0.001 and momentum > 0.0005:
        prediction = MicroPrediction.BULLISH_CONTINUATION
    elif micro_vol > 0.001 and momentum < -0.0005:
        prediction = MicroPrediction.BEARISH_CONTINUATION
    elif micro_vol < 0.0003:
        prediction = MicroPrediction.CONSOLIDATION_LIKELY
    elif current is not None and current.body < current.range * 0.2:
        prediction = MicroPrediction.DOJI_FORMING
    else:
        prediction = MicroPrediction.UNCERTAIN

    return MicroStructure(
        momentum=momentum,
        volatility=micro_vol,
        prediction=prediction,
        confidence=min(len(recent) / 20, 1.0),
    )
