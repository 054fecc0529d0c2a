from dataclasses import asdict, dataclass, fields
from typing import Optional

from ..constants import TradeMode, TradeResult


@dataclass
class TradeRecord:
    time: float                             # epoch seconds (UTC)
    mode: TradeMode
    symbol: str
    amount: float
    decision: str                           # engine action, e.g. "STRONG BUY"
    result: TradeResult = TradeResult.PENDING
    profit: float = 0.0
    confidence: float = 0.0
    composite_signal: float = 0.0
    regime: str = ""
    mood: str = ""
    agent: str = ""
    contract_id: Optional[str] = None       # live trades only
    duration: int = 0                       # contract length in seconds
    risk_score: Optional[float] = None
    risk_category: Optional[str] = None
    quality: Optional[str] = None
    win_probability: Optional[float] = None # simulated trades only
    temporal_session: Optional[str] = None
    environment_clarity: Optional[float] = None
    previous_profit: float = 0.0            # last profit already booked to balance

    @property
    def is_win(self) -> bool:
        return self.result.is_win

    @property
    def is_loss(self) -> bool:
        return self.result.is_loss

    def to_dict(self) -> dict:
        d = asdict(self)
        d["mode"] = self.mode.value
        d["result"] = self.result.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TradeRecord":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in d.items() if k in known}
        data["mode"] = TradeMode(data.get("mode", TradeMode.SIM.value))
        data["result"] = TradeResult(data.get("result", TradeResult.PENDING.value))
        return cls(**data)


def win_rate(trades, default: float = 0.5) -> float:
    """Share of WIN/WON results among ``trades``; ``default`` when empty."""
    trades = list(trades)
    if not trades:
        return default
    return sum(1 for t in trades if t.is_win) / len(trades)
