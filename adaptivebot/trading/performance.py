from collections import deque
from typing import Optional, Sequence

from .trade import TradeRecord


class PerformanceTracker:
    def __init__(self):
        self.wins = 0
        self.losses = 0
        self.draws = 0
        self.total_profit = 0.0
        self.consec_losses = 0
        self.max_drawdown = 0.0
        self._peak = 0.0
        self.regime_history: deque[dict] = deque(maxlen=100)

    @property
    def total(self):
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self):
        t = self.wins + self.losses
        return self.wins / t if t > 0 else 0.5

    def record(self, rec: TradeRecord):
        self.total_profit += rec.profit or 0.0
        if rec.is_win:
            self.wins += 1
            self.consec_losses = 0
        elif rec.is_loss:
            self.losses += 1
            self.consec_losses += 1
        else:
            self.draws += 1

        self.regime_history.append({
            "time": rec.time,
            "regime": rec.regime,
            "result": rec.result.value,
            "agent": rec.agent,
        })

        # Drawdown
        if self.total_profit > self._peak:
            self._peak = self.total_profit
        dd = self._peak - self.total_profit
        if dd > self.max_drawdown:
            self.max_drawdown = dd

    def reset(self):
        self.__init__()

    def summary(self) -> str:
        return (
            f"W:{self.wins} L:{self.losses} D:{self.draws} "
            f"WR:{self.win_rate:.1%} "
            f"P&L:${self.total_profit:+.2f} "
            f"MaxDD:${self.max_drawdown:.2f} "
            f"Streak:{'L' if self.consec_losses else 'OK'}{self.consec_losses}"
        )


def _bucket(groups: dict, key, rec: TradeRecord):
    if not key:
        return
    g = groups.setdefault(key, {"trades": 0, "wins": 0, "profit": 0.0})
    g["trades"] += 1
    if rec.is_win:
        g["wins"] += 1
    g["profit"] += rec.profit or 0.0


def performance_analytics(history: Sequence[TradeRecord]) -> Optional[dict]:
    """Breakdown of a newest-first trade history by regime, agent, mood,
    session and risk category, plus overall totals and the recent-20 trend."""
    if not history:
        return None

    wins = sum(1 for t in history if t.is_win)
    losses = sum(1 for t in history if t.is_loss)
    total_profit = sum(t.profit or 0.0 for t in history)

    groups = {name: {} for name in ("by_regime", "by_agent", "by_mood", "by_session", "by_risk")}
    for t in history:
        _bucket(groups["by_regime"], t.regime, t)
        _bucket(groups["by_agent"], t.agent, t)
        _bucket(groups["by_mood"], t.mood, t)
        _bucket(groups["by_session"], t.temporal_session, t)
        _bucket(groups["by_risk"], t.risk_category, t)
    for table in groups.values():
        for g in table.values():
            g["win_rate"] = g["wins"] / g["trades"]

    recent = history[:20]
    recent_wins = sum(1 for t in recent if t.is_win)
    return {
        "overall": {
            "total_trades": len(history),
            "wins": wins,
            "losses": losses,
            "win_rate": wins / len(history),
            "total_profit": total_profit,
            "avg_profit": total_profit / len(history),
        },
        **groups,
        "recent_trend": {
            "trades": len(recent),
            "wins": recent_wins,
            "win_rate": recent_wins / len(recent),
            "profit": sum(t.profit or 0.0 for t in recent),
            "avg_confidence": sum(t.confidence or 0.0 for t in recent) / len(recent),
        },
    }
