import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..utils.logger import log
from .trade import TradeRecord
from .weights import IndicatorWeights


@dataclass
class Agent:
    name: str
    weights: dict[str, float]               # ma / momentum / rsi / bb multipliers
    wins: int = 0
    trades: int = 0
    win_rate: float = 0.5

    @property
    def score(self) -> float:
        return self.win_rate * 0.7 + (0.3 if self.trades > 10 else 0.0)

    def stats(self) -> dict:
        return {"win_rate": self.win_rate, "trades": self.trades}


def default_agents() -> list[Agent]:
    return [
        Agent("trend_focus", {"ma": 1.3, "momentum": 0.7, "rsi": 0.9, "bb": 1.0}),
        Agent("momentum_focus", {"ma": 0.7, "momentum": 1.4, "rsi": 1.1, "bb": 0.8}),
        Agent("balanced", {"ma": 1.0, "momentum": 1.0, "rsi": 1.0, "bb": 1.0}),
        Agent("volatility_rider", {"ma": 0.8, "momentum": 1.2, "rsi": 0.7, "bb": 1.3}),
    ]


@dataclass
class AgentPool:
    """Fixed set of strategy profiles with an explore/exploit selector."""

    agents: list[Agent] = field(default_factory=default_agents)
    exploration_rate: float = 0.10
    min_history: int = 20
    window: int = 100
    rng: random.Random = field(default_factory=random.Random)
    active: Optional[Agent] = None

    def __post_init__(self):
        if self.active is None:
            self.active = self.get("balanced") or self.agents[0]

    def get(self, name: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.name == name:
                return agent
        return None

    def select(self, history: Sequence[TradeRecord]) -> Agent:
        if len(history) < self.min_history:
            return self.active

        recent = history[:self.window]
        for agent in self.agents:
            mine = [t for t in recent if t.agent == agent.name]
            agent.trades = len(mine)
            agent.wins = sum(1 for t in mine if t.is_win)
            agent.win_rate = agent.wins / agent.trades if agent.trades else 0.5

        if self.rng.random() < self.exploration_rate:
            chosen = self.agents[self.rng.randrange(len(self.agents))]
            log.debug("🎲 Exploring agent %s", chosen.name)
        else:
            chosen = max(self.agents, key=lambda a: a.score)

        if chosen is not self.active:
            log.info("🤖 Agent switch: %s → %s (WR %.1f%%, %d trades)",
                     self.active.name, chosen.name, chosen.win_rate * 100, chosen.trades)
        self.active = chosen
        return chosen

    def record(self, record: TradeRecord):
        agent = self.get(record.agent)
        if agent is None:
            return
        agent.trades += 1
        if record.is_win:
            agent.wins += 1
        agent.win_rate = agent.wins / agent.trades


def effective_weights(weights: IndicatorWeights, agent: Agent) -> dict[str, float]:
    return {
        name: getattr(weights, name) * agent.weights[name]
        for name in ("ma", "momentum", "rsi", "bb")
    }
