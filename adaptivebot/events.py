from dataclasses import dataclass
from typing import Optional, Union

from .constants import ContractType
from .core.decision import Decision
from .core.risk import DecisionQuality, RiskAssessment
from .utils.candle import Candle, Tick


# --- inbound: broker → session ------------------------------------------

@dataclass
class CandleSnapshot:
    candles: list[Candle]


@dataclass
class TickReceived:
    tick: Tick


@dataclass
class PurchaseConfirmed:
    contract_id: str
    symbol: str
    price: float
    contract_type: ContractType


@dataclass
class Settlement:
    contract_id: str
    status: str                             # open / won / lost / sold
    profit: Optional[float] = None
    bid_price: Optional[float] = None


@dataclass
class BrokerError:
    message: str
    transport: bool = False                 # order/feed failure vs error-bearing message


@dataclass
class Disconnected:
    reason: str = "connection closed"


Event = Union[CandleSnapshot, TickReceived, PurchaseConfirmed, Settlement, BrokerError, Disconnected]


# --- outbound: session → broker -----------------------------------------

@dataclass
class TradeRequest:
    symbol: str
    contract_type: ContractType
    amount: float
    duration_seconds: int
    decision: Optional[Decision] = None
    risk: Optional[RiskAssessment] = None
    quality: Optional[DecisionQuality] = None


@dataclass
class SellInstruction:
    contract_id: str
    price: Optional[float] = None
