import asyncio
import sys
import time
from typing import Optional

# 3rd party
try:
    from BinaryOptionsToolsV2.pocketoption import PocketOptionAsync
except ImportError:
    print("ERROR: BinaryOptionsToolsV2 not installed.")
    print("Install with:  pip install binaryoptionstoolsv2")
    sys.exit(1)

from ..config import BotConfig
from ..constants import ContractType
from ..errors import ProtocolError, TransportError
from ..events import (BrokerError, CandleSnapshot, Disconnected, Event, PurchaseConfirmed,
                      SellInstruction, Settlement, TickReceived, TradeRequest)
from ..utils.candle import parse_candle, parse_tick
from ..utils.logger import log


def parse_outcome(result) -> Optional[str]:
    """Map a ``check_win`` response onto won / lost / sold; None while unresolved."""
    if isinstance(result, dict):
        text = str(result.get("result", result.get("status", ""))).lower().strip()
    else:
        text = str(result).lower().strip()

    if text not in ("win", "loss", "draw"):
        raw = str(result).lower()
        if "win" in raw:
            text = "win"
        elif "loss" in raw or "lose" in raw:
            text = "loss"
        elif "draw" in raw:
            text = "draw"
        else:
            return None
    return {"win": "won", "loss": "lost", "draw": "sold"}[text]


class PocketOptionFeed:
    """Broker adapter: every outcome is delivered as an event on ``events``."""

    def __init__(self, cfg: BotConfig, events: "asyncio.Queue[Event]"):
        self.cfg = cfg
        self.events = events
        self.client: Optional[PocketOptionAsync] = None
        self._tasks: set[asyncio.Task] = set()

    async def connect(self) -> float:
        log.info("Connecting to PocketOption …")
        try:
            self.client = PocketOptionAsync(ssid=self.cfg.ssid)
            await asyncio.sleep(3)  # allow websocket handshake
            balance = await self.client.balance()
        except Exception as e:
            raise TransportError(f"connect failed: {e}") from e
        log.info("Connected!  Balance: $%.2f", balance)
        return balance

    async def load_candles(self):
        log.info("Loading %d warmup candles …", self.cfg.candles_count)
        try:
            raw = await self.client.get_candles(
                self.cfg.symbol, self.cfg.granularity, self.cfg.candles_count)
        except Exception as e:
            raise TransportError(f"candle request failed: {e}") from e
        candles = [parse_candle(c) for c in raw]
        await self.events.put(CandleSnapshot(candles))

    async def stream(self):
        """Forward live symbol updates as ticks until the stream drops."""
        try:
            stream = await self.client.subscribe_symbol(self.cfg.symbol)
            async for raw in stream:
                await self.events.put(TickReceived(parse_tick(raw)))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error("Tick stream error: %s", e)
        await self.events.put(Disconnected("tick stream ended"))

    # ------------------------------------------------------------------
    def place(self, request: TradeRequest):
        self._spawn(self._place(request))

    def sell(self, instruction: SellInstruction):
        log.info("💸 Early sell of %s not offered by PocketOption - letting it expire",
                 instruction.contract_id)

    async def _place(self, request: TradeRequest):
        try:
            if request.contract_type == ContractType.CALL:
                trade_id, _ = await self.client.buy(
                    request.symbol, request.amount, request.duration_seconds)
            else:
                trade_id, _ = await self.client.sell(
                    request.symbol, request.amount, request.duration_seconds)
        except Exception as e:
            await self.events.put(BrokerError(f"order failed: {e}", transport=True))
            return

        contract_id = str(trade_id)
        await self.events.put(PurchaseConfirmed(
            contract_id, request.symbol, request.amount, request.contract_type))
        self._spawn(self._await_result(contract_id, request))

    async def _await_result(self, contract_id: str, request: TradeRequest):
        """Poll ``check_win`` once the contract has had time to expire."""
        placed = time.time()
        await asyncio.sleep(request.duration_seconds + 2)
        while True:
            try:
                result = await self.client.check_win(contract_id)
                log.debug("check_win(%s) raw=%r", contract_id, result)
                status = parse_outcome(result)
                if status is None:
                    raise ProtocolError(f"unrecognised check_win response {result!r}")
            except ProtocolError as e:
                log.debug("check_win pending for %s: %s", contract_id, e)
            except Exception as e:
                log.debug("check_win error for %s: %s", contract_id, e)
            else:
                profit = None
                if isinstance(result, dict) and result.get("profit") is not None:
                    profit = float(result["profit"])
                elif status == "won":
                    profit = request.amount * self.cfg.payout
                elif status == "lost":
                    profit = -request.amount
                else:
                    profit = 0.0
                await self.events.put(Settlement(contract_id, status, profit))
                return

            if time.time() - placed > request.duration_seconds + self.cfg.settle_grace:
                log.warning("Abandoning stale contract %s", contract_id)
                await self.events.put(BrokerError(
                    f"no result for contract {contract_id}", transport=True))
                return
            await asyncio.sleep(self.cfg.result_poll_interval)

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def close(self):
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
