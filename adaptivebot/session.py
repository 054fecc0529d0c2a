import random
import time
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .config import BotConfig
from .constants import Action, ContractType, TradeMode, TradeResult
from .core.decision import Decision, DecisionEngine
from .core.duration import DurationOptimizer
from .core.risk import analyze_historical_context, assess_trade_risk, calculate_decision_quality
from .errors import InvariantViolation
from .events import (BrokerError, CandleSnapshot, Disconnected, Event, PurchaseConfirmed,
                     SellInstruction, Settlement, TickReceived, TradeRequest)
from .trading.agents import AgentPool
from .trading.journal import TradeJournal
from .trading.lock import ContractLock
from .trading.performance import PerformanceTracker, performance_analytics
from .trading.simulator import TradeSimulator
from .trading.trade import TradeRecord
from .trading.weights import IndicatorWeights
from .utils.candle import Candle, Tick
from .utils.logger import log


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradingSession:
    """All process-wide trading state behind one handle.

    Every mutation goes through the ``on_*`` handlers or the public
    operations below; the bot runtime calls them from a single task.
    """

    def __init__(self, cfg: BotConfig, journal: Optional[TradeJournal] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 now: Callable[[], datetime] = _utcnow):
        self.cfg = cfg
        self.journal = journal
        self._now = now
        rng = rng or random.Random()

        self.candles: deque[Candle] = deque(maxlen=cfg.candles_count)
        self.ticks: deque[Tick] = deque(maxlen=cfg.tick_buffer_size)
        self.weights = IndicatorWeights()
        self.agents = AgentPool(exploration_rate=cfg.exploration_rate, rng=rng)
        self.engine = DecisionEngine(self.weights, self.agents, memory_size=cfg.decision_memory)
        self.lock = ContractLock(cfg.max_lock_duration, clock=clock)
        self.perf = PerformanceTracker()
        self.simulator = TradeSimulator(rng)
        self.durations = DurationOptimizer(cfg.granularity, cfg.min_duration_seconds)

        self.history: list[TradeRecord] = journal.load_history() if journal else []
        self.balance: Optional[float] = None
        self.last_decision: Optional[Decision] = None
        self._pending_request: Optional[TradeRequest] = None
        self._sell_requested: set[str] = set()

        if journal is not None:
            journal.save_settings({
                "symbol": cfg.symbol,
                "granularity": cfg.granularity,
                "stake": cfg.stake,
                "profit_threshold": cfg.profit_threshold,
            })
            if self.history:
                log.info("📚 Loaded %d trades from journal", len(self.history))

    @property
    def mode(self) -> TradeMode:
        return TradeMode.LIVE if self.cfg.live else TradeMode.SIM

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------
    def dispatch(self, event: Event) -> Optional[SellInstruction]:
        if isinstance(event, CandleSnapshot):
            self.on_candle_snapshot(event.candles)
        elif isinstance(event, TickReceived):
            self.on_tick(event.tick)
        elif isinstance(event, PurchaseConfirmed):
            self.on_purchase_confirmed(event.contract_id, event.symbol,
                                       event.price, event.contract_type)
        elif isinstance(event, Settlement):
            return self.on_settlement(event.contract_id, event.status,
                                      event.profit, event.bid_price)
        elif isinstance(event, BrokerError):
            self.on_error(event.message, transport=event.transport)
        elif isinstance(event, Disconnected):
            self.on_disconnect(event.reason)
        else:
            log.warning("Unhandled event: %r", event)
        return None

    def on_candle_snapshot(self, candles: Iterable[Candle]):
        self.candles.clear()
        self.candles.extend(candles)
        log.info("🕯 Candles refreshed - analyzing %d candles", len(self.candles))

    def on_tick(self, tick: Tick):
        self.ticks.append(tick)
        if self.candles and tick.epoch > self.candles[-1].epoch + self.cfg.granularity:
            p = tick.price
            self.candles.append(Candle(epoch=tick.epoch, open=p, high=p, low=p, close=p))

    def on_purchase_confirmed(self, contract_id: str, symbol: str, price: float,
                              contract_type: ContractType):
        contract_id = str(contract_id)
        if any(t.contract_id == contract_id for t in self.history):
            log.warning("🚫 Duplicate confirmation for %s - ignored", contract_id)
            return

        # a contract the lock cannot take is still booked; the lock stays put
        try:
            self.lock.confirm(contract_id)
        except InvariantViolation as e:
            log.error("🚫 %s - tracking %s without the lock", e, contract_id)
            request = None
        else:
            request, self._pending_request = self._pending_request, None
        decision = request.decision if request else None
        rec = TradeRecord(
            time=self._now().timestamp(),
            mode=TradeMode.LIVE,
            symbol=symbol,
            amount=price,
            decision=decision.action.value if decision else contract_type.value,
            result=TradeResult.PENDING,
            confidence=decision.confidence if decision else 0.0,
            composite_signal=decision.composite_signal if decision else 0.0,
            regime=self.engine.regime.type.value,
            mood=decision.mood.mood.value if decision and decision.mood else "",
            agent=decision.agent if decision else self.agents.active.name,
            contract_id=contract_id,
            duration=request.duration_seconds if request else 0,
            risk_score=request.risk.score if request and request.risk else None,
            risk_category=request.risk.category if request and request.risk else None,
            quality=request.quality.grade if request and request.quality else None,
        )
        self._add_record(rec)
        log.info("✅ Live buy confirmed - %s %s $%.2f - Contract ID: %s - %s",
                 contract_type.value, symbol, price, contract_id,
                 "LOCKED" if self.lock.active_contract_id == contract_id else "UNTRACKED BY LOCK")

    def on_settlement(self, contract_id: str, status: str, profit: Optional[float] = None,
                      bid_price: Optional[float] = None) -> Optional[SellInstruction]:
        """Apply a contract update. Returns a sell instruction when an open
        contract has reached the profit threshold."""
        contract_id = str(contract_id)
        try:
            result = TradeResult(status.upper())
        except ValueError:
            log.error("❗ Unknown contract status %r for %s - ignored", status, contract_id)
            return None

        rec = next((t for t in self.history if t.contract_id == contract_id), None)
        if rec is None and contract_id != self.lock.active_contract_id:
            log.warning("🚫 Settlement for unknown contract %s - ignored (lock: %s)",
                        contract_id, self.lock.state.value)
            return None

        sell = None
        if result == TradeResult.OPEN and profit is not None:
            if profit >= self.cfg.profit_threshold and contract_id not in self._sell_requested:
                self._sell_requested.add(contract_id)
                log.info("💰 Profit threshold hit! $%.2f >= $%.2f - selling contract %s",
                         profit, self.cfg.profit_threshold, contract_id)
                sell = SellInstruction(contract_id, bid_price)

        if rec is not None:
            previous = rec.result
            rec.result = result
            if profit is not None:
                rec.profit = float(profit)
                if self.balance is not None:
                    self.balance += rec.profit - rec.previous_profit
                rec.previous_profit = rec.profit
            if self.journal is not None:
                self.journal.update_trade(rec)

            if result.is_settled and previous in (TradeResult.PENDING, TradeResult.OPEN):
                icon = "✅" if result.is_win else ("❌" if result.is_loss else "➖")
                log.info("%s Contract %s settled: %s ($%+.2f)", icon, contract_id,
                         result.value, rec.profit)
                self.record_trade_outcome(rec)
            elif result == TradeResult.OPEN:
                log.info("📈 Contract %s active - profit: $%.2f", contract_id, rec.profit)

        if result.is_settled:
            self._sell_requested.discard(contract_id)
            try:
                self.lock.release(contract_id)
            except InvariantViolation as e:
                log.warning("🚫 %s - lock untouched", e)
        return sell

    def on_error(self, message: str, transport: bool = False):
        kind = "Transport error" if transport else "API error"
        log.error("❗ %s: %s", kind, message)
        if self.lock.purchase_pending or self.lock.is_locked:
            self._pending_request = None
            self.lock.abort(f"{kind} occurred")

    def on_disconnect(self, reason: str = "connection closed"):
        log.warning("🔌 Disconnected (%s)", reason)
        self._pending_request = None
        self.lock.force_unlock("connection lost")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def run_decision_cycle(self, candles: Optional[Iterable[Candle]] = None) -> Decision:
        candles = list(self.candles if candles is None else candles)
        try:
            decision = self.engine.decide(candles, list(self.ticks), self.history, self._now())
        except Exception as e:
            log.error("Decision cycle error: %s", e, exc_info=True)
            decision = Decision.hold(f"Decision error: {e}")
        self.last_decision = decision
        return decision

    def contract_type_for(self, action: Action) -> ContractType:
        call = action.is_buy != self.cfg.contrarian
        return ContractType.CALL if call else ContractType.PUT

    def request_trade(self, decision: Decision) -> Optional[TradeRequest]:
        if decision.action == Action.HOLD:
            return None
        if self.lock.is_engaged():
            log.warning("⚠️ Contract lock active - cannot request a new contract")
            return None

        historical = analyze_historical_context(
            self.history[:20], decision.action, decision.regime.type, self._now())
        risk = assess_trade_risk(decision, historical)
        quality = calculate_decision_quality(decision)
        volatility = decision.indicators.volatility if decision.indicators else 0.0
        pattern = decision.indicators.pattern.strength if decision.indicators else 0.0
        plan = self.durations.optimize(decision.confidence, decision.regime.type,
                                       volatility, pattern)

        if risk.score > 0.75:
            log.warning("⚠️ HIGH RISK ALERT: %s - %s", risk.category, risk.recommendation)

        request = TradeRequest(
            symbol=self.cfg.symbol,
            contract_type=self.contract_type_for(decision.action),
            amount=self.cfg.stake,
            duration_seconds=plan.seconds,
            decision=decision,
            risk=risk,
            quality=quality,
        )

        if self.mode == TradeMode.LIVE:
            if not self.lock.begin_purchase(plan.seconds + self.cfg.settle_grace):
                return None
            self._pending_request = request

        log.info("📤 %s %s request %s | %ds | risk %s | quality %s | %s",
                 self.mode.value, request.contract_type.value, request.symbol,
                 plan.seconds, risk.category, quality.grade, plan.rationale)
        for insight in historical.insights[:1]:
            log.debug("📊 Context: %s", insight)
        return request

    def simulate_trade(self, request: TradeRequest) -> TradeRecord:
        decision = request.decision
        historical = analyze_historical_context(
            self.history[:20], decision.action, decision.regime.type, self._now())
        rec = self.simulator.run(
            decision, request.symbol, request.amount, request.duration_seconds,
            historical, request.risk, request.quality.grade,
            agent=self.agents.active, now=self._now().timestamp(),
        )
        self._add_record(rec)
        log.info("%s Simulated %s on %s → %s ($%+.2f) | Conf: %.0f%% | Risk: %s | Quality: %s | Agent: %s",
                 "✅" if rec.is_win else "❌", rec.decision, rec.symbol, rec.result.value,
                 rec.profit, rec.confidence * 100, rec.risk_category, rec.quality, rec.agent)
        self.record_trade_outcome(rec)
        return rec

    def record_trade_outcome(self, record: TradeRecord):
        self.perf.record(record)
        self.agents.record(record)
        if self.journal is not None:
            self.journal.save_last_trade(record)
        log.info("📊 %s", self.perf.summary())

    def auto_check(self) -> Optional[TradeRequest]:
        """Body of the auto-trading timer."""
        if self.lock.is_engaged():
            log.info("⏸ Waiting for active contract to complete (ID: %s)",
                     self.lock.active_contract_id or "pending")
            return None
        if len(self.candles) < self.cfg.min_candles:
            log.warning("⏸ Insufficient candle data for decision (%d/%d)",
                        len(self.candles), self.cfg.min_candles)
            return None

        d = self.run_decision_cycle()
        log.info("Decision: %s (%s)", d.action.value, d.reason)
        if d.action == Action.HOLD or d.confidence < self.cfg.min_trade_confidence:
            log.info("⏸ Holding - signal strength insufficient (Conf: %.0f%%)", d.confidence * 100)
            return None

        request = self.request_trade(d)
        if request is not None and self.mode == TradeMode.SIM:
            self.simulate_trade(request)
        return request

    def get_lock_state(self) -> dict:
        return self.lock.snapshot()

    def force_unlock(self):
        self._pending_request = None
        self.lock.force_unlock("manual unlock")

    def analytics(self) -> Optional[dict]:
        return performance_analytics(self.history)

    def clear_history(self):
        self.history.clear()
        self.perf.reset()
        if self.journal is not None:
            self.journal.clear_history()
        log.warning("Trade history cleared")

    # ------------------------------------------------------------------
    def _add_record(self, rec: TradeRecord):
        self.history.insert(0, rec)
        if self.journal is not None:
            self.journal.save_trade(rec)
