import random
from datetime import datetime, timezone

import pytest

from adaptivebot.config import BotConfig
from adaptivebot.constants import Action, ContractType, LockState, TradeMode, TradeResult
from adaptivebot.core.decision import Decision
from adaptivebot.events import (
    BrokerError, Disconnected, PurchaseConfirmed, SellInstruction, Settlement, TickReceived,
)
from adaptivebot.session import TradingSession
from adaptivebot.trading.journal import TradeJournal
from adaptivebot.utils.candle import Candle, Tick

NOW = datetime(2026, 10, 14, 15, 30, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t


def _session(live=True, journal=None, **cfg):
    clock = _Clock()
    s = TradingSession(BotConfig(live=live, **cfg), journal=journal, rng=random.Random(1),
                       clock=clock, now=lambda: NOW)
    return s, clock


def _buy(confidence=0.8):
    return Decision(Action.BUY, "Bullish composite signal", confidence, composite_signal=3.0)


def _flat(n):
    return [Candle(epoch=i * 60, open=1.1, high=1.1, low=1.1, close=1.1) for i in range(n)]


# ------------------------------------------------------------------
def test_sim_trades_never_lock():
    s, _ = _session(live=False)
    request = s.request_trade(_buy())
    assert request is not None
    assert request.duration_seconds >= 900
    assert s.lock.state == LockState.UNLOCKED

    rec = s.simulate_trade(request)
    assert rec.mode == TradeMode.SIM
    assert rec.result in (TradeResult.WIN, TradeResult.LOSS)
    assert 0.28 <= rec.win_probability <= 0.83
    assert s.history[0] is rec
    assert s.perf.total == 1
    assert s.lock.state == LockState.UNLOCKED


def test_hold_is_never_requested():
    s, _ = _session()
    assert s.request_trade(Decision.hold("nothing")) is None
    assert s.lock.state == LockState.UNLOCKED


def test_live_flow_request_confirm_settle():
    s, _ = _session()
    s.balance = 100.0
    request = s.request_trade(_buy())
    assert request.contract_type == ContractType.CALL
    assert request.amount == 1.0
    assert s.lock.purchase_pending
    assert s.request_trade(_buy()) is None

    s.dispatch(PurchaseConfirmed("42", "EURUSD_otc", 1.0, ContractType.CALL))
    assert s.lock.is_locked
    rec = s.history[0]
    assert (rec.contract_id, rec.decision, rec.result) == ("42", "BUY", TradeResult.PENDING)
    assert rec.duration == request.duration_seconds

    assert s.dispatch(Settlement("42", "open", profit=0.3)) is None
    assert rec.result == TradeResult.OPEN
    assert s.balance == pytest.approx(100.3)

    assert s.dispatch(Settlement("42", "won", profit=0.85)) is None
    assert rec.result == TradeResult.WON
    assert s.balance == pytest.approx(100.85)
    assert s.lock.state == LockState.UNLOCKED
    assert s.perf.wins == 1


def test_profit_threshold_sells_once():
    s, _ = _session(profit_threshold=0.5)
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)

    sell = s.on_settlement("42", "open", profit=0.6, bid_price=1.55)
    assert sell == SellInstruction("42", 1.55)
    assert s.on_settlement("42", "open", profit=0.7, bid_price=1.6) is None

    s.on_settlement("42", "sold", profit=0.7)
    assert s.lock.state == LockState.UNLOCKED
    assert s.history[0].result == TradeResult.SOLD
    assert s.perf.draws == 1


def test_unknown_contract_settlement_ignored():
    s, _ = _session()
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)

    assert s.on_settlement("99", "won", profit=1.0) is None
    assert s.lock.is_locked
    assert s.lock.active_contract_id == "42"
    assert s.history[0].result == TradeResult.PENDING


def test_malformed_status_leaves_lock():
    s, _ = _session()
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)
    assert s.on_settlement("42", "exploded") is None
    assert s.lock.is_locked


def test_second_confirmation_keeps_lock_but_is_booked():
    s, _ = _session()
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)
    s.on_purchase_confirmed("43", "EURUSD_otc", 1.0, ContractType.CALL)
    assert s.lock.active_contract_id == "42"
    assert [t.contract_id for t in s.history] == ["43", "42"]


def test_duplicate_confirmation_ignored():
    s, _ = _session()
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)
    assert len(s.history) == 1
    assert s.lock.is_locked


def test_late_confirmation_does_not_lose_the_newer_contract():
    s, clock = _session()
    first = s.request_trade(_buy())
    clock.t += first.duration_seconds + s.cfg.settle_grace + 1
    second = s.request_trade(_buy())
    assert second is not None

    # the timed-out order confirms first and takes the lock
    s.on_purchase_confirmed("A", "EURUSD_otc", 1.0, ContractType.CALL)
    s.on_purchase_confirmed("B", "EURUSD_otc", 1.0, ContractType.CALL)
    assert s.lock.active_contract_id == "A"
    assert [t.contract_id for t in s.history] == ["B", "A"]

    s.on_settlement("B", "won", profit=0.85)
    assert s.history[0].result == TradeResult.WON
    assert s.perf.wins == 1
    assert s.lock.active_contract_id == "A"

    s.on_settlement("A", "lost", profit=-1.0)
    assert s.perf.losses == 1
    assert s.lock.state == LockState.UNLOCKED


def test_error_releases_pending_lock():
    s, _ = _session()
    s.request_trade(_buy())
    s.dispatch(BrokerError("insufficient balance"))
    assert s.lock.state == LockState.UNLOCKED
    assert s.request_trade(_buy()) is not None


def test_disconnect_releases_lock():
    s, _ = _session()
    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "EURUSD_otc", 1.0, ContractType.CALL)
    s.dispatch(Disconnected("socket closed"))
    assert s.lock.state == LockState.UNLOCKED


def test_lock_outlives_the_contract_it_guards():
    s, clock = _session()
    request = s.request_trade(_buy())
    s.on_purchase_confirmed("A", "EURUSD_otc", 1.0, ContractType.CALL)
    clock.t += request.duration_seconds + 1
    assert s.request_trade(_buy()) is None
    assert s.lock.active_contract_id == "A"


def test_stale_lock_clears_on_next_request():
    s, clock = _session(max_lock_duration=900.0)
    request = s.request_trade(_buy())
    clock.t += request.duration_seconds + s.cfg.settle_grace + 1
    assert s.request_trade(_buy()) is not None
    assert s.lock.purchase_pending


def test_contrarian_mapping():
    s, _ = _session(contrarian=True)
    assert s.contract_type_for(Action.BUY) == ContractType.PUT
    assert s.contract_type_for(Action.STRONG_SELL) == ContractType.CALL
    s.cfg.contrarian = False
    assert s.contract_type_for(Action.STRONG_BUY) == ContractType.CALL


# ------------------------------------------------------------------
def test_decision_cycle_error_becomes_hold(monkeypatch):
    s, _ = _session()

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(s.engine, "decide", boom)
    d = s.run_decision_cycle(_flat(60))
    assert d.action == Action.HOLD
    assert d.reason == "Decision error: boom"
    assert s.last_decision is d


def test_auto_check_waits_for_lock(monkeypatch):
    s, _ = _session()
    s.on_candle_snapshot(_flat(60))
    s.request_trade(_buy())

    def fail(*args, **kwargs):
        raise AssertionError("decision cycle must not run while locked")

    monkeypatch.setattr(s, "run_decision_cycle", fail)
    assert s.auto_check() is None


def test_auto_check_needs_candles():
    s, _ = _session()
    s.on_candle_snapshot(_flat(10))
    assert s.auto_check() is None
    assert s.last_decision is None


def test_auto_check_sim_trades_inline(monkeypatch):
    s, _ = _session(live=False)
    s.on_candle_snapshot(_flat(60))
    monkeypatch.setattr(s.engine, "decide", lambda *a, **kw: _buy())
    request = s.auto_check()
    assert request is not None
    assert len(s.history) == 1
    assert s.lock.state == LockState.UNLOCKED


def test_auto_check_respects_confidence_gate(monkeypatch):
    s, _ = _session(live=False, min_trade_confidence=0.55)
    s.on_candle_snapshot(_flat(60))
    monkeypatch.setattr(s.engine, "decide", lambda *a, **kw: _buy(confidence=0.5))
    assert s.auto_check() is None
    assert s.history == []


# ------------------------------------------------------------------
def test_tick_synthesises_candle_after_gap():
    s, _ = _session(granularity=60)
    s.on_candle_snapshot(_flat(3))
    s.dispatch(TickReceived(Tick(epoch=150.0, price=1.2)))
    assert len(s.candles) == 3
    s.dispatch(TickReceived(Tick(epoch=181.0, price=1.3)))
    assert len(s.candles) == 4
    assert s.candles[-1].close == 1.3
    assert len(s.ticks) == 2


def test_journal_backed_session():
    journal = TradeJournal(":memory:")
    s, _ = _session(journal=journal, symbol="GBPUSD_otc", stake=2.0)
    assert journal.load_settings()["symbol"] == "GBPUSD_otc"

    s.request_trade(_buy())
    s.on_purchase_confirmed("42", "GBPUSD_otc", 2.0, ContractType.CALL)
    s.on_settlement("42", "lost", profit=-2.0)

    stored = journal.find_by_contract("42")
    assert stored.result == TradeResult.LOST
    assert stored.profit == -2.0
    assert journal.load_last_trade()["result"] == "LOST"

    s2, _ = _session(journal=journal)
    assert [t.contract_id for t in s2.history] == ["42"]

    s2.clear_history()
    assert journal.total_trades() == 0
    assert s2.analytics() is None
