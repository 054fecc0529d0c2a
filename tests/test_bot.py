import asyncio
import random
from datetime import datetime, timezone

from adaptivebot.bot import AdaptiveTradingBot
from adaptivebot.config import BotConfig
from adaptivebot.constants import Action, ContractType, LockState
from adaptivebot.core.decision import Decision
from adaptivebot.errors import TransportError
from adaptivebot.events import Disconnected, SellInstruction, Settlement, TickReceived
from adaptivebot.session import TradingSession
from adaptivebot.utils.candle import Tick

NOW = datetime(2026, 10, 14, 15, 30, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t


class _FakeFeed:
    def __init__(self, fail_connect=False):
        self.fail_connect = fail_connect
        self.connects = 0
        self.closed = False
        self.placed = []
        self.sold = []

    async def connect(self):
        self.connects += 1
        if self.fail_connect:
            raise TransportError("socket reset")
        return 100.0

    async def load_candles(self):
        pass

    async def stream(self):
        await asyncio.sleep(3600)

    def place(self, request):
        self.placed.append(request)

    def sell(self, instruction):
        self.sold.append(instruction)

    async def close(self):
        self.closed = True


def _bot(feed=None, **cfg):
    clock = _Clock()
    session = TradingSession(BotConfig(live=True, **cfg), rng=random.Random(1),
                             clock=clock, now=lambda: NOW)
    bot = AdaptiveTradingBot(session.cfg, session=session, feed=feed or _FakeFeed())
    return bot, clock


def _lock_contract(session, contract_id="42"):
    session.request_trade(Decision(Action.BUY, "Bullish composite signal", 0.8,
                                   composite_signal=3.0))
    session.on_purchase_confirmed(contract_id, "EURUSD_otc", 1.0, ContractType.CALL)


async def _shutdown(bot, *tasks):
    bot._running = False
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def _wait_for(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


# ------------------------------------------------------------------
def test_stop_auto_trading_keeps_contract_locked():
    async def scenario():
        bot, _ = _bot()
        bot._running = True
        _lock_contract(bot.session)
        bot.start_auto_trading()
        await asyncio.sleep(0)
        bot.stop_auto_trading()
        await asyncio.sleep(0)
        assert bot._auto_task is None
        assert bot.session.lock.is_locked
        assert bot.session.lock.active_contract_id == "42"

        await bot.stop()
        assert bot.feed.closed
        assert bot.session.lock.is_locked

    asyncio.run(scenario())


def test_watchdog_clears_stale_lock_without_auto_trading():
    async def scenario():
        bot, clock = _bot(lock_check_interval=0.001)
        bot._running = True
        _lock_contract(bot.session)
        clock.t += bot.session.lock.hold_for + 1
        assert bot._auto_task is None

        watchdog = asyncio.create_task(bot._lock_watchdog())
        try:
            assert await _wait_for(lambda: bot.session.lock.state == LockState.UNLOCKED)
        finally:
            await _shutdown(bot, watchdog)

    asyncio.run(scenario())


def test_transport_failure_releases_pending_lock():
    async def scenario():
        feed = _FakeFeed(fail_connect=True)
        bot, _ = _bot(feed=feed, reconnect_delay=0.001)
        bot._running = True
        assert bot.session.request_trade(Decision(Action.SELL, "Bearish composite signal", 0.8,
                                                  composite_signal=-3.0)) is not None
        assert bot.session.lock.purchase_pending

        tasks = [asyncio.create_task(bot._connection_loop()),
                 asyncio.create_task(bot._event_loop())]
        try:
            assert await _wait_for(lambda: bot.session.lock.state == LockState.UNLOCKED)
            assert feed.connects >= 1
        finally:
            await _shutdown(bot, *tasks)

    asyncio.run(scenario())


def test_events_handled_one_at_a_time_in_order(monkeypatch):
    async def scenario():
        bot, _ = _bot()
        bot._running = True
        seen, in_flight = [], []

        def dispatch(event):
            in_flight.append(event)
            assert len(in_flight) == 1
            seen.append(type(event).__name__)
            in_flight.pop()
            if isinstance(event, Settlement):
                return SellInstruction(event.contract_id, event.bid_price)
            return None

        monkeypatch.setattr(bot.session, "dispatch", dispatch)
        for event in (TickReceived(Tick(epoch=1.0, price=1.1)),
                      Settlement("42", "open", profit=0.6, bid_price=1.55),
                      Disconnected("socket closed")):
            bot.events.put_nowait(event)

        consumer = asyncio.create_task(bot._event_loop())
        try:
            await asyncio.wait_for(bot.events.join(), timeout=1.0)
        finally:
            await _shutdown(bot, consumer)

        assert seen == ["TickReceived", "Settlement", "Disconnected"]
        assert bot.feed.sold == [SellInstruction("42", 1.55)]

    asyncio.run(scenario())
