import asyncio
from typing import Optional

from .config import BotConfig
from .errors import TransportError
from .events import BrokerError, Event, SellInstruction
from .session import TradingSession
from .trading.journal import TradeJournal
from .utils.logger import log


class AdaptiveTradingBot:
    def __init__(self, cfg: BotConfig, session: Optional[TradingSession] = None, feed=None):
        self.cfg = cfg
        self.events: asyncio.Queue[Event] = asyncio.Queue()
        self.journal = TradeJournal(cfg.db_path) if session is None else session.journal
        self.session = session or TradingSession(cfg, self.journal)
        self.feed = feed
        self._running = False
        self._auto_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    async def start(self):
        """Main entry point."""
        log.info("═" * 60)
        log.info("  📈 ADAPTIVE TRADING BOT — PocketOption")
        log.info("  Symbol: %s  |  Granularity: %ds  |  Mode: %s",
                 self.cfg.symbol, self.cfg.granularity, self.session.mode.value)
        log.info("  Stake: $%.2f  |  Profit threshold: $%.2f  |  Auto every %.0fs",
                 self.cfg.stake, self.cfg.profit_threshold, self.cfg.auto_interval)
        log.info("  Contract lock: ONE TRADE AT A TIME (timeout %.0fs or expiry + %.0fs)",
                 self.cfg.max_lock_duration, self.cfg.settle_grace)
        log.info("═" * 60)

        if self.feed is None:
            from .transport.pocket import PocketOptionFeed
            self.feed = PocketOptionFeed(self.cfg, self.events)

        self._running = True
        self.start_auto_trading()
        await asyncio.gather(
            self._connection_loop(),
            self._event_loop(),
            self._lock_watchdog(),
        )

    def start_auto_trading(self):
        if self._auto_task is None or self._auto_task.done():
            self._auto_task = asyncio.create_task(self._auto_trade_loop())
            log.info("▶ Auto trading activated")

    def stop_auto_trading(self):
        """Cancel the timer; an open contract stays locked until it settles."""
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None
            log.warning("⏹ Auto trading deactivated")

    # ------------------------------------------------------------------
    async def _connection_loop(self):
        """Connect, stream, and reconnect after a drop."""
        while self._running:
            try:
                self.session.balance = await self.feed.connect()
                await self.feed.load_candles()
                await self.feed.stream()
            except TransportError as e:
                await self.events.put(BrokerError(str(e), transport=True))
            if not self._running:
                break
            log.info("Auto-reconnecting in %.0fs …", self.cfg.reconnect_delay)
            await asyncio.sleep(self.cfg.reconnect_delay)

    async def _event_loop(self):
        """Single consumer: handlers run one at a time, in arrival order."""
        while self._running:
            event = await self.events.get()
            try:
                sell = self.session.dispatch(event)
                if isinstance(sell, SellInstruction):
                    self.feed.sell(sell)
            except Exception as e:
                log.error("Event handling error (%s): %s", type(event).__name__, e, exc_info=True)
            finally:
                self.events.task_done()

    async def _auto_trade_loop(self):
        while self._running:
            try:
                request = self.session.auto_check()
                if request is not None and self.cfg.live:
                    self.feed.place(request)
            except Exception as e:
                log.error("Auto-trade error: %s", e, exc_info=True)
            await asyncio.sleep(self.cfg.auto_interval)

    async def _lock_watchdog(self):
        while self._running:
            await asyncio.sleep(self.cfg.lock_check_interval)
            self.session.lock.is_engaged()

    # ------------------------------------------------------------------
    async def stop(self):
        self._running = False
        self.stop_auto_trading()
        if self.feed is not None:
            await self.feed.close()
        if self.journal is not None:
            self.journal.close()
        log.info("Bot stopped.  Final stats: %s", self.session.perf.summary())
