import asyncio
import os
import sys
from adaptivebot.bot import AdaptiveTradingBot
from adaptivebot.config import BotConfig
from adaptivebot.trading.journal import TradeJournal

def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")

def main():
    # --- Load config from env, falling back to the last saved settings ---
    db_path = os.environ.get("PO_DB_PATH", "trade_journal.db")
    journal = TradeJournal(db_path)
    saved = journal.load_settings()
    journal.close()

    cfg = BotConfig(
        ssid=os.environ.get("PO_SSID", ""),
        symbol=os.environ.get("PO_SYMBOL", saved.get("symbol", "EURUSD_otc")),
        granularity=int(os.environ.get("PO_GRANULARITY", saved.get("granularity", 60))),
        live=_flag("PO_LIVE"),
        stake=float(os.environ.get("PO_STAKE", saved.get("stake", 1.0))),
        profit_threshold=float(os.environ.get("PO_PROFIT_THRESHOLD",
                                              saved.get("profit_threshold", 0.5))),
        contrarian=_flag("PO_CONTRARIAN"),
        auto_interval=float(os.environ.get("PO_AUTO_INTERVAL", "10")),
        max_lock_duration=float(os.environ.get("PO_MAX_LOCK", "900")),
        settle_grace=float(os.environ.get("PO_SETTLE_GRACE", "120")),
        min_trade_confidence=float(os.environ.get("PO_MIN_CONF", "0.55")),
        db_path=db_path,
    )

    if not cfg.ssid:
        print("=" * 60)
        print("  ERROR: No SSID provided!")
        print()
        print("  Set your PocketOption session ID:")
        print("    export PO_SSID='your-session-id-here'  # Linux/Mac")
        print("    set PO_SSID=your-session-id-here       # Windows")
        print()
        print("  Set PO_LIVE=1 to place real orders (simulation otherwise).")
        print("=" * 60)
        sys.exit(1)

    bot = AdaptiveTradingBot(cfg)

    async def run():
        try:
            await bot.start()
        except KeyboardInterrupt:
            await bot.stop()
        except Exception as e:
            print(f"Critical error: {e}")
            await bot.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
