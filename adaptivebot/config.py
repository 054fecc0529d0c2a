from dataclasses import dataclass

@dataclass
class BotConfig:
    """All tuneable knobs in one place."""

    # --- connection ---
    ssid: str = ""                          # PocketOption session ID
    symbol: str = "EURUSD_otc"              # trading pair
    granularity: int = 60                   # candle period in seconds

    # --- trading ---
    live: bool = False                      # False = simulated trades only
    stake: float = 1.0                      # fixed stake per contract ($)
    profit_threshold: float = 0.5           # auto-sell an open contract at this profit ($)
    min_duration_seconds: int = 900         # contracts never shorter than 15 min
    contrarian: bool = False                # map BUY → PUT / SELL → CALL

    # --- data windows ---
    candles_count: int = 200                # max candle history to keep
    tick_buffer_size: int = 50              # ticks kept for micro-structure
    min_candles: int = 50                   # candles before the first decision

    # --- decision gates ---
    min_trade_confidence: float = 0.55      # auto-check holds below this
    decision_memory: int = 50               # rolling decision memory size
    exploration_rate: float = 0.10          # agent exploration probability

    # --- contract lock ---
    max_lock_duration: float = 900.0        # seconds before a stale lock self-clears
    settle_grace: float = 120.0             # extra lock time past expiry to collect the result
    lock_check_interval: float = 5.0        # watchdog period

    # --- timers ---
    auto_interval: float = 10.0             # auto-trading check every 10s
    reconnect_delay: float = 5.0            # wait before reconnecting
    result_poll_interval: float = 3.0       # settlement polling
    payout: float = 0.85                    # fallback payout when broker omits profit

    # --- persistence ---
    db_path: str = "trade_journal.db"
