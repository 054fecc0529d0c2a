import json
import sqlite3
import time
from typing import Optional

from .trade import TradeRecord

SETTINGS_KEYS = ("symbol", "granularity", "stake", "profit_threshold")


class TradeJournal:
    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path)
        self._init_db()

    def _init_db(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS trades (
                seq         INTEGER PRIMARY KEY AUTOINCREMENT,
                contract_id TEXT,
                time        REAL,
                mode        TEXT,
                result      TEXT,
                payload     TEXT
            )
        """)
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_trades_contract ON trades (contract_id)"
        )
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS state (
                key         TEXT PRIMARY KEY,
                value       TEXT,
                updated     REAL
            )
        """)
        self.conn.commit()

    # ------------------------------------------------------------------
    def save_trade(self, t: TradeRecord):
        self.conn.execute(
            "INSERT INTO trades (contract_id, time, mode, result, payload) VALUES (?,?,?,?,?)",
            (t.contract_id, t.time, t.mode.value, t.result.value, json.dumps(t.to_dict())),
        )
        self.conn.commit()

    def update_trade(self, t: TradeRecord) -> bool:
        """Rewrite the stored record with the same contract id."""
        if t.contract_id is None:
            return False
        cur = self.conn.execute(
            "UPDATE trades SET result = ?, payload = ? WHERE contract_id = ?",
            (t.result.value, json.dumps(t.to_dict()), t.contract_id),
        )
        self.conn.commit()
        return cur.rowcount > 0

    def load_history(self, limit: Optional[int] = None) -> list[TradeRecord]:
        """Trade history, newest first."""
        sql = "SELECT payload FROM trades ORDER BY seq DESC"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return [TradeRecord.from_dict(json.loads(row[0]))
                for row in self.conn.execute(sql, params)]

    def find_by_contract(self, contract_id: str) -> Optional[TradeRecord]:
        row = self.conn.execute(
            "SELECT payload FROM trades WHERE contract_id = ? ORDER BY seq DESC LIMIT 1",
            (str(contract_id),),
        ).fetchone()
        return TradeRecord.from_dict(json.loads(row[0])) if row else None

    def clear_history(self):
        self.conn.execute("DELETE FROM trades")
        self.conn.execute("DELETE FROM state WHERE key = 'last_trade'")
        self.conn.commit()

    def total_trades(self) -> int:
        cur = self.conn.execute("SELECT COUNT(*) FROM trades")
        return cur.fetchone()[0]

    # ------------------------------------------------------------------
    def _put_state(self, key: str, value):
        self.conn.execute(
            "INSERT OR REPLACE INTO state VALUES (?,?,?)",
            (key, json.dumps(value), time.time()),
        )
        self.conn.commit()

    def _get_state(self, key: str, default=None):
        row = self.conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
        return json.loads(row[0]) if row else default

    def save_last_trade(self, t: TradeRecord):
        self._put_state("last_trade", {
            "decision": t.decision,
            "result": t.result.value,
            "confidence": t.confidence,
            "regime": t.regime,
            "time": t.time,
        })

    def load_last_trade(self) -> dict:
        return self._get_state("last_trade", {})

    def save_settings(self, settings: dict):
        self._put_state("settings", {k: settings[k] for k in SETTINGS_KEYS if k in settings})

    def load_settings(self) -> dict:
        return self._get_state("settings", {})

    def close(self):
        self.conn.close()
