import pytest

from adaptivebot.constants import TradeMode, TradeResult
from adaptivebot.trading.journal import TradeJournal
from adaptivebot.trading.performance import PerformanceTracker, performance_analytics
from adaptivebot.trading.trade import TradeRecord, win_rate


def _rec(n, result=TradeResult.WIN, profit=0.85, **kw):
    return TradeRecord(time=1_700_000_000.0 + n, mode=kw.pop("mode", TradeMode.SIM),
                       symbol="EURUSD_otc", amount=1.0, decision="BUY", result=result,
                       profit=profit, **kw)


@pytest.fixture
def journal():
    j = TradeJournal(":memory:")
    yield j
    j.close()


# ------------------------------------------------------------------
def test_history_is_newest_first(journal):
    for n in range(3):
        journal.save_trade(_rec(n))
    history = journal.load_history()
    assert [t.time for t in history] == [1_700_000_002.0, 1_700_000_001.0, 1_700_000_000.0]
    assert len(journal.load_history(limit=2)) == 2
    assert journal.total_trades() == 3


def test_record_survives_round_trip(journal):
    rec = _rec(1, mode=TradeMode.LIVE, contract_id="42", regime="UPTREND",
               risk_category="MODERATE", quality="B", duration=900)
    journal.save_trade(rec)
    assert journal.find_by_contract("42") == rec


def test_update_by_contract_id(journal):
    rec = _rec(1, result=TradeResult.PENDING, profit=0.0, mode=TradeMode.LIVE, contract_id="42")
    journal.save_trade(rec)
    rec.result, rec.profit = TradeResult.LOST, -1.0
    assert journal.update_trade(rec)
    stored = journal.find_by_contract("42")
    assert stored.result == TradeResult.LOST
    assert stored.profit == -1.0
    assert not journal.update_trade(_rec(2))


def test_settings_round_trip(journal):
    assert journal.load_settings() == {}
    journal.save_settings({"symbol": "GBPUSD_otc", "granularity": 300, "stake": 2.5,
                           "profit_threshold": 1.0, "ssid": "secret"})
    assert journal.load_settings() == {"symbol": "GBPUSD_otc", "granularity": 300,
                                       "stake": 2.5, "profit_threshold": 1.0}


def test_clear_history_drops_last_trade(journal):
    journal.save_trade(_rec(1))
    journal.save_last_trade(_rec(1))
    journal.save_settings({"symbol": "EURUSD_otc"})
    assert journal.load_last_trade()["decision"] == "BUY"
    journal.clear_history()
    assert journal.total_trades() == 0
    assert journal.load_last_trade() == {}
    assert journal.load_settings() == {"symbol": "EURUSD_otc"}


# ------------------------------------------------------------------
def test_win_rate_counts_both_spellings():
    trades = [_rec(0, TradeResult.WIN), _rec(1, TradeResult.WON),
              _rec(2, TradeResult.LOSS), _rec(3, TradeResult.LOST)]
    assert win_rate(trades) == 0.5
    assert win_rate([]) == 0.5


def test_tracker_drawdown_and_streak():
    perf = PerformanceTracker()
    for rec in (_rec(0, profit=2.0), _rec(1, TradeResult.LOSS, -1.0),
                _rec(2, TradeResult.LOSS, -1.0), _rec(3, TradeResult.SOLD, 0.2)):
        perf.record(rec)
    assert (perf.wins, perf.losses, perf.draws) == (1, 2, 1)
    assert perf.total_profit == pytest.approx(0.2)
    assert perf.max_drawdown == pytest.approx(2.0)
    assert perf.consec_losses == 2
    assert len(perf.regime_history) == 4
    perf.reset()
    assert perf.total == 0


def test_analytics_breakdown():
    history = [
        _rec(3, regime="UPTREND", agent="balanced", mood="BULLISH", temporal_session="US",
             risk_category="LOW", confidence=0.8),
        _rec(2, TradeResult.LOSS, -1.0, regime="UPTREND", agent="trend_focus",
             mood="BULLISH", temporal_session="US", risk_category="HIGH", confidence=0.6),
        _rec(1, regime="CONSOLIDATION", agent="balanced", mood="NEUTRAL",
             temporal_session="ASIAN", risk_category="LOW", confidence=0.7),
    ]
    stats = performance_analytics(history)
    assert stats["overall"]["total_trades"] == 3
    assert stats["overall"]["wins"] == 2
    assert stats["overall"]["total_profit"] == pytest.approx(0.7)
    assert stats["by_regime"]["UPTREND"] == {"trades": 2, "wins": 1, "profit": pytest.approx(-0.15),
                                             "win_rate": 0.5}
    assert stats["by_agent"]["balanced"]["win_rate"] == 1.0
    assert stats["by_session"]["ASIAN"]["trades"] == 1
    assert stats["by_risk"]["HIGH"]["wins"] == 0
    assert stats["recent_trend"]["avg_confidence"] == pytest.approx(0.7)
    assert performance_analytics([]) is None
