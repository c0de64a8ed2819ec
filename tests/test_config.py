"""Unit Tests: settings and Ripple-epoch helpers."""

from datetime import datetime, timezone

from xpay.config import RIPPLE_EPOCH_UNIX, Settings, from_ripple_time, to_ripple_time


def test_ripple_epoch_offset():
    epoch = datetime(2000, 1, 1, tzinfo=timezone.utc)
    assert to_ripple_time(epoch) == 0
    assert from_ripple_time(0) == epoch
    assert epoch.timestamp() == RIPPLE_EPOCH_UNIX


def test_ripple_time_round_trip():
    moment = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert from_ripple_time(to_ripple_time(moment)) == moment


def test_settings_flags():
    assert Settings(xrpl_mode="MOCK").is_mock
    assert not Settings(xrpl_mode="testnet").is_mock
    assert Settings(environment="production").is_production
    assert Settings(supabase_url="https://x.supabase.co", supabase_key="k").use_supabase
    assert not Settings(supabase_url="", supabase_key="k").use_supabase
