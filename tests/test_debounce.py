import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from analytics_hub.application import Debouncer, create_memory_context
from analytics_hub.config import Settings


class Ticker:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def ticker():
    return Ticker()


@pytest.fixture()
def calls():
    return []


@pytest.fixture()
def debounced(ticker, calls):
    return Debouncer(calls.append, 0.2, clock=ticker)


def test_burst_collapses_to_last_call(debounced, ticker, calls):
    for term in ("a", "at", "atl"):
        debounced(term)
        ticker.now += 0.05

    assert debounced.poll() is False
    assert calls == []

    ticker.now += 0.2
    assert debounced.poll() is True
    assert calls == ["atl"]
    assert debounced.pending is False
    assert debounced.poll() is False


def test_each_call_restarts_the_delay(debounced, ticker, calls):
    debounced("a")
    ticker.now += 0.15
    debounced("ab")
    ticker.now += 0.15

    assert debounced.poll() is False
    ticker.now += 0.05
    assert debounced.poll() is True
    assert calls == ["ab"]


def test_flush_and_cancel(debounced, calls):
    assert debounced.flush() is False

    debounced("x")
    assert debounced.pending
    debounced.cancel()
    assert debounced.flush() is False

    debounced("y")
    assert debounced.flush() is True
    assert calls == ["y"]


def test_context_uses_configured_delay():
    ctx = create_memory_context(Settings(search_debounce_ms=350))

    debouncer = ctx.debounced(ctx.router.set_global_search)

    assert debouncer.wait_seconds == pytest.approx(0.35)
    debouncer("atlas")
    debouncer.flush()
    assert ctx.router.get_state().global_search_term == "atlas"
