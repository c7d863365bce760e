"""
Tests for the per-session refresh scheduler.
"""

import asyncio

import pytest

from leaderboard.services.scheduler import RefreshScheduler
from tests.conftest import wait_until


@pytest.mark.asyncio
async def test_emits_one_tick_per_arm():
    ticks = []
    scheduler = RefreshScheduler(0.01, ticks.append, name="t1")

    scheduler.arm()
    await wait_until(lambda: len(ticks) == 1)
    await asyncio.sleep(0.05)

    # Not periodic on its own: the session re-arms after processing
    assert len(ticks) == 1
    assert scheduler.is_current(ticks[0])


@pytest.mark.asyncio
async def test_rearm_produces_increasing_sequence():
    ticks = []
    scheduler = RefreshScheduler(0.01, ticks.append)

    for expected in (1, 2, 3):
        scheduler.arm()
        await wait_until(lambda: len(ticks) == expected)

    assert [t.seq for t in ticks] == [1, 2, 3]
    assert not scheduler.is_current(ticks[0])
    assert scheduler.is_current(ticks[-1])
    scheduler.cancel()


@pytest.mark.asyncio
async def test_rearm_replaces_pending_timer():
    ticks = []
    scheduler = RefreshScheduler(0.02, ticks.append)

    scheduler.arm()
    scheduler.arm()
    await asyncio.sleep(0.08)

    assert [t.seq for t in ticks] == [2]
    scheduler.cancel()


@pytest.mark.asyncio
async def test_cancel_stops_pending_tick():
    ticks = []
    scheduler = RefreshScheduler(0.01, ticks.append)

    scheduler.arm()
    scheduler.cancel()
    await asyncio.sleep(0.05)

    assert ticks == []
    assert scheduler.cancelled
    assert not scheduler.pending

    # Arming after cancel is a no-op
    scheduler.arm()
    await asyncio.sleep(0.03)
    assert ticks == []


@pytest.mark.asyncio
async def test_in_flight_tick_rejected_after_cancel():
    ticks = []
    scheduler = RefreshScheduler(0.01, ticks.append)

    scheduler.arm()
    await wait_until(lambda: len(ticks) == 1)
    scheduler.cancel()

    assert not scheduler.is_current(ticks[0])


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        RefreshScheduler(0, lambda tick: None)
