import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from risebot.accounts import Account
from risebot.errors import ConfigurationError
from risebot.pipeline import ActionResult, SUCCESS
from risebot.scheduler import Scheduler


def make_accounts(count: int):
    return [
        Account(address="0x" + f"{index + 1:040x}", private_key="0x" + f"{index + 1:064x}",
                task_id="2", index=index)
        for index in range(count)
    ]


class TestBatching:
    def test_batches_are_consecutive_slices(self, settings):
        scheduler = Scheduler(replace(settings, max_threads_no_proxy=2), make_accounts(5), [],
                              unit_factory=AsyncMock())

        sizes = [len(batch) for batch in scheduler.batches()]

        assert sizes == [2, 2, 1]
        assert [account.index for batch in scheduler.batches() for account in batch] == [0, 1, 2, 3, 4]

    def test_concurrency_follows_proxy_mode(self, settings):
        proxied = replace(settings, use_proxy=True, max_threads=4, max_threads_no_proxy=1)
        scheduler = Scheduler(proxied, make_accounts(4), ["1.1.1.1:80"] * 4, unit_factory=AsyncMock())

        assert scheduler.max_concurrency == 4
        assert len(scheduler.batches()) == 1

    def test_no_accounts_rejected(self, settings):
        with pytest.raises(ConfigurationError):
            Scheduler(settings, [], [], unit_factory=AsyncMock())

    def test_fewer_proxies_than_accounts_fails_before_launch(self, settings):
        """5 accounts, 3 proxies, proxies enabled."""
        unit = AsyncMock()

        with pytest.raises(ConfigurationError):
            Scheduler(replace(settings, use_proxy=True), make_accounts(5),
                      ["1.1.1.1:80", "2.2.2.2:80", "3.3.3.3:80"], unit_factory=unit)

        unit.assert_not_called()

    def test_proxies_assigned_by_ordinal(self, settings):
        proxies = ["1.1.1.1:80", "socks5://2.2.2.2:1080"]
        scheduler = Scheduler(replace(settings, use_proxy=True), make_accounts(2), proxies,
                              unit_factory=AsyncMock())

        assert scheduler.proxies == {0: "http://1.1.1.1:80", 1: "socks5://2.2.2.2:1080"}


class TestRun:
    @pytest.mark.asyncio
    async def test_three_accounts_two_slots(self, settings):
        events = []

        async def unit(account, proxy):
            events.append(("start", account.index))
            await asyncio.sleep(0.01 * (2 - account.index % 2))
            events.append(("end", account.index))
            return [ActionResult("transfer", SUCCESS)]

        scheduler = Scheduler(replace(settings, max_threads_no_proxy=2), make_accounts(3), [],
                              unit_factory=unit)
        results = await scheduler.run()

        assert len(results) == 3
        assert all(result.success for result in results)
        assert [result.index for result in results] == [0, 1, 2]
        assert events[:2] == [("start", 0), ("start", 1)]
        started_third = events.index(("start", 2))
        assert events.index(("end", 0)) < started_third
        assert events.index(("end", 1)) < started_third

    @pytest.mark.asyncio
    async def test_never_exceeds_max_concurrency(self, settings):
        active = 0
        peak = 0

        async def unit(account, proxy):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return []

        scheduler = Scheduler(replace(settings, max_threads_no_proxy=3), make_accounts(7), [],
                              unit_factory=unit)
        await scheduler.run()

        assert peak == 3

    @pytest.mark.asyncio
    async def test_timeout_reported_per_unit(self, settings):
        async def unit(account, proxy):
            if account.index == 0:
                await asyncio.sleep(5)
            return []

        scheduler = Scheduler(replace(settings, unit_timeout=0.05), make_accounts(2), [],
                              unit_factory=unit)
        results = await scheduler.run()

        assert results[0].success is False
        assert results[0].error == "Timeout"
        assert results[1].success is True

    @pytest.mark.asyncio
    async def test_crash_does_not_affect_siblings(self, settings):
        async def unit(account, proxy):
            if account.index == 1:
                raise RuntimeError("rpc down")
            return [ActionResult("wrap", SUCCESS)]

        scheduler = Scheduler(settings, make_accounts(3), [], unit_factory=unit)
        results = await scheduler.run()

        assert [result.success for result in results] == [True, False, True]
        assert results[1].error == "rpc down"
        assert results[0].actions[0].action == "wrap"

    @pytest.mark.asyncio
    async def test_units_receive_their_proxy(self, settings):
        unit = AsyncMock(return_value=[])
        accounts = make_accounts(2)
        scheduler = Scheduler(replace(settings, use_proxy=True), accounts,
                              ["http://u:p@1.1.1.1:80", "http://u:p@2.2.2.2:80"], unit_factory=unit)

        await scheduler.run()

        unit.assert_any_await(accounts[0], "http://u:p@1.1.1.1:80")
        unit.assert_any_await(accounts[1], "http://u:p@2.2.2.2:80")

    @pytest.mark.asyncio
    async def test_timeout_raised_inside_unit_keeps_its_message(self, settings):
        async def unit(account, proxy):
            if account.index == 0:
                raise asyncio.TimeoutError("read timed out")
            raise asyncio.TimeoutError()

        scheduler = Scheduler(replace(settings, unit_timeout=60), make_accounts(2), [], unit_factory=unit)
        results = await scheduler.run()

        assert [result.success for result in results] == [False, False]
        assert results[0].error == "read timed out"
        assert results[1].error == "TimeoutError"


class TestBatchPacing:
    @pytest.mark.asyncio
    async def test_pause_between_batches_not_after_last(self, settings, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr("risebot.scheduler.asyncio.sleep", sleep)
        scheduler = Scheduler(replace(settings, max_threads_no_proxy=2, delay_between_batches=3),
                              make_accounts(5), [], unit_factory=AsyncMock(return_value=[]))

        results = await scheduler.run()

        assert len(results) == 5
        assert sleep.await_count == 2
        sleep.assert_awaited_with(3)

    @pytest.mark.asyncio
    async def test_single_batch_never_pauses(self, settings, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr("risebot.scheduler.asyncio.sleep", sleep)
        scheduler = Scheduler(replace(settings, max_threads_no_proxy=4, delay_between_batches=3),
                              make_accounts(3), [], unit_factory=AsyncMock(return_value=[]))

        await scheduler.run()

        sleep.assert_not_awaited()
