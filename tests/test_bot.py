from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from database import Database
from risebot.accounts import build_accounts
from risebot.bot import AccountWorker, RiseBot
from risebot.errors import ConfigurationError, ConnectivityError
from risebot.pipeline import ActionResult, SUCCESS

from conftest import ETHER, FakeChain


def write_data(directory, keys=3, proxies=0):
    directory.mkdir(exist_ok=True)
    (directory / "private_keys.txt").write_text(
        "\n".join(f"{index + 1:064x}" for index in range(keys)) + "\n", encoding="utf-8"
    )
    (directory / "proxies.txt").write_text(
        "".join(f"10.0.0.{index}:8080\n" for index in range(proxies)), encoding="utf-8"
    )
    (directory / "wallets.txt").write_text("# recipients\n", encoding="utf-8")
    return directory


class TestRiseBot:
    @pytest.mark.asyncio
    async def test_full_pass_records_results(self, settings, tmp_path):
        data_dir = write_data(tmp_path / "data", keys=3)
        db = Database(str(tmp_path / "database.db"))
        bot = RiseBot(replace(settings, max_threads_no_proxy=2), db, data_dir=str(data_dir))
        bot.run_account = AsyncMock(return_value=[
            ActionResult("wrap", SUCCESS, message="0.1 ETH", tx_hash="0xabc", block_number=42, attempts=1),
        ])

        results = await bot.run("5")

        assert len(results) == 3
        assert all(result.success for result in results)
        assert bot.run_account.await_count == 3
        assert db.get_runs()[0]["succeeded"] == 3
        assert db.get_account_count() == 3
        assert db.get_success_rate()["success"] == 3

    @pytest.mark.asyncio
    async def test_proxy_shortage_aborts_before_any_unit(self, settings, tmp_path):
        data_dir = write_data(tmp_path / "data", keys=5, proxies=3)
        db = Database(str(tmp_path / "database.db"))
        bot = RiseBot(replace(settings, use_proxy=True), db, data_dir=str(data_dir))
        bot.run_account = AsyncMock(return_value=[])

        with pytest.raises(ConfigurationError):
            await bot.run("2")

        bot.run_account.assert_not_awaited()
        assert db.get_runs() == []

    @pytest.mark.asyncio
    async def test_failed_unit_is_stored(self, settings, tmp_path):
        data_dir = write_data(tmp_path / "data", keys=2)
        db = Database(str(tmp_path / "database.db"))
        bot = RiseBot(settings, db, data_dir=str(data_dir))
        bot.run_account = AsyncMock(side_effect=[[], ConnectivityError("Failed to connect")])

        results = await bot.run("6")

        assert sorted(result.success for result in results) == [False, True]
        assert db.get_runs()[0]["succeeded"] == 1
        assert db.get_success_rate()["failed"] == 1

    @pytest.mark.asyncio
    async def test_unknown_task_rejected(self, settings, tmp_path):
        with pytest.raises(ConfigurationError):
            await RiseBot(settings, data_dir=str(tmp_path)).run("0")

    @pytest.mark.asyncio
    async def test_missing_contract_rejected(self, settings, tmp_path):
        bot = RiseBot(replace(settings, usdc_address=None), data_dir=str(write_data(tmp_path / "data")))
        bot.run_account = AsyncMock(return_value=[])

        with pytest.raises(ConfigurationError):
            await bot.run("8")

        bot.run_account.assert_not_awaited()


class TestAccountWorker:
    def _chain(self, monkeypatch, **kwargs):
        chain = FakeChain(**kwargs)
        chain.connect = AsyncMock()
        chain.close = AsyncMock()
        monkeypatch.setattr("risebot.bot.ChainSession", lambda *args, **kw: chain)
        return chain

    @pytest.mark.asyncio
    async def test_runs_task_and_closes_session(self, settings, monkeypatch):
        chain = self._chain(monkeypatch, balance=ETHER)
        account = build_accounts(["0x" + "01" * 32], "5")[0]
        worker = AccountWorker(replace(settings, amount_wrap=(0.1, 0.1)), account)

        results = await worker.run()

        assert [result.action for result in results] == ["wrap"]
        assert results[0].success
        chain.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self, settings, monkeypatch):
        chain = self._chain(monkeypatch)
        chain.connect.side_effect = ConnectivityError("unreachable")
        account = build_accounts(["0x" + "01" * 32], "2")[0]

        with pytest.raises(ConnectivityError):
            await AccountWorker(settings, account).run()

        chain.close.assert_awaited_once()
        assert chain.submitted == []
