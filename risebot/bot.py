import asyncio
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

from database import Database
from risebot.accounts import Account, build_accounts
from risebot.chain import ChainSession
from risebot.config import Settings
from risebot.constants import NATIVE_SYMBOL, TASK_TITLES
from risebot.errors import ConfigurationError, ConnectivityError
from risebot.faucet import FaucetClient
from risebot.logger import AccountLogger, logger
from risebot.pipeline import ActionResult, TransactionPipeline, from_units
from risebot.proxy import check_proxy_ip
from risebot.scheduler import Scheduler, TaskResult
from risebot.sequencer import TaskSequencer
from risebot.utils import get_random_delay, load_private_keys, load_proxies, load_wallets, mask_proxy


@dataclass
class ExecutionContext:
    """Everything one account run owns; discarded when the unit exits."""

    account: Account
    proxy: Optional[str]
    chain: ChainSession
    log: AccountLogger
    pipeline: TransactionPipeline


class AccountWorker:
    def __init__(self, settings: Settings, account: Account, proxy: Optional[str] = None,
                 recipients: Sequence[str] = ()):
        self.settings = settings
        self.account = account
        self.proxy = proxy
        self.recipients = recipients
        self.log = AccountLogger(logger, account.index, account.address, settings.use_proxy)

    async def prepare_proxy(self):
        try:
            self.log.proxy_ip = await check_proxy_ip(self.proxy)
        except ConnectivityError as e:
            self.log.warning(f"Cannot check proxy IP: {e.message}")
            raise

        delay = get_random_delay(self.settings.delay_start_bot)
        self.log.info(f"Proxy {mask_proxy(self.proxy)} | Starting in {delay}s...")
        await asyncio.sleep(delay)

    async def show_wallet_info(self, context: ExecutionContext):
        chain = context.chain
        try:
            native = from_units(await chain.get_balance(), 18)
            weth = from_units(await chain.token_balance(self.settings.weth_address), 18)
            line = f"{NATIVE_SYMBOL}: {native:.6f} | WETH: {weth:.6f}"
            if self.settings.usdc_address:
                decimals = await chain.token_decimals(self.settings.usdc_address)
                usdc = from_units(await chain.token_balance(self.settings.usdc_address), decimals)
                line += f" | USDC: {usdc:.4f}"
            self.log.info(line)
        except Exception as e:
            self.log.warning(f"Failed to fetch wallet info: {str(e)}")

    async def run(self) -> List[ActionResult]:
        if self.settings.use_proxy:
            await self.prepare_proxy()

        chain = ChainSession(self.settings, self.account.private_key, self.account.address, self.proxy)
        try:
            try:
                await chain.connect()
            except ConnectivityError as e:
                self.log.error(f"Failed to connect to network: {e.message}")
                raise

            context = ExecutionContext(
                account=self.account,
                proxy=self.proxy,
                chain=chain,
                log=self.log,
                pipeline=TransactionPipeline(self.settings, chain, self.log),
            )
            await self.show_wallet_info(context)

            faucet = FaucetClient(self.settings, self.account.address, self.log, proxy=self.proxy)
            sequencer = TaskSequencer(
                self.settings, context.pipeline, self.log,
                faucet=faucet, recipients=self.recipients, address=self.account.address,
            )
            return await sequencer.run(self.account.task_id)
        finally:
            await chain.close()


class RiseBot:
    def __init__(self, settings: Settings, db: Optional[Database] = None, data_dir: str = "data"):
        self.settings = settings
        self.db = db
        self.data_dir = data_dir
        self.recipients: List[str] = []

    async def run_account(self, account: Account, proxy: Optional[str]) -> List[ActionResult]:
        worker = AccountWorker(self.settings, account, proxy, self.recipients)
        return await worker.run()

    async def run(self, task_id: str) -> List[TaskResult]:
        """One full pass over every account. ConfigurationError aborts before any unit starts."""
        task_id = str(task_id)
        if task_id not in TASK_TITLES:
            raise ConfigurationError(f"Unknown task id: {task_id}")
        self.settings.require_contracts([task_id])

        private_keys = load_private_keys(os.path.join(self.data_dir, "private_keys.txt"))
        proxies = load_proxies(os.path.join(self.data_dir, "proxies.txt"))
        self.recipients = load_wallets(os.path.join(self.data_dir, "wallets.txt"))

        accounts = build_accounts(private_keys, task_id)
        scheduler = Scheduler(self.settings, accounts, proxies, unit_factory=self.run_account)

        logger.separator()
        logger.info(f"Task: {TASK_TITLES[task_id]}")
        logger.info(f"Accounts: {len(accounts)} | Proxies: {len(proxies)} | Recipients: {len(self.recipients)}")
        if not self.settings.use_proxy:
            logger.warning("You are running bot without proxies!!!")
        logger.separator()

        results = await scheduler.run()
        self.save_results(task_id, results, scheduler)
        return results

    def save_results(self, task_id: str, results: Sequence[TaskResult], scheduler: Scheduler):
        if self.db is None:
            return

        run_id = self.db.start_run(task_id, len(results))
        for result in results:
            proxy = scheduler.proxies.get(result.index)
            account_id = self.db.add_account(result.address, mask_proxy(proxy) if proxy else None)
            if not result.success:
                self.db.add_statistic(account_id, "account", "failed", details=result.error, run_id=run_id)
            for action in result.actions:
                self.db.add_statistic(
                    account_id, action.action, action.status,
                    details=action.message, tx_hash=action.tx_hash,
                    block_number=action.block_number, run_id=run_id,
                )
        self.db.finish_run(run_id, sum(1 for result in results if result.success))
