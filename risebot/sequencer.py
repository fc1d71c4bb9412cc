import asyncio
import random
import secrets
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from eth_account import Account as EthAccount

from risebot.config import Settings
from risebot.constants import RUN_ALL_TASK, TASK_TITLES
from risebot.pipeline import ActionResult, TransactionPipeline
from risebot.utils import get_random_delay


def generate_random_recipient() -> str:
    return EthAccount.from_key(secrets.token_bytes(32)).address


class TaskSequencer:
    """Maps a task id to pipeline actions for one account, strictly in order."""

    def __init__(self, settings: Settings, pipeline: TransactionPipeline, log,
                 faucet=None, recipients: Sequence[str] = (), address: str = ""):
        self.settings = settings
        self.pipeline = pipeline
        self.log = log
        self.faucet = faucet
        self.recipients = list(recipients)
        self.address = address
        self.handlers: Dict[str, Callable[[], Awaitable[List[ActionResult]]]] = {
            "1": self.run_faucet,
            "2": self.run_transfers,
            "3": self._single(self.pipeline.deposit),
            "4": self._single(self.pipeline.withdraw),
            "5": self._single(self.pipeline.wrap),
            "6": self._single(self.pipeline.unwrap),
            "7": self._repeat(self.pipeline.swap_weth_to_usdc, "swap"),
            "8": self._repeat(self.pipeline.swap_usdc_to_weth, "swap"),
        }

    @staticmethod
    def _single(action):
        async def handler() -> List[ActionResult]:
            return [await action()]
        return handler

    def _repeat(self, action, name: str):
        async def handler() -> List[ActionResult]:
            count = self.settings.number_of_swap
            results = []
            for i in range(count):
                self.log.info(f"{name.capitalize()} {i + 1}/{count}")
                results.append(await action())
                if i < count - 1:
                    await self.pause(f"before next {name}")
            return results
        return handler

    async def pause(self, reason: str = ""):
        delay = get_random_delay(self.settings.delay_between_requests)
        self.log.debug(f"Waiting {delay}s {reason}".rstrip())
        await asyncio.sleep(delay)

    def pick_recipient(self) -> str:
        candidates = [wallet for wallet in self.recipients if wallet.lower() != self.address.lower()]
        if candidates:
            return random.choice(candidates)
        return generate_random_recipient()

    async def run_faucet(self) -> List[ActionResult]:
        if self.faucet is None:
            self.log.warning("Faucet client is not configured")
            return []
        return await self.faucet.claim_all()

    async def run_transfers(self) -> List[ActionResult]:
        count = self.settings.number_of_transfer
        self.log.action("TRANSFERS", f"Performing {count} transfers...")
        results = []
        for i in range(count):
            recipient = self.pick_recipient()
            self.log.info(f"Transfer {i + 1}/{count}")
            results.append(await self.pipeline.transfer(recipient))
            if i < count - 1:
                await self.pause("before next transfer")
        return results

    async def run_task(self, task_id: str) -> List[ActionResult]:
        handler = self.handlers.get(str(task_id))
        if handler is None:
            self.log.warning(f"Unknown task id {task_id}, skipping")
            return []
        self.log.action("TASK", TASK_TITLES.get(str(task_id), str(task_id)))
        return await handler()

    async def run_all(self, task_ids: Optional[Sequence[str]] = None) -> List[ActionResult]:
        task_ids = [str(task_id) for task_id in (task_ids if task_ids is not None else self.settings.tasks_id)]
        runnable = [task_id for task_id in task_ids if task_id in self.handlers]
        for task_id in task_ids:
            if task_id not in self.handlers:
                self.log.debug(f"Skipping task id {task_id} in run-all list")

        results = []
        for position, task_id in enumerate(runnable):
            results.extend(await self.run_task(task_id))
            if position < len(runnable) - 1:
                await self.pause("before next task")
        return results

    async def run(self, task_id: str) -> List[ActionResult]:
        if str(task_id) == RUN_ALL_TASK:
            return await self.run_all()
        return await self.run_task(task_id)
