"""
Bounded-concurrency scheduler.

Accounts are split into consecutive batches of ``min(max_concurrency, remaining)``.
Each account runs as its own asyncio task with a hard deadline. A batch is
finished only when every unit reached success, error or timeout; the next batch
starts after a fixed pause. Units share nothing but the frozen settings and the
account/proxy lists, and report back through their TaskResult.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from risebot.accounts import Account, assign_proxies
from risebot.config import Settings
from risebot.errors import ConfigurationError, UnitTimeoutError
from risebot.logger import logger
from risebot.pipeline import ActionResult

UnitFactory = Callable[[Account, Optional[str]], Awaitable[List[ActionResult]]]


@dataclass
class TaskResult:
    index: int
    address: str
    success: bool
    error: Optional[str] = None
    actions: List[ActionResult] = field(default_factory=list)
    elapsed: float = 0.0


class Scheduler:
    def __init__(self, settings: Settings, accounts: Sequence[Account], proxies: Sequence[str],
                 unit_factory: UnitFactory):
        if not accounts:
            raise ConfigurationError("No accounts to run")
        self.settings = settings
        self.accounts = list(accounts)
        assigned = assign_proxies(self.accounts, proxies, settings.use_proxy)
        self.proxies = {account.index: proxy for account, proxy in zip(self.accounts, assigned)}
        self.unit_factory = unit_factory
        self.max_concurrency = settings.max_concurrency

    def batches(self) -> List[List[Account]]:
        size = self.max_concurrency
        return [self.accounts[start:start + size] for start in range(0, len(self.accounts), size)]

    async def _with_deadline(self, unit: Awaitable[List[ActionResult]]) -> List[ActionResult]:
        """Only the unit's own deadline becomes UnitTimeoutError; timeouts raised inside it propagate as-is."""
        task = asyncio.ensure_future(unit)
        done, _ = await asyncio.wait({task}, timeout=self.settings.unit_timeout)
        if not done:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Unit raised while cancelling: {str(e)}")
            raise UnitTimeoutError("Timeout")
        return task.result()

    async def _run_unit(self, account: Account, proxy: Optional[str]) -> TaskResult:
        started = time.monotonic()
        try:
            actions = await self._with_deadline(self.unit_factory(account, proxy))
            return TaskResult(account.index, account.address, True,
                              actions=list(actions or []), elapsed=time.monotonic() - started)
        except UnitTimeoutError as e:
            return TaskResult(account.index, account.address, False, error=e.message,
                              elapsed=time.monotonic() - started)
        except Exception as e:
            return TaskResult(account.index, account.address, False, error=str(e) or type(e).__name__,
                              elapsed=time.monotonic() - started)

    async def run(self) -> List[TaskResult]:
        batches = self.batches()
        results: List[TaskResult] = []
        logger.info(f"Running {len(self.accounts)} account(s) in {len(batches)} batch(es) "
                    f"of up to {self.max_concurrency}")

        for number, batch in enumerate(batches, 1):
            logger.debug(f"Batch {number}/{len(batches)}: accounts "
                         f"{', '.join(str(account.index + 1) for account in batch)}")
            tasks = [
                asyncio.create_task(self._run_unit(account, self.proxies[account.index]))
                for account in batch
            ]
            batch_results = await asyncio.gather(*tasks)

            for result in batch_results:
                if result.success:
                    logger.debug(f"Account {result.index + 1} | {result.address} finished in {result.elapsed:.1f}s")
                else:
                    logger.error(f"Account {result.index + 1} | {result.address} error: {result.error}")
            results.extend(batch_results)

            if number < len(batches):
                await asyncio.sleep(self.settings.delay_between_batches)

        self.log_summary(results)
        return results

    @staticmethod
    def log_summary(results: Sequence[TaskResult]):
        succeeded = sum(1 for result in results if result.success)
        actions = [action for result in results for action in result.actions]
        confirmed = sum(1 for action in actions if action.success)

        logger.separator()
        logger.info(f"Accounts: {succeeded}/{len(results)} completed, {len(results) - succeeded} with errors")
        logger.info(f"Actions: {confirmed}/{len(actions)} confirmed")
        logger.separator()
