from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from risebot.chain import ContractCall, FeeSnapshot, TxReceipt
from risebot.config import Settings
from risebot.errors import TransactionRevertedError

OWNER = "0x" + "aa" * 20
USDC = "0x" + "11" * 20
DODO_PROXY = "0x" + "22" * 20
GATEWAY = "0x" + "33" * 20
GWEI = 10 ** 9
ETHER = 10 ** 18


class FakeChain:
    """In-memory stand-in for ChainSession.

    Submissions are numbered from 1; ordinals listed in ``revert_on`` fail at
    the receipt wait the way a reverted transaction does.
    """

    def __init__(
        self,
        balance: int = ETHER,
        token_balances: Optional[Dict[str, int]] = None,
        decimals: Optional[Dict[str, int]] = None,
        allowance: int = 2 ** 256 - 1,
        gas_price: int = GWEI,
        counts: Tuple[int, int] = (0, 0),
        revert_on: Iterable[int] = (),
        block_number: int = 42,
    ):
        self.address = OWNER
        self.balance = balance
        self.token_balances = {k.lower(): v for k, v in (token_balances or {}).items()}
        self.decimals = {k.lower(): v for k, v in (decimals or {}).items()}
        self.allowance_value = allowance
        self.gas_price = gas_price
        self.counts = counts
        self.revert_on = set(revert_on)
        self.block_number = block_number
        self.submitted: List[Tuple[ContractCall, int, int]] = []

    async def get_fee_snapshot(self) -> FeeSnapshot:
        priority = int(1.5 * GWEI)
        return FeeSnapshot(self.gas_price, priority, self.gas_price + priority)

    async def get_balance(self) -> int:
        return self.balance

    async def token_balance(self, token_address: str) -> int:
        return self.token_balances.get(token_address.lower(), 0)

    async def token_decimals(self, token_address: str) -> int:
        return self.decimals.get(token_address.lower(), 18)

    async def allowance(self, token_address: str, spender: str) -> int:
        return self.allowance_value

    async def get_transaction_counts(self) -> Tuple[int, int]:
        return self.counts

    async def estimate_gas(self, call: ContractCall, fallback: int) -> int:
        return fallback

    async def submit(self, call: ContractCall, gas_limit: int, fees: FeeSnapshot, nonce: int) -> str:
        self.submitted.append((call, gas_limit, nonce))
        return "0x" + f"{len(self.submitted):064x}"

    async def wait_for_receipt(self, tx_hash: str, timeout: int = 300) -> TxReceipt:
        ordinal = int(tx_hash, 16)
        if ordinal in self.revert_on:
            raise TransactionRevertedError(
                f"Transaction reverted in block {self.block_number - 1}",
                tx_hash=tx_hash,
            )
        return TxReceipt(tx_hash=tx_hash, block_number=self.block_number)

    @property
    def nonces(self) -> List[int]:
        return [nonce for _, _, nonce in self.submitted]


@pytest.fixture
def settings() -> Settings:
    return replace(
        Settings(),
        delay_between_requests=(0, 0),
        delay_start_bot=(0, 0),
        delay_between_batches=0,
        usdc_address=USDC,
        dodo_route_proxy_address=DODO_PROXY,
        gateway_address=GATEWAY,
    )


@pytest.fixture
def log() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()
