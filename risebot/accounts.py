from dataclasses import dataclass
from typing import List, Optional, Sequence

from eth_account import Account as EthAccount

from risebot.errors import ConfigurationError
from risebot.utils import check_proxy_scheme


@dataclass(frozen=True)
class Account:
    address: str
    private_key: str
    task_id: str
    index: int

    def __repr__(self) -> str:
        return f"Account(index={self.index}, address={self.address}, task_id={self.task_id})"


def build_accounts(private_keys: Sequence[str], task_id: str) -> List[Account]:
    if not private_keys:
        raise ConfigurationError("No private keys found in data/private_keys.txt")

    accounts = []
    for index, private_key in enumerate(private_keys):
        key = private_key if private_key.startswith("0x") else f"0x{private_key}"
        try:
            address = EthAccount.from_key(key).address
        except Exception as e:
            raise ConfigurationError(f"Invalid private key on line {index + 1}: {e}") from e
        accounts.append(Account(address=address, private_key=key, task_id=str(task_id), index=index))
    return accounts


def assign_proxies(accounts: Sequence[Account], proxies: Sequence[str], use_proxy: bool) -> List[Optional[str]]:
    """Proxy per account ordinal, ``proxies[index % len(proxies)]``."""
    if not use_proxy:
        return [None] * len(accounts)
    if len(proxies) < len(accounts):
        raise ConfigurationError(
            f"Proxy count ({len(proxies)}) is less than account count ({len(accounts)})"
        )
    return [check_proxy_scheme(proxies[account.index % len(proxies)]) for account in accounts]
