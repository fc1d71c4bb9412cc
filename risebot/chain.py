import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from aiohttp import ClientSession, ClientTimeout
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from risebot.config import Settings
from risebot.constants import ERC20_ABI
from risebot.errors import ConnectivityError, TransactionRevertedError
from risebot.logger import logger
from risebot.proxy import build_proxy_config


@dataclass(frozen=True)
class FeeSnapshot:
    gas_price: int
    max_priority_fee: int
    max_fee: int


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    block_number: int
    status: int = 1


@dataclass(frozen=True)
class ContractCall:
    """A transaction body: a plain value transfer when ``function`` is None."""

    to: str
    function: Optional[str] = None
    args: Tuple[Any, ...] = ()
    abi: Sequence[Dict[str, Any]] = field(default_factory=list, compare=False)
    value: int = 0


class ChainSession:
    """Provider plus signer for one account, routed through its proxy."""

    def __init__(self, settings: Settings, private_key: str, address: str, proxy: Optional[str] = None):
        self.settings = settings
        self.private_key = private_key
        self.address = address
        self.proxy = proxy
        self.web3: Optional[AsyncWeb3] = None
        self._session: Optional[ClientSession] = None
        self._decimals: Dict[str, int] = {}

    async def connect(self, retries: int = 3):
        timeout = self.settings.request_timeout
        last_error = None
        for attempt in range(retries):
            try:
                connector, proxy_url, proxy_auth = build_proxy_config(self.proxy)
                request_kwargs = {}
                if proxy_url:
                    request_kwargs["proxy"] = proxy_url
                if proxy_auth:
                    request_kwargs["proxy_auth"] = proxy_auth
                provider = AsyncHTTPProvider(self.settings.rpc_url, request_kwargs=request_kwargs)
                self._session = ClientSession(connector=connector, timeout=ClientTimeout(total=timeout))
                await provider.cache_async_session(self._session)
                web3 = AsyncWeb3(provider)

                chain_id = await web3.eth.chain_id
                if chain_id != self.settings.chain_id:
                    logger.warning(f"RPC chain id {chain_id} differs from configured {self.settings.chain_id}")
                self.web3 = web3
                return web3
            except Exception as e:
                last_error = e
                await self.close()
                logger.debug(f"RPC connection attempt {attempt + 1}/{retries} failed: {str(e)}")
                if attempt < retries - 1:
                    await asyncio.sleep(3)
        raise ConnectivityError(f"Failed to connect to RPC after {retries} attempts: {last_error}")

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _checksum(self, address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    def _token(self, token_address: str, abi=ERC20_ABI):
        return self.web3.eth.contract(address=self._checksum(token_address), abi=abi)

    async def get_balance(self) -> int:
        return await self.web3.eth.get_balance(self._checksum(self.address))

    async def token_balance(self, token_address: str) -> int:
        return await self._token(token_address).functions.balanceOf(self._checksum(self.address)).call()

    async def token_decimals(self, token_address: str) -> int:
        key = token_address.lower()
        if key not in self._decimals:
            self._decimals[key] = await self._token(token_address).functions.decimals().call()
        return self._decimals[key]

    async def allowance(self, token_address: str, spender: str) -> int:
        return await self._token(token_address).functions.allowance(
            self._checksum(self.address), self._checksum(spender)
        ).call()

    async def get_fee_snapshot(self) -> FeeSnapshot:
        gas_price = await self.web3.eth.gas_price
        max_priority_fee = AsyncWeb3.to_wei(self.settings.priority_fee_gwei, "gwei")
        return FeeSnapshot(
            gas_price=gas_price,
            max_priority_fee=max_priority_fee,
            max_fee=gas_price + max_priority_fee,
        )

    async def get_transaction_counts(self) -> Tuple[int, int]:
        address = self._checksum(self.address)
        pending = await self.web3.eth.get_transaction_count(address, "pending")
        latest = await self.web3.eth.get_transaction_count(address, "latest")
        return pending, latest

    async def _build_transaction(self, call: ContractCall, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {
            "from": self._checksum(self.address),
            "chainId": self.settings.chain_id,
            "value": call.value,
            **params,
        }
        if call.function is None:
            params["to"] = self._checksum(call.to)
            return params
        contract = self.web3.eth.contract(address=self._checksum(call.to), abi=list(call.abi))
        function = getattr(contract.functions, call.function)(*call.args)
        return await function.build_transaction(params)

    async def estimate_gas(self, call: ContractCall, fallback: int) -> int:
        try:
            tx = await self._build_transaction(call, {"gas": fallback})
            tx.pop("gas", None)
            estimated = await self.web3.eth.estimate_gas(tx)
            return int(estimated * 1.2)
        except Exception as e:
            logger.debug(f"Gas estimation failed, using {fallback}: {str(e)}")
            return fallback

    async def submit(self, call: ContractCall, gas_limit: int, fees: FeeSnapshot, nonce: int) -> str:
        tx = await self._build_transaction(call, {
            "gas": gas_limit,
            "maxFeePerGas": fees.max_fee,
            "maxPriorityFeePerGas": fees.max_priority_fee,
            "nonce": nonce,
        })
        signed = self.web3.eth.account.sign_transaction(tx, self.private_key)
        raw_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return self.web3.to_hex(raw_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: int = 300) -> TxReceipt:
        receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        status = receipt.get("status", 1)
        if status != 1:
            raise TransactionRevertedError(
                f"Transaction reverted in block {receipt['blockNumber']}",
                tx_hash=tx_hash,
            )
        return TxReceipt(tx_hash=tx_hash, block_number=receipt["blockNumber"], status=status)
