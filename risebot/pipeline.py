"""
Per-account transaction pipeline.

Every public action returns an ActionResult and never raises. A balance-spending
action goes through the same steps: fee snapshot, balance read, random amount,
gas units (fixed or estimated on-chain), gas sufficiency check, single-pass
amount adjustment, nonce resolution, submission and one receipt wait.
"""

import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Callable, Optional, Sequence

from eth_utils import to_checksum_address

from risebot.chain import ContractCall, FeeSnapshot, TxReceipt
from risebot.config import Settings
from risebot.constants import (
    DODO_ROUTE_PROXY_ABI, ERC20_ABI, FEE_DATA, GAS_APPROVE, GAS_GATEWAY, GAS_SWAP, GAS_WRAP,
    GATEWAY_ABI, MIX_ADAPTERS, MIX_PAIRS, MORE_INFOS, NATIVE_SYMBOL, SWAP_DEADLINE_SECONDS, WETH_ABI,
)
from risebot.errors import InsufficientFundsError, describe_revert
from risebot.utils import get_random_amount

SUCCESS = "success"
FAILED = "failed"
SKIPPED = "skipped"

# Direction flags tried in order for each swap route
WETH_TO_USDC_DIRECTIONS = (0, 1)
USDC_TO_WETH_DIRECTIONS = (1, 0)


def to_units(amount, decimals: int) -> int:
    return int((Decimal(str(amount)) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))


def from_units(units: int, decimals: int) -> float:
    return float(Decimal(units) / (Decimal(10) ** decimals))


def resolve_nonce(pending: int, latest: int, last_used: Optional[int] = None) -> int:
    """max(pending, latest), never below the last nonce this unit submitted + 1."""
    nonce = max(pending, latest)
    if last_used is not None and nonce <= last_used:
        nonce = last_used + 1
    return nonce


@dataclass(frozen=True)
class AmountPlan:
    requested: float
    fee_estimate: int
    balance: int
    amount: float
    amount_units: int
    adjusted: bool = False


def plan_amount(
    requested: float,
    balance: int,
    fee_estimate: int,
    decimals: int = 18,
    margin: float = 0.85,
    fee_in_asset: bool = True,
) -> AmountPlan:
    """Fit ``requested`` into ``balance``.

    When the fee is paid from the spent asset and ``balance < amount + fee``,
    the amount becomes ``(balance - fee) * margin``. Token-spending actions pay
    the fee in native currency so the fee term is zero for them. One pass only;
    the result may be non-positive and callers skip in that case.
    """
    requested_units = to_units(requested, decimals)
    fee_term = fee_estimate if fee_in_asset else 0

    if balance >= requested_units + fee_term:
        return AmountPlan(requested, fee_estimate, balance, requested, requested_units, False)

    adjusted_units = int(((Decimal(balance) - Decimal(fee_term)) * Decimal(str(margin))).to_integral_value(rounding=ROUND_DOWN))
    return AmountPlan(
        requested=requested,
        fee_estimate=fee_estimate,
        balance=balance,
        amount=from_units(adjusted_units, decimals),
        amount_units=adjusted_units,
        adjusted=True,
    )


@dataclass
class ActionResult:
    action: str
    status: str
    message: str = ""
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.status == SUCCESS


class TransactionPipeline:
    def __init__(self, settings: Settings, chain, log):
        self.settings = settings
        self.chain = chain
        self.log = log
        self.last_nonce: Optional[int] = None

    async def next_nonce(self) -> int:
        pending, latest = await self.chain.get_transaction_counts()
        return resolve_nonce(pending, latest, self.last_nonce)

    async def _gas_units(self, call: ContractCall, default: int) -> int:
        """On-chain estimate when enabled, else the fixed units for the action."""
        if self.settings.use_gas_estimate:
            return await self.chain.estimate_gas(call, default)
        return default

    async def _submit_and_wait(self, call: ContractCall, gas_limit: int, fees: FeeSnapshot) -> TxReceipt:
        nonce = await self.next_nonce()
        tx_hash = await self.chain.submit(call, gas_limit, fees, nonce)
        self.last_nonce = nonce

        self.log.info(f"Transaction sent! Hash: {tx_hash} (nonce {nonce})")
        self.log.debug(f"Explorer: {self.settings.explorer}/tx/{tx_hash}")
        receipt = await self.chain.wait_for_receipt(tx_hash)
        self.log.success(f"Transaction confirmed in block {receipt.block_number} | {tx_hash}")
        return receipt

    def _failed(self, action: str, error: Exception, attempts: int = 1) -> ActionResult:
        message, reason, data = describe_revert(error)
        self.log.error(f"{action} failed: {message}")
        if reason:
            self.log.error(f"Revert reason: {reason}")
        if data:
            self.log.error(f"Revert data: {data}")
        return ActionResult(action, FAILED, message=reason or message, attempts=attempts)

    def _skipped(self, action: str, error: InsufficientFundsError) -> ActionResult:
        self.log.warning(f"{action} skipped: {error.message}")
        return ActionResult(action, SKIPPED, message=error.message)

    @staticmethod
    def _check_gas(native_balance: int, fee_estimate: int, what: str = "gas"):
        if native_balance < fee_estimate:
            raise InsufficientFundsError(
                f"Insufficient {NATIVE_SYMBOL} for {what}. Available: {from_units(native_balance, 18)}, "
                f"Required: {from_units(fee_estimate, 18)}",
                available=native_balance,
                required=fee_estimate,
            )

    async def _spend(
        self,
        action: str,
        amount_range: Sequence[float],
        gas_units: int,
        build_call: Callable[[AmountPlan], ContractCall],
        token: Optional[str] = None,
        symbol: str = NATIVE_SYMBOL,
    ) -> ActionResult:
        try:
            fees = await self.chain.get_fee_snapshot()

            native_balance = await self.chain.get_balance()
            if token is None:
                balance, decimals = native_balance, 18
            else:
                balance = await self.chain.token_balance(token)
                decimals = await self.chain.token_decimals(token)

            requested = get_random_amount(amount_range)
            # Gas is resolved against the fee-free plan; the same units back the check and the limit
            provisional = plan_amount(
                requested, balance, 0, decimals,
                margin=self.settings.amount_safety_margin,
                fee_in_asset=token is None,
            )
            gas_units = await self._gas_units(build_call(provisional), gas_units)
            fee_estimate = fees.gas_price * gas_units
            self._check_gas(native_balance, fee_estimate)

            plan = plan_amount(
                requested, balance, fee_estimate, decimals,
                margin=self.settings.amount_safety_margin,
                fee_in_asset=token is None,
            )
            if plan.amount_units <= 0:
                raise InsufficientFundsError(
                    f"Insufficient {symbol} balance. Available: {from_units(balance, decimals)}, Requested: {requested}",
                    available=balance,
                    required=to_units(requested, decimals),
                )
            if plan.adjusted:
                self.log.warning(
                    f"Insufficient {symbol} for {requested} {symbol} + gas, adjusted amount to {plan.amount} {symbol}"
                )

            self.log.action(action.upper(), f"{plan.amount} {symbol} | est. gas {from_units(fee_estimate, 18)} {NATIVE_SYMBOL}")
            receipt = await self._submit_and_wait(build_call(plan), gas_units, fees)
            return ActionResult(
                action, SUCCESS,
                message=f"{plan.amount} {symbol}",
                tx_hash=receipt.tx_hash,
                block_number=receipt.block_number,
                attempts=1,
            )
        except InsufficientFundsError as e:
            return self._skipped(action, e)
        except Exception as e:
            return self._failed(action, e)

    async def transfer(self, recipient: str) -> ActionResult:
        self.log.info(f"Sending {NATIVE_SYMBOL} to {recipient}")
        return await self._spend(
            "transfer",
            self.settings.amount_transfer,
            self.settings.estimated_gas,
            lambda plan: ContractCall(to=to_checksum_address(recipient), value=plan.amount_units),
        )

    async def wrap(self) -> ActionResult:
        weth = self.settings.weth_address
        return await self._spend(
            "wrap",
            self.settings.amount_wrap,
            GAS_WRAP,
            lambda plan: ContractCall(to=weth, function="deposit", abi=WETH_ABI, value=plan.amount_units),
        )

    async def unwrap(self) -> ActionResult:
        weth = self.settings.weth_address
        return await self._spend(
            "unwrap",
            self.settings.amount_unwrap,
            GAS_WRAP,
            lambda plan: ContractCall(to=weth, function="withdraw", args=(plan.amount_units,), abi=WETH_ABI),
            token=weth,
            symbol="WETH",
        )

    async def deposit(self) -> ActionResult:
        gateway = self.settings.gateway_address
        pool = to_checksum_address(self.settings.gateway_pool_address)
        owner = to_checksum_address(self.chain.address)
        return await self._spend(
            "deposit",
            self.settings.amount_deposit,
            GAS_GATEWAY,
            lambda plan: ContractCall(
                to=gateway, function="depositETH", args=(pool, owner, 0),
                abi=GATEWAY_ABI, value=plan.amount_units,
            ),
        )

    async def withdraw(self) -> ActionResult:
        gateway = self.settings.gateway_address
        pool = to_checksum_address(self.settings.gateway_pool_address)
        owner = to_checksum_address(self.chain.address)
        return await self._spend(
            "withdraw",
            self.settings.amount_withdraw,
            GAS_GATEWAY,
            lambda plan: ContractCall(
                to=gateway, function="withdrawETH", args=(pool, plan.amount_units, owner),
                abi=GATEWAY_ABI,
            ),
        )

    async def ensure_allowance(self, token: str, spender: str, amount_units: int,
                               fees: FeeSnapshot, symbol: str = "") -> ActionResult:
        """Approve exactly ``amount_units`` when the current allowance is lower."""
        try:
            current = await self.chain.allowance(token, spender)
            if current >= amount_units:
                self.log.debug(f"{symbol} allowance sufficient: {current}")
                return ActionResult("approve", SUCCESS, message="Allowance sufficient")

            call = ContractCall(
                to=token, function="approve",
                args=(to_checksum_address(spender), amount_units), abi=ERC20_ABI,
            )
            gas_units = await self._gas_units(call, GAS_APPROVE)
            native_balance = await self.chain.get_balance()
            self._check_gas(native_balance, fees.gas_price * gas_units, what="approval gas")

            self.log.info(f"Insufficient {symbol} allowance ({current}), approving {amount_units} for {spender}...")
            receipt = await self._submit_and_wait(call, gas_units, fees)
            return ActionResult(
                "approve", SUCCESS, message=f"{amount_units} {symbol}",
                tx_hash=receipt.tx_hash, block_number=receipt.block_number, attempts=1,
            )
        except InsufficientFundsError as e:
            return self._skipped("approve", e)
        except Exception as e:
            return self._failed("approve", e)

    async def swap_weth_to_usdc(self) -> ActionResult:
        return await self._swap(
            "swap_weth_usdc",
            from_token=self.settings.weth_address,
            to_token=self.settings.usdc_address,
            amount_range=self.settings.amount_swap,
            price=self.settings.usdc_per_weth,
            directions=WETH_TO_USDC_DIRECTIONS,
            from_symbol="WETH",
            to_symbol="USDC",
        )

    async def swap_usdc_to_weth(self) -> ActionResult:
        return await self._swap(
            "swap_usdc_weth",
            from_token=self.settings.usdc_address,
            to_token=self.settings.weth_address,
            amount_range=self.settings.amount_swap_usdc,
            price=1 / self.settings.usdc_per_weth,
            directions=USDC_TO_WETH_DIRECTIONS,
            from_symbol="USDC",
            to_symbol="WETH",
        )

    @staticmethod
    def _mix_swap_call(route_proxy: str, from_token: str, to_token: str, amount_units: int,
                       expected_units: int, min_return_units: int, direction: int) -> ContractCall:
        return ContractCall(
            to=route_proxy,
            function="mixSwap",
            args=(
                to_checksum_address(from_token),
                to_checksum_address(to_token),
                amount_units,
                expected_units,
                min_return_units,
                [to_checksum_address(adapter) for adapter in MIX_ADAPTERS],
                [to_checksum_address(pair) for pair in MIX_PAIRS],
                [to_checksum_address(MIX_PAIRS[0]), route_proxy],
                direction,
                MORE_INFOS,
                FEE_DATA,
                int(time.time()) + SWAP_DEADLINE_SECONDS,
            ),
            abi=DODO_ROUTE_PROXY_ABI,
        )

    async def _swap(self, action: str, from_token: str, to_token: str, amount_range: Sequence[float],
                    price: float, directions: Sequence[int], from_symbol: str, to_symbol: str) -> ActionResult:
        try:
            route_proxy = to_checksum_address(self.settings.dodo_route_proxy_address)
            fees = await self.chain.get_fee_snapshot()
            native_balance = await self.chain.get_balance()
            balance = await self.chain.token_balance(from_token)
            from_decimals = await self.chain.token_decimals(from_token)
            to_decimals = await self.chain.token_decimals(to_token)

            # Gas is paid in native currency, so the token amount does not depend on the fee
            requested = get_random_amount(amount_range)
            plan = plan_amount(
                requested, balance, 0, from_decimals,
                margin=self.settings.amount_safety_margin,
                fee_in_asset=False,
            )

            expected = round(plan.amount * price, to_decimals)
            expected_units = to_units(expected, to_decimals)
            min_return_units = to_units(round(expected * self.settings.slippage_factor, to_decimals), to_decimals)

            def build_call(direction: int) -> ContractCall:
                return self._mix_swap_call(route_proxy, from_token, to_token, plan.amount_units,
                                           expected_units, min_return_units, direction)

            gas_units = await self._gas_units(build_call(directions[0]), GAS_SWAP)
            self._check_gas(native_balance, fees.gas_price * gas_units)

            if plan.amount_units <= 0:
                raise InsufficientFundsError(
                    f"Insufficient {from_symbol} balance. Available: {from_units(balance, from_decimals)}, "
                    f"Required: {requested} {from_symbol}",
                    available=balance,
                    required=to_units(requested, from_decimals),
                )
            if plan.adjusted:
                self.log.warning(f"Insufficient {from_symbol}, adjusted amount to {plan.amount} {from_symbol}")

            approval = await self.ensure_allowance(from_token, route_proxy, plan.amount_units, fees, from_symbol)
            if not approval.success:
                self.log.error("Cannot proceed with swap due to allowance issue")
                return ActionResult(action, FAILED, message=f"Approval not confirmed: {approval.message}")

            self.log.action(
                action.upper(),
                f"{plan.amount} {from_symbol} -> {to_symbol} | exp. {expected} | min. {from_units(min_return_units, to_decimals)}"
            )
        except InsufficientFundsError as e:
            return self._skipped(action, e)
        except Exception as e:
            return self._failed(action, e)

        last_error = None
        for attempt, direction in enumerate(directions, 1):
            self.log.info(f"Swap attempt {attempt}/{len(directions)} with direction {direction}")
            try:
                receipt = await self._submit_and_wait(build_call(direction), gas_units, fees)
                self.log.success(f"Successfully swapped {plan.amount} {from_symbol} to {to_symbol}")
                return ActionResult(
                    action, SUCCESS,
                    message=f"{plan.amount} {from_symbol} -> {to_symbol} (direction {direction})",
                    tx_hash=receipt.tx_hash,
                    block_number=receipt.block_number,
                    attempts=attempt,
                )
            except Exception as e:
                message, reason, data = describe_revert(e)
                last_error = reason or message
                self.log.warning(f"Swap attempt {attempt} with direction {direction} failed: {message}")
                if reason:
                    self.log.warning(f"Revert reason: {reason}")
                if data:
                    self.log.warning(f"Revert data: {data}")

        self.log.error(f"Swap {from_symbol} to {to_symbol} failed after {len(directions)} attempts")
        return ActionResult(action, FAILED, message=last_error or "Swap failed", attempts=len(directions))
