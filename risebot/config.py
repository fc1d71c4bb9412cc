from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import is_address

from risebot.errors import ConfigurationError

DEFAULT_RPC_URL = "https://testnet.riselabs.xyz"
DEFAULT_CHAIN_ID = 11155931
DEFAULT_EXPLORER = "https://explorer.testnet.riselabs.xyz"
DEFAULT_WETH = "0x4200000000000000000000000000000000000006"
DEFAULT_GATEWAY_POOL = "0x81edb206Fd1FB9dC517B61793AaA0325c8d11A23"
DEFAULT_FAUCET_API = "https://faucet-api.riselabs.xyz"
DEFAULT_FAUCET_PAGE = "https://portal.risechain.com"


def parse_amount_range(value, default=0.001) -> Tuple[float, float]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return float(value[0]), float(value[1])
    elif isinstance(value, (int, float)):
        return float(value), float(value)
    return float(default), float(default)


def _whole_seconds(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        raise ConfigurationError(f"Delays are whole seconds, got {value!r}")
    return int(value)


def parse_delay_range(value, default) -> Tuple[int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return _whole_seconds(value[0]), _whole_seconds(value[1])
    elif value is not None:
        seconds = _whole_seconds(value)
        return seconds, seconds
    return tuple(default)


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration, read once from settings.yaml."""

    max_threads: int = 10
    max_threads_no_proxy: int = 10
    use_proxy: bool = False
    enable_debug: bool = False
    timezone: str = "Asia/Ho_Chi_Minh"
    delay_between_requests: Tuple[int, int] = (1, 5)
    delay_start_bot: Tuple[int, int] = (1, 15)
    delay_between_batches: float = 3
    unit_timeout: float = 86400

    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    explorer: str = DEFAULT_EXPLORER
    priority_fee_gwei: float = 1.5
    use_gas_estimate: bool = False
    request_timeout: int = 60

    weth_address: str = DEFAULT_WETH
    usdc_address: Optional[str] = None
    gateway_address: Optional[str] = None
    gateway_pool_address: str = DEFAULT_GATEWAY_POOL
    dodo_route_proxy_address: Optional[str] = None

    amount_transfer: Tuple[float, float] = (0.001, 0.01)
    amount_deposit: Tuple[float, float] = (0.1, 1.0)
    amount_withdraw: Tuple[float, float] = (0.1, 1.0)
    amount_wrap: Tuple[float, float] = (0.1, 1.0)
    amount_unwrap: Tuple[float, float] = (0.1, 1.0)
    amount_swap: Tuple[float, float] = (0.1, 1.0)
    amount_swap_usdc: Tuple[float, float] = (1.0, 5.0)
    estimated_gas: int = 200000
    amount_safety_margin: float = 0.85
    slippage_factor: float = 0.968
    usdc_per_weth: float = 1071.568

    number_of_transfer: int = 10
    number_of_swap: int = 10
    tasks_id: Tuple[str, ...] = ()

    faucet_api: str = DEFAULT_FAUCET_API
    faucet_page: str = DEFAULT_FAUCET_PAGE
    tokens_faucet: Tuple[str, ...] = ("ETH",)

    captcha_provider: str = "2captcha"
    captcha_api_key: Optional[str] = None
    website_key: Optional[str] = None
    captcha_url: Optional[str] = None

    database_path: str = "data/database.db"

    @property
    def max_concurrency(self) -> int:
        return self.max_threads if self.use_proxy else self.max_threads_no_proxy

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Settings":
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ConfigurationError("settings.yaml must contain a mapping of sections")

        bot_settings = raw.get('SETTINGS', {}) or {}
        network = raw.get('NETWORK', {}) or {}
        contracts = raw.get('CONTRACTS', {}) or {}
        amounts = raw.get('AMOUNTS', {}) or {}
        tasks = raw.get('TASKS', {}) or {}
        faucet = raw.get('FAUCET', {}) or {}
        captcha = raw.get('CAPTCHA', {}) or {}
        database = raw.get('DATABASE', {}) or {}

        provider = str(captcha.get('TYPE_CAPTCHA') or '2captcha').lower()
        api_key_map = {
            '2captcha': captcha.get('API_KEY_2CAPTCHA'),
            'anticaptcha': captcha.get('API_KEY_ANTI_CAPTCHA'),
            'capmonster': captcha.get('API_KEY_CAPMONSTER'),
        }

        try:
            settings = cls(
                max_threads=int(bot_settings.get('MAX_THREADS', 10)),
                max_threads_no_proxy=int(bot_settings.get('MAX_THREADS_NO_PROXY', 10)),
                use_proxy=bool(bot_settings.get('USE_PROXY', False)),
                enable_debug=bool(bot_settings.get('ENABLE_DEBUG', False)),
                timezone=bot_settings.get('TIMEZONE', "Asia/Ho_Chi_Minh"),
                delay_between_requests=parse_delay_range(bot_settings.get('DELAY_BETWEEN_REQUESTS'), (1, 5)),
                delay_start_bot=parse_delay_range(bot_settings.get('DELAY_START_BOT'), (1, 15)),
                delay_between_batches=float(bot_settings.get('DELAY_BETWEEN_BATCHES', 3)),
                unit_timeout=float(bot_settings.get('UNIT_TIMEOUT', 86400)),

                rpc_url=network.get('RPC_URL', DEFAULT_RPC_URL),
                chain_id=int(network.get('CHAIN_ID', DEFAULT_CHAIN_ID)),
                explorer=str(network.get('EXPLORER', DEFAULT_EXPLORER)).rstrip('/'),
                priority_fee_gwei=float(network.get('PRIORITY_FEE_GWEI', 1.5)),
                use_gas_estimate=bool(network.get('USE_GAS_ESTIMATE', False)),
                request_timeout=int(network.get('REQUEST_TIMEOUT', 60)),

                weth_address=contracts.get('WETH') or DEFAULT_WETH,
                usdc_address=contracts.get('USDC') or None,
                gateway_address=contracts.get('WRAPPED_TOKEN_GATEWAY') or None,
                gateway_pool_address=contracts.get('GATEWAY_POOL') or DEFAULT_GATEWAY_POOL,
                dodo_route_proxy_address=contracts.get('DODO_FEE_ROUTE_PROXY') or None,

                amount_transfer=parse_amount_range(amounts.get('AMOUNT_TRANSFER'), 0.001),
                amount_deposit=parse_amount_range(amounts.get('AMOUNT_DEPOSIT'), 0.1),
                amount_withdraw=parse_amount_range(amounts.get('AMOUNT_WITHDRAW'), 0.1),
                amount_wrap=parse_amount_range(amounts.get('AMOUNT_WRAP', amounts.get('AMOUNT_DEPOSIT')), 0.1),
                amount_unwrap=parse_amount_range(amounts.get('AMOUNT_UNWRAP', amounts.get('AMOUNT_WITHDRAW')), 0.1),
                amount_swap=parse_amount_range(amounts.get('AMOUNT_SWAP'), 0.1),
                amount_swap_usdc=parse_amount_range(amounts.get('AMOUNT_SWAP_USDC', [1, 5]), 1),
                estimated_gas=int(amounts.get('ESTIMATED_GAS', 200000)),
                amount_safety_margin=float(amounts.get('AMOUNT_SAFETY_MARGIN', 0.85)),
                slippage_factor=float(amounts.get('SLIPPAGE_FACTOR', 0.968)),
                usdc_per_weth=float(amounts.get('USDC_PER_WETH', 1071.568)),

                number_of_transfer=int(tasks.get('NUMBER_OF_TRANSFER', 10)),
                number_of_swap=int(tasks.get('NUMBER_OF_SWAP', 10)),
                tasks_id=tuple(str(task_id) for task_id in (tasks.get('TASKS_ID') or [])),

                faucet_api=str(faucet.get('API_URL', DEFAULT_FAUCET_API)).rstrip('/'),
                faucet_page=str(faucet.get('PAGE_URL', DEFAULT_FAUCET_PAGE)).rstrip('/'),
                tokens_faucet=tuple(faucet.get('TOKENS_FAUCET') or ("ETH",)),

                captcha_provider=provider,
                captcha_api_key=api_key_map.get(provider),
                website_key=captcha.get('WEBSITE_KEY'),
                captcha_url=captcha.get('CAPTCHA_URL'),

                database_path=database.get('PATH', "data/database.db"),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value in settings.yaml: {e}") from e

        settings.validate()
        return settings

    def validate(self):
        if self.max_threads < 1 or self.max_threads_no_proxy < 1:
            raise ConfigurationError("MAX_THREADS and MAX_THREADS_NO_PROXY must be at least 1")
        if not self.rpc_url:
            raise ConfigurationError("NETWORK.RPC_URL is required")
        if self.chain_id <= 0:
            raise ConfigurationError(f"Invalid NETWORK.CHAIN_ID: {self.chain_id}")
        if self.unit_timeout <= 0:
            raise ConfigurationError("UNIT_TIMEOUT must be positive")
        if not 0 < self.amount_safety_margin <= 1:
            raise ConfigurationError("AMOUNT_SAFETY_MARGIN must be in (0, 1]")
        if not 0 < self.slippage_factor <= 1:
            raise ConfigurationError("SLIPPAGE_FACTOR must be in (0, 1]")
        if self.usdc_per_weth <= 0:
            raise ConfigurationError("USDC_PER_WETH must be positive")

        for name in ('amount_transfer', 'amount_deposit', 'amount_withdraw', 'amount_wrap',
                     'amount_unwrap', 'amount_swap', 'amount_swap_usdc'):
            low, high = getattr(self, name)
            if low <= 0 or high < low:
                raise ConfigurationError(f"{name.upper()} must be a positive [min, max] range, got [{low}, {high}]")

        for name in ('delay_between_requests', 'delay_start_bot'):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ConfigurationError(f"{name.upper()} must be a [min, max] range, got [{low}, {high}]")

        for name in ('weth_address', 'usdc_address', 'gateway_address',
                     'gateway_pool_address', 'dodo_route_proxy_address'):
            value = getattr(self, name)
            if value is not None and not is_address(value):
                raise ConfigurationError(f"Invalid contract address for {name}: {value}")

    def require_contracts(self, task_ids: List[str]):
        """Fail before launch when a selected task has no contract address."""
        selected = set(self.tasks_id) if "9" in task_ids else set(task_ids)
        if selected & {"3", "4"} and not self.gateway_address:
            raise ConfigurationError("CONTRACTS.WRAPPED_TOKEN_GATEWAY is required for deposit/withdraw tasks")
        if selected & {"7", "8"}:
            if not self.usdc_address:
                raise ConfigurationError("CONTRACTS.USDC is required for swap tasks")
            if not self.dodo_route_proxy_address:
                raise ConfigurationError("CONTRACTS.DODO_FEE_ROUTE_PROXY is required for swap tasks")
        if selected & {"1"} and self.captcha_api_key and not self.website_key:
            raise ConfigurationError("CAPTCHA.WEBSITE_KEY is required to solve the faucet captcha")
