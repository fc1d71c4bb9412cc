import os
from datetime import datetime
from typing import Optional
from colorama import Fore, Style, init
import pytz

init(autoreset=True)

DEFAULT_TIMEZONE = 'Asia/Ho_Chi_Minh'

_COLOR_CODES = [Fore.CYAN, Fore.GREEN, Fore.RED, Fore.YELLOW, Fore.BLUE,
                Fore.MAGENTA, Fore.WHITE, Style.BRIGHT, Style.RESET_ALL]


class Logger:
    def __init__(self, log_to_file: bool = True, log_dir: str = "logs", timezone: str = DEFAULT_TIMEZONE):
        self.log_to_file = log_to_file
        self.log_dir = log_dir
        self.debug_enabled = False
        self.tz = pytz.timezone(timezone)

        if log_to_file:
            os.makedirs(log_dir, exist_ok=True)
            self.log_file = os.path.join(
                log_dir,
                f"bot_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            )

    def configure(self, debug: bool = False, timezone: Optional[str] = None):
        self.debug_enabled = debug
        if timezone:
            self.tz = pytz.timezone(timezone)

    def _get_timestamp(self) -> str:
        return datetime.now().astimezone(self.tz).strftime('%Y-%m-%d %X %Z')

    def _write_to_file(self, message: str):
        if self.log_to_file:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                clean_message = message
                for code in _COLOR_CODES:
                    clean_message = clean_message.replace(code, '')
                f.write(f"{self._get_timestamp()} | {clean_message}\n")

    def _emit(self, label: str, color: str, message: str):
        log_msg = (
            f"{color + Style.BRIGHT}[{label}]{Style.RESET_ALL} "
            f"{Fore.WHITE}{message}{Style.RESET_ALL}"
        )
        print(log_msg, flush=True)
        self._write_to_file(f"[{label}] {message}")

    def info(self, message: str):
        self._emit("INFO", Fore.CYAN, message)

    def success(self, message: str):
        self._emit("SUCCESS", Fore.GREEN, message)

    def error(self, message: str):
        self._emit("ERROR", Fore.RED, message)

    def warning(self, message: str):
        self._emit("WARNING", Fore.YELLOW, message)

    def debug(self, message: str):
        if not self.debug_enabled:
            self._write_to_file(f"[DEBUG] {message}")
            return
        self._emit("DEBUG", Fore.MAGENTA, message)

    def action(self, action_name: str, details: str = ""):
        self._emit(action_name, Fore.BLUE, details)

    def separator(self):
        sep = "=" * 70
        print(f"{Fore.CYAN + Style.BRIGHT}{sep}{Style.RESET_ALL}")
        self._write_to_file(sep)

    @staticmethod
    def clear_terminal():
        os.system('cls' if os.name == 'nt' else 'clear')

    @staticmethod
    def print_banner():
        banner = f"""
{Fore.BLUE + Style.BRIGHT}╔═══════════════════════════════════════════════════════════════════╗
║                                                                   ║
║   {Fore.CYAN + Style.BRIGHT}██████╗ ██╗███████╗███████╗{Fore.BLUE}                                     ║
║   {Fore.CYAN + Style.BRIGHT}██╔══██╗██║██╔════╝██╔════╝{Fore.BLUE}                                     ║
║   {Fore.CYAN + Style.BRIGHT}██████╔╝██║███████╗█████╗  {Fore.BLUE}                                     ║
║   {Fore.CYAN + Style.BRIGHT}██╔══██╗██║╚════██║██╔══╝  {Fore.BLUE}                                     ║
║   {Fore.CYAN + Style.BRIGHT}██║  ██║██║███████║███████╗{Fore.BLUE}                                     ║
║   {Fore.CYAN + Style.BRIGHT}╚═╝  ╚═╝╚═╝╚══════╝╚══════╝{Fore.BLUE}                                     ║
║                                                                   ║
║              {Fore.WHITE + Style.BRIGHT}RISE TESTNET BOT v1.0{Fore.BLUE}                                ║
║                                                                   ║
╚═══════════════════════════════════════════════════════════════════╝{Style.RESET_ALL}
"""
        print(banner)


class AccountLogger:
    """Prefixes every line with the account ordinal, address and proxy IP."""

    def __init__(self, base: Logger, index: int, address: str, use_proxy: bool = False):
        self.base = base
        self.index = index
        self.address = address
        self.use_proxy = use_proxy
        self.proxy_ip: Optional[str] = None

    @property
    def prefix(self) -> str:
        ip_prefix = "[Local IP]"
        if self.use_proxy:
            ip_prefix = f"[{self.proxy_ip}]" if self.proxy_ip else "[Unknown IP]"
        return f"[RISE][{self.index + 1}][{self.address}]{ip_prefix}"

    def info(self, message: str):
        self.base.info(f"{self.prefix} {message}")

    def success(self, message: str):
        self.base.success(f"{self.prefix} {message}")

    def warning(self, message: str):
        self.base.warning(f"{self.prefix} {message}")

    def error(self, message: str):
        self.base.error(f"{self.prefix} {message}")

    def debug(self, message: str):
        self.base.debug(f"{self.prefix} {message}")

    def action(self, action_name: str, details: str = ""):
        self.base.action(action_name, f"{self.prefix} {details}")


logger = Logger()
