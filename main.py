import asyncio
import sys
from typing import Optional
from colorama import Fore, Style, init
from database import Database
from risebot.config import Settings
from risebot.constants import TASK_TITLES
from risebot.errors import ConfigurationError
from risebot.logger import logger
from risebot.utils import load_settings, create_data_directory

init(autoreset=True)


class CLI:

    def __init__(self):
        create_data_directory()

        try:
            self.settings = Settings.from_dict(load_settings())
        except ConfigurationError as e:
            logger.error(f"Failed to load settings: {e.message}")
            sys.exit(1)

        logger.configure(debug=self.settings.enable_debug, timezone=self.settings.timezone)
        self.db = Database(self.settings.database_path)

    def print_menu(self):

        logger.clear_terminal()
        logger.print_banner()

        menu = f"""
    {Fore.CYAN + Style.BRIGHT}╔══════════════════════════════════════════════╗
    ║              MAIN MENU                       ║
    ╠══════════════════════════════════════════════╣
    ║                                              ║
    ║  {Fore.GREEN}1.{Fore.CYAN} Run Bot                                  {Fore.CYAN}║
    ║  {Fore.GREEN}2.{Fore.CYAN} View Statistics                          {Fore.CYAN}║
    ║  {Fore.GREEN}3.{Fore.CYAN} Export Statistics                        {Fore.CYAN}║
    ║  {Fore.GREEN}4.{Fore.CYAN} Settings                                 {Fore.CYAN}║
    ║  {Fore.GREEN}0.{Fore.CYAN} Exit                                     {Fore.CYAN}║
    ║                                              ║
    ╚══════════════════════════════════════════════╝{Style.RESET_ALL}
        """
        print(menu)

    def print_bot_menu(self):
        lines = "\n".join(
            f"    ║  {Fore.GREEN}{task_id}.{Fore.CYAN} {title:<41}{Fore.CYAN}║"
            for task_id, title in TASK_TITLES.items()
        )
        menu = f"""
    {Fore.CYAN + Style.BRIGHT}╔══════════════════════════════════════════════╗
    ║           BOT ACTION MENU                    ║
    ╠══════════════════════════════════════════════╣
    ║                                              ║
{lines}
    ║  {Fore.GREEN}0.{Fore.CYAN} Back to Main Menu                        {Fore.CYAN}║
    ║                                              ║
    ╚══════════════════════════════════════════════╝{Style.RESET_ALL}
        """
        print(menu)

    def get_input(self, prompt: str) -> str:
        return input(f"{Fore.YELLOW + Style.BRIGHT}{prompt}{Style.RESET_ALL}").strip()

    async def run_bot(self) -> Optional[int]:
        """Run one full pass. Returns the exit status, or None when the user backed out."""
        self.print_bot_menu()
        choice = self.get_input("Select option: ")

        if choice == '0':
            return None
        if choice not in TASK_TITLES:
            logger.error("Invalid option. Please try again.")
            self.get_input("\nPress Enter to continue...")
            return None

        from risebot.bot import RiseBot

        logger.clear_terminal()
        logger.print_banner()
        try:
            bot = RiseBot(self.settings, self.db)
            await bot.run(choice)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e.message}")
            return 1

        logger.success("All accounts processed")
        return 0

    def view_statistics(self):
        logger.clear_terminal()
        logger.print_banner()

        logger.info("Statistics")
        logger.separator()

        logger.info(f"Total Accounts: {self.db.get_account_count()}")
        stats = self.db.get_success_rate()
        logger.info(f"Total Actions: {stats['total']}")
        logger.success(f"Successful: {stats['success']}")
        logger.error(f"Failed: {stats['failed']}")
        logger.warning(f"Skipped: {stats['skipped']}")
        logger.info(f"Success Rate: {stats['success_rate']:.2f}%")

        logger.separator()

        runs = self.db.get_runs(limit=5)
        if runs:
            logger.info("Recent Runs:")
            for run in runs:
                title = TASK_TITLES.get(run['task_id'], run['task_id'])
                print(f"  #{run['id']} {title}: {run['succeeded'] or 0}/{run['total_accounts']} - {run['started_at']}")

        recent = self.db.get_statistics(limit=10)
        if recent:
            logger.info("Recent Actions (Last 10):")
            for action in recent:
                status_color = Fore.GREEN if action[2] == 'success' else Fore.RED
                print(f"  {status_color}{action[1]}: {action[2]}{Style.RESET_ALL} - {action[0]} - {action[6]}")

        self.get_input("\nPress Enter to continue...")

    def export_statistics(self):
        logger.clear_terminal()
        logger.print_banner()

        filename = self.get_input("Enter filename (default: statistics_export.json): ")
        if not filename:
            filename = "statistics_export.json"

        try:
            count = self.db.export_statistics(filename)
            logger.success(f"Exported {count} records to {filename}")
        except Exception as e:
            logger.error(f"Failed to export statistics: {e}")

        self.get_input("\nPress Enter to continue...")

    def show_settings(self):
        logger.clear_terminal()
        logger.print_banner()

        logger.info("Current Settings")
        logger.separator()

        settings = self.settings
        logger.info(f"Use Proxy: {settings.use_proxy}")
        logger.info(f"Max Concurrency: {settings.max_concurrency}")
        logger.info(f"RPC: {settings.rpc_url} (chain {settings.chain_id})")
        logger.info(f"Tasks (Auto All): {', '.join(settings.tasks_id) or 'none'}")
        logger.info(f"Transfers: {settings.number_of_transfer} | Swaps: {settings.number_of_swap}")
        logger.info(f"Faucet Tokens: {', '.join(settings.tokens_faucet)}")
        logger.info(f"Captcha Provider: {settings.captcha_provider}")
        logger.info(f"Delay Between Requests: {settings.delay_between_requests[0]}-{settings.delay_between_requests[1]}s")

        self.get_input("\nPress Enter to continue...")

    async def main_loop(self) -> int:
        while True:
            self.print_menu()
            choice = self.get_input("Select option: ")

            if choice == '1':
                status = await self.run_bot()
                if status is not None:
                    return status
            elif choice == '2':
                self.view_statistics()
            elif choice == '3':
                self.export_statistics()
            elif choice == '4':
                self.show_settings()
            elif choice == '0':
                logger.info("Goodbye!")
                return 0
            else:
                logger.error("Invalid option. Please try again.")
                self.get_input("\nPress Enter to continue...")


def main():
    status = 0
    try:
        cli = CLI()
        status = asyncio.run(cli.main_loop())
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user. Exiting...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        import traceback
        traceback.print_exc()
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
