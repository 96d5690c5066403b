# src/polywallet/cli/cli.py
import argparse
import asyncio
import sys
from typing import Callable, List, Optional

from ..config.settings import WalletSettings
from ..exceptions import ServiceError
from ..monitoring.logging_config import LogConfig
from ..services.authentication import CallbackGate
from ..wallet.manager import WalletManager


def confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N]: ")
    return answer.strip().lower() in ("y", "yes")


class CLI:
    def __init__(
        self,
        manager_factory: Optional[Callable[[WalletSettings], WalletManager]] = None,
        confirm_fn: Callable[[str], bool] = confirm
    ):
        self.manager_factory = manager_factory or self._default_manager
        self.confirm = confirm_fn
        self.settings: Optional[WalletSettings] = None
        self.manager: Optional[WalletManager] = None

    def _default_manager(self, settings: WalletSettings) -> WalletManager:
        # Terminal confirmation stands in for a biometric prompt
        return WalletManager.from_settings(settings, gate=CallbackGate(self.confirm))

    def main(self, args: List[str]) -> int:
        parser = self.create_parser()
        args = parser.parse_args(args)

        if not hasattr(args, 'func'):
            parser.print_help()
            return 1

        self.settings = WalletSettings(args.config)
        if args.command != 'serve':
            LogConfig(
                log_dir=self.settings.get("monitoring.log_dir", "logs"),
                level=args.log_level or self.settings.get("monitoring.log_level", "INFO"),
                secrets=[self.settings.ankr_api_key]
            ).setup_logging()
        self.manager = self.manager_factory(self.settings)

        if args.command == 'serve':
            return args.func(args)
        return asyncio.run(self._run(args))

    async def _run(self, args) -> int:
        try:
            await self.manager.initialize()
            await args.func(args)
        except ServiceError as e:
            print(f"Error: {e.user_message}")
            return 1
        return 0

    def create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='polywallet CLI')
        parser.add_argument('--config', default='config/wallet.yaml', help='Settings file')
        parser.add_argument('--log-level', default=None, help='Console log level')
        subparsers = parser.add_subparsers(title='commands', dest='command')

        # Wallet commands
        wallet_parser = subparsers.add_parser('wallet', help='Wallet operations')
        wallet_subparsers = wallet_parser.add_subparsers()

        create_wallet = wallet_subparsers.add_parser('create', help='Create new wallet')
        source = create_wallet.add_mutually_exclusive_group()
        source.add_argument('--mnemonic', help='Derive from a mnemonic phrase')
        source.add_argument('--private-key', help='Derive from a 0x-prefixed private key')
        create_wallet.add_argument('--yes', action='store_true', help='Replace an existing wallet without asking')
        create_wallet.set_defaults(func=self.create_wallet)

        restore = wallet_subparsers.add_parser('restore', help='Restore wallet from private key')
        restore.add_argument('private_key', help='0x-prefixed private key')
        restore.add_argument('--yes', action='store_true', help='Replace an existing wallet without asking')
        restore.set_defaults(func=self.restore_wallet)

        export = wallet_subparsers.add_parser('export', help='Export private key')
        export.set_defaults(func=self.export_private_key)

        balance = wallet_subparsers.add_parser('balance', help='Get wallet balance')
        balance.set_defaults(func=self.get_balance)

        history = wallet_subparsers.add_parser('history', help='Show transaction history')
        history.add_argument('--address', help='Address to query (defaults to the wallet)')
        history.add_argument('--page-size', type=int, default=None)
        history.add_argument('--page-token', default=None)
        history.set_defaults(func=self.get_history)

        delete = wallet_subparsers.add_parser('delete', help='Delete the stored wallet')
        delete.add_argument('--yes', action='store_true')
        delete.set_defaults(func=self.delete_wallet)

        # Transaction commands
        tx_parser = subparsers.add_parser('tx', help='Transaction operations')
        tx_subparsers = tx_parser.add_subparsers()

        send_tx = tx_subparsers.add_parser('send', help='Send transaction')
        send_tx.add_argument('recipient', help='Recipient address')
        send_tx.add_argument('amount', help='Amount to send')
        send_tx.add_argument('--gas-limit', default=None)
        send_tx.add_argument('--gas-price', default=None, help='Gas price in wei')
        send_tx.add_argument('--yes', action='store_true')
        send_tx.set_defaults(func=self.send_transaction)

        show_tx = tx_subparsers.add_parser('show', help='Show transaction details')
        show_tx.add_argument('tx_hash')
        show_tx.set_defaults(func=self.show_transaction)

        # API server
        serve = subparsers.add_parser('serve', help='Run the wallet HTTP API')
        serve.add_argument('--host', default=None)
        serve.add_argument('--port', type=int, default=None)
        serve.set_defaults(func=self.serve)

        return parser

    def _symbol(self) -> str:
        network = self.manager.blockchain.get_current_network()
        return network.symbol if network else ""

    def _confirm_replace(self, args) -> bool:
        if not self.manager.is_wallet_loaded() or args.yes:
            return True
        return self.confirm(
            f"This replaces wallet {self.manager.get_address()}. "
            "Funds are lost unless its key was exported. Continue?"
        )

    async def create_wallet(self, args):
        if not self._confirm_replace(args):
            print("Cancelled")
            return
        wallet = await self.manager.create_wallet(private_key=args.private_key, mnemonic=args.mnemonic)
        print("Created new wallet")
        print(f"Address: {wallet.address}")
        print(f"Balance: {wallet.balance or 'unknown'} {self._symbol()}")

    async def restore_wallet(self, args):
        if not self._confirm_replace(args):
            print("Cancelled")
            return
        wallet = await self.manager.restore_wallet(args.private_key)
        print(f"Restored wallet {wallet.address}")

    async def export_private_key(self, args):
        private_key = await self.manager.export_private_key()
        print(f"Private key: {private_key}")

    async def get_balance(self, args):
        balance = await self.manager.get_balance()
        print(f"Balance for {self.manager.get_address()}: {balance} {self._symbol()}")

    async def get_history(self, args):
        history = await self.manager.get_transaction_history(args.address, args.page_size, args.page_token)
        if not history.transactions:
            print("No transactions")
        for tx in history.transactions:
            sign = "+" if tx.direction == "received" else "-"
            counterparty = tx.from_address if tx.direction == "received" else tx.to_address
            print(
                f"{tx.timestamp:%Y-%m-%d %H:%M} {tx.direction:<8} {sign}{tx.value} {self._symbol()} "
                f"{counterparty} [{tx.status}] {tx.hash}"
            )
        if history.next_page_token:
            print(f"Next page: --page-token {history.next_page_token}")

    async def delete_wallet(self, args):
        if not args.yes and not self.confirm("Delete the stored wallet from this device?"):
            print("Cancelled")
            return
        await self.manager.delete_wallet()
        print("Wallet deleted")

    async def send_transaction(self, args):
        if args.gas_limit is None:
            pending = await self.manager.gas_estimator().schedule(args.recipient, args.amount)
            if pending:
                print(f"Estimated gas: {pending.estimated_gas}")
        if not args.yes and not self.confirm(f"Send {args.amount} {self._symbol()} to {args.recipient}?"):
            print("Cancelled")
            return
        tx_hash = await self.manager.send_transaction(
            args.recipient, args.amount, args.gas_limit, args.gas_price
        )
        print(f"Transaction sent: {tx_hash}")

    async def show_transaction(self, args):
        details = await self.manager.get_transaction_details(args.tx_hash)
        for field, value in details.model_dump().items():
            if value is not None:
                print(f"{field}: {value}")

    def serve(self, args) -> int:
        import uvicorn
        from ..api.server import create_app

        uvicorn.run(
            create_app(self.manager, secrets=[self.settings.ankr_api_key]),
            host=args.host or self.settings.get("api.host", "127.0.0.1"),
            port=args.port or self.settings.get("api.port", 8000),
            log_level=(args.log_level or self.settings.get("monitoring.log_level", "INFO")).lower()
        )
        return 0


def main():
    cli = CLI()
    sys.exit(cli.main(sys.argv[1:]))

if __name__ == "__main__":
    main()
