"""
Command line front-end: predict the next block hash, list and reveal
predictions with a local private key.

Usage:
    blockhash-predictor [predict|history|reveal ID|info|menu] [--contract ADDR] [--rpc-url URL]
"""
import argparse
import asyncio
import sys
from typing import List, Optional

import bittensor as bt
from eth_account import Account
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from blockhash_predictor import __version__
from blockhash_predictor.config import PredictorConfig, load_config
from blockhash_predictor.errors import PredictorError, ValidationError
from blockhash_predictor.predictor import BlockHashPredictor
from blockhash_predictor.protocol import ChainSnapshot, Prediction
from blockhash_predictor.utils.validation import is_bytes32_hex, short_hex, validate_prediction_id

DARK_GREEN = "dark_green"
LIGHT_GREEN = "green"
GOLD = "gold1"
LIGHT_GOLD = "yellow"

EXIT_OK = 0
EXIT_FAILURE = 1

COMMANDS = ("predict", "history", "reveal", "info", "menu")

STATUS_STYLES = {
    "PENDING": "bold white",
    "CORRECT": f"bold {LIGHT_GREEN}",
    "WRONG": "bold red",
}


class PredictorCLI:
    """
    Interactive views over a connected BlockHashPredictor. Every command
    returns the process exit code.
    """

    def __init__(self, predictor: BlockHashPredictor, console: Optional[Console] = None):
        self.predictor = predictor
        self.config: PredictorConfig = predictor.config
        self.console = console or Console()

    def print_banner(self):
        self.console.print(
            Panel(
                f"BLOCKHASH PREDICTOR\n{self.config.chain_name} (Chain {self.config.chain_id})",
                style=f"bold {GOLD}",
                box=box.DOUBLE,
            )
        )

    def print_error(self, message: str):
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def render_snapshot(self, snapshot: ChainSnapshot) -> Panel:
        table = Table(show_header=False, box=None, expand=True)
        table.add_column("Field", style=LIGHT_GREEN)
        table.add_column("Value", style=GOLD)
        table.add_row("Wallet", self.predictor.session.address or "-")
        table.add_row("Current block", f"#{snapshot.block_number}")
        table.add_row("Latest hash", snapshot.block_hash)
        table.add_row("Predicting for", f"[bold]#{snapshot.target_block}[/bold]")
        return Panel(table, title="Chain Info", border_style=DARK_GREEN)

    def render_candidates(self, snapshot: ChainSnapshot) -> Panel:
        table = Table(show_header=False, box=None, expand=True)
        table.add_column("Option", style=LIGHT_GREEN)
        table.add_column("Hash", style=GOLD)
        for i, option in enumerate(snapshot.candidates, start=1):
            table.add_row(f"[{i}]", option)
        table.add_row("[5]", "Enter a custom bytes32 hash")
        return Panel(table, title="Choose a predicted hash (or enter your own)", border_style=DARK_GREEN)

    def render_history(self, predictions: List[Prediction]) -> Table:
        table = Table(box=box.ROUNDED, expand=True, border_style=DARK_GREEN)
        table.add_column("ID", style=LIGHT_GREEN)
        table.add_column("Target Block", style=LIGHT_GREEN)
        table.add_column("Predicted", style=GOLD)
        table.add_column("Actual", style=GOLD)
        table.add_column("Status")
        for prediction in predictions:
            table.add_row(
                f"#{prediction.id}",
                f"#{prediction.target_block}",
                short_hex(prediction.predicted_hash, 10, 8),
                short_hex(prediction.actual_hash, 10, 8) if prediction.revealed else "-",
                f"[{STATUS_STYLES[prediction.status]}]{prediction.status}[/]",
            )
        return table

    def choose_hash(self, snapshot: ChainSnapshot) -> Optional[str]:
        """Returns the chosen hash, or None when the input is invalid."""
        choice = Prompt.ask("Your choice (1-5)", console=self.console).strip()
        if choice == "5":
            custom = Prompt.ask("Enter your bytes32 hash (0x...)", console=self.console).strip()
            if not is_bytes32_hex(custom):
                self.print_error("Invalid bytes32. Must be 0x + 64 hex chars.")
                return None
            return custom
        if choice in ("1", "2", "3", "4"):
            return snapshot.candidates[int(choice) - 1]
        self.print_error("Invalid choice.")
        return None

    async def predict(self) -> int:
        self.print_banner()
        try:
            snapshot = await self.predictor.snapshots.snapshot()
        except PredictorError as e:
            self.print_error(f"Unable to read the latest block: {e}")
            return EXIT_OK

        self.console.print(self.render_snapshot(snapshot))
        self.console.print(self.render_candidates(snapshot))

        predicted_hash = self.choose_hash(snapshot)
        if predicted_hash is None:
            return EXIT_FAILURE

        if Confirm.ask(f"Submit prediction {predicted_hash}?", default=True, console=self.console):
            await self._submit(predicted_hash)

        self.console.print(Panel("Reveal a past prediction?", style=f"bold {GOLD}"))
        answer = Prompt.ask(
            "Enter prediction ID to reveal (or press Enter to skip)",
            default="",
            show_default=False,
            console=self.console,
        ).strip()
        if answer:
            return await self.reveal(answer)
        return EXIT_OK

    async def reveal(self, prediction_id) -> int:
        try:
            prediction_id = validate_prediction_id(prediction_id)
        except ValidationError as e:
            self.print_error(str(e))
            return EXIT_FAILURE

        self.console.print(f"\nRevealing prediction #{prediction_id}...", style=LIGHT_GOLD)
        try:
            result = await self.predictor.client.reveal(prediction_id)
        except PredictorError as e:
            self.print_error(f"Reveal failed: {e}")
            return EXIT_OK

        self.console.print(f"   Tx hash     : {result.tx_hash}")
        self.console.print(f"   Explorer    : {self.config.tx_url(result.tx_hash)}")
        if result.correct is None:
            self.console.print("   Reveal confirmed, no PredictionRevealed event in the receipt.")
        else:
            self.console.print(f"   Actual Hash : {result.actual_hash}")
            verdict = f"[{LIGHT_GREEN}]YES![/]" if result.correct else "[red]No[/red]"
            self.console.print(f"   Correct?    : {verdict}")
        return EXIT_OK

    async def history(self) -> int:
        try:
            predictions = await self.predictor.store.list_for_session(self.predictor.session)
        except PredictorError as e:
            self.print_error(f"Unable to load predictions: {e}")
            return EXIT_OK

        if not predictions:
            self.console.print("No predictions yet.", style=LIGHT_GOLD)
            return EXIT_OK
        self.console.print(self.render_history(predictions))
        return EXIT_OK

    async def info(self) -> int:
        try:
            snapshot = await self.predictor.snapshots.snapshot()
            stats = await self.predictor.client.ledger_stats()
        except PredictorError as e:
            self.print_error(str(e))
            return EXIT_OK

        self.console.print(self.render_snapshot(snapshot))
        table = Table(show_header=False, box=None, expand=True)
        table.add_column("Field", style=LIGHT_GREEN)
        table.add_column("Value", style=GOLD)
        table.add_row("Contract", self.predictor.contract.address)
        table.add_row("Total predictions", str(stats.total_predictions))
        table.add_row("Latest stored block", f"#{stats.latest_stored_block_number}")
        table.add_row("Latest stored hash", stats.latest_stored_hash or "-")
        self.console.print(Panel(table, title="Ledger", border_style=DARK_GREEN))
        return EXIT_OK

    async def _submit(self, predicted_hash: str) -> None:
        self.console.print(f"\nSubmitting prediction: {predicted_hash}", style=LIGHT_GOLD)
        self.console.print("   (waiting for tx confirmation...)")
        try:
            result = await self.predictor.client.submit(predicted_hash)
        except PredictorError as e:
            self.print_error(f"Transaction failed: {e}")
            return

        self.console.print(f"   Tx hash  : {result.tx_hash}")
        self.console.print(f"   Explorer : {self.config.tx_url(result.tx_hash)}")
        prediction_id = "?" if result.prediction_id is None else result.prediction_id
        self.console.print(f"\n[{LIGHT_GREEN}]Prediction stored on-chain![/]")
        self.console.print(f"   Prediction ID  : {prediction_id}")
        if result.target_block is not None:
            self.console.print(f"   Target Block   : {result.target_block}")
        self.console.print(f"   Predicted Hash : {result.predicted_hash}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockhash-predictor",
        description="Predict the hash of the next block and reveal the result on-chain",
    )
    parser.add_argument("command", nargs="?", default="predict", choices=COMMANDS)
    parser.add_argument("prediction_id", nargs="?", help="Prediction id for the reveal command")
    parser.add_argument("--contract", type=str, help="BlockHashPredictor contract address")
    parser.add_argument("--rpc-url", type=str, help="JSON-RPC endpoint")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--trace", action="store_true", help="Enable trace logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def check_config(config: PredictorConfig, console: Console) -> bool:
    if not config.has_private_key:
        console.print("[bold red]Set PRIVATE_KEY in your .env file first.[/bold red]")
        return False
    if not config.contract_address:
        console.print("[bold red]Set CONTRACT_ADDRESS in your .env file first (deploy the contract).[/bold red]")
        return False
    try:
        Account.from_key(config.private_key)
    except ValueError as e:
        console.print(f"[bold red]Invalid PRIVATE_KEY:[/bold red] {e}")
        return False
    return True


async def run_command(config: PredictorConfig, command: str, prediction_id=None, console: Optional[Console] = None) -> int:
    """Connects a fresh predictor, runs one command and closes the connection."""
    console = console or Console()
    predictor = BlockHashPredictor.from_config(config)
    cli = PredictorCLI(predictor, console)
    try:
        try:
            await predictor.connect()
        except PredictorError as e:
            cli.print_error(f"Unable to connect wallet: {e}")
            return EXIT_OK

        if command == "history":
            return await cli.history()
        if command == "info":
            return await cli.info()
        if command == "reveal":
            if prediction_id is None:
                prediction_id = Prompt.ask("Enter prediction ID to reveal", console=console)
            return await cli.reveal(prediction_id)
        return await cli.predict()
    finally:
        await predictor.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    if args.trace:
        bt.logging.set_trace(True)
    elif args.debug:
        bt.logging.set_debug(True)

    try:
        config = load_config(contract_address=args.contract, rpc_url=args.rpc_url)
    except (ValueError, PredictorError) as e:
        console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
        return EXIT_FAILURE
    if not check_config(config, console):
        return EXIT_FAILURE

    if args.command == "menu":
        from blockhash_predictor.menu import run_menu

        return run_menu(config, console)
    return asyncio.run(run_command(config, args.command, args.prediction_id, console))


if __name__ == "__main__":
    sys.exit(main())
