import asyncio
import os

from prompt_toolkit import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout as PromptLayout
from prompt_toolkit.layout.containers import Window
from prompt_toolkit.layout.controls import FormattedTextControl
from rich.console import Console
from rich.layout import Layout
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from blockhash_predictor.config import PredictorConfig

DARK_GREEN = "dark_green"
LIGHT_GREEN = "green"
GOLD = "gold1"

MENU_OPTIONS = [
    ("1", "predict", "Predict the next block hash"),
    ("2", "history", "My predictions"),
    ("3", "reveal", "Reveal a prediction"),
    ("4", "info", "Chain and ledger info"),
]


class MenuApplication:
    """
    Full screen main menu. run() returns the selected command name, or None
    when the user quits.
    """

    def __init__(self, config: PredictorConfig, console: Console = None):
        self.config = config
        self.console = console or Console()
        self.selected_option = None
        self.kb = KeyBindings()
        self.setup_keybindings()

    def setup_keybindings(self):
        @self.kb.add("q")
        def _(event):
            self.selected_option = None
            event.app.exit()

        for key, command, _description in MENU_OPTIONS:
            self.kb.add(key)(self._selector(command))

    def _selector(self, command):
        def select(event):
            self.selected_option = command
            event.app.exit()

        return select

    def clear_screen(self):
        os.system("cls" if os.name == "nt" else "clear")

    def get_formatted_text(self):
        layout = self.generate_layout()
        with self.console.capture() as capture:
            self.console.print(layout)
        return ANSI(capture.get())

    def generate_layout(self):
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body", ratio=1),
            Layout(name="footer", size=3),
        )

        layout["header"].update(
            Panel(f"BlockHash Predictor - {self.config.chain_name} (Chain {self.config.chain_id})", style=f"bold {GOLD}")
        )
        layout["body"].update(self.generate_menu())
        layout["footer"].update(Panel("Press q to quit", style=f"italic {LIGHT_GREEN}"))

        return layout

    def generate_menu(self):
        table = Table(show_header=False, box=None, expand=True, border_style=DARK_GREEN)
        table.add_column("Option", style=LIGHT_GREEN)
        table.add_column("Description", style=GOLD)

        for key, _command, description in MENU_OPTIONS:
            table.add_row(f"[{key}]", description)

        return Panel(table, title="Main Menu", border_style=DARK_GREEN)

    def run(self):
        self.selected_option = None
        layout = PromptLayout(Window(content=FormattedTextControl(self.get_formatted_text)))
        app = Application(layout=layout, key_bindings=self.kb, full_screen=True)
        app.run()
        return self.selected_option


def run_menu(config: PredictorConfig, console: Console = None) -> int:
    """Shows the menu until the user quits, running each selected command."""
    from blockhash_predictor.cli import EXIT_OK, run_command

    console = console or Console()
    while True:
        menu_app = MenuApplication(config, console)
        command = menu_app.run()
        if command is None:
            return EXIT_OK
        menu_app.clear_screen()
        asyncio.run(run_command(config, command, console=console))
        Prompt.ask("Press Enter to return to the main menu", default="", show_default=False, console=console)
