"""Chat command handling lives here."""

import sys
import textwrap

import pyperclip

from duckli.globals import CONSOLE, log_exception
from duckli.ui import GlobalPanels, UIConstructor, extract_code_blocks


class CLIController:
    """Handles `!` commands typed at the chat prompt"""

    def __init__(self, session, panel: GlobalPanels, ui: UIConstructor):
        self.session = session
        self.panel = panel
        self.ui = ui

        # Command dict
        self.commands = {
            "!h": self.spawn_help_chart,
            "!help": self.spawn_help_chart,
            "!cp": self.copy_last_snippet,
            "!config": self.spawn_settings_chart,
            "!clear": CONSOLE.clear,
            "!q": self.quit,
            "!quit": self.quit,
        }

    def handle_input(self, user_input: str) -> bool:
        """Runs a command if the input is one. False means: send it to the duck."""
        cmd = user_input.strip().lower()
        if cmd not in self.commands:
            return False
        self.commands[cmd]()
        return True

    def quit(self):
        CONSOLE.print("[yellow]🦆 Happy debugging![/yellow]\n")
        sys.exit(0)

    def spawn_help_chart(self):
        CONSOLE.print(self.ui.help_chart_constructor())
        CONSOLE.print()

    def spawn_settings_chart(self):
        CONSOLE.print(self.ui.settings_chart_constructor(self.session))
        CONSOLE.print()

    def copy_last_snippet(self):
        """Copies all Markdown code blocks from the last assistant message"""
        assistant_msg = self.session.last_assistant_message()
        if not assistant_msg:
            CONSOLE.print("[dim]No assistant response found to copy from.[/dim]\n")
            return

        blocks = [body for _, body in extract_code_blocks(assistant_msg)]
        if not blocks:
            CONSOLE.print("[dim]No code blocks found in the last response.[/dim]\n")
            return

        code = "\n\n".join(textwrap.dedent(b).strip("\n") for b in blocks).strip()
        try:
            pyperclip.copy(code)
            self.panel.spawn_copy_panel(code)
        except Exception as e:
            log_exception(e, "Error in copy_last_snippet()")
            self.panel.spawn_error_panel(
                "CLIPBOARD ERROR", f"Could not copy to clipboard: {e}"
            )
