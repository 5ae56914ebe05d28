#!/usr/bin/env python3

# <~~~~~~~~~~>
#    DUCKLI
# <~~~~~~~~~~>

import argparse
import logging
import sys

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings

from duckli import __version__
from duckli.chat import ASSISTANT_ROLE, ChatSession
from duckli.cli_controller import CLIController
from duckli.config import CredentialStore, Overrides
from duckli.globals import (
    API_KEY_ENV,
    COMPLETER_STYLER,
    CONSOLE,
    KEYS_URL,
    PROMPT_PREFIX,
    init_logger,
    log_exception,
)
from duckli.models import ModelCatalog
from duckli.personalities import PersonalityCatalog
from duckli.ui import GlobalPanels, UIConstructor, run_personality_picker
from duckli.wizard import SetupStateMachine, SetupStep

FAREWELL = "[yellow]🦆 Happy debugging![/yellow]\n"


def exit_bindings() -> KeyBindings:
    """Esc leaves any prompt the same way Ctrl+C does."""
    kb = KeyBindings()

    @kb.add("escape", eager=True)
    def _exit(event):
        event.app.exit(exception=KeyboardInterrupt)

    return kb


class DuckApp:
    """Runs setup, then the chat loop"""

    def __init__(self, machine: SetupStateMachine, personalities: PersonalityCatalog):
        self.machine = machine
        self.personalities = personalities
        self.ui = UIConstructor(personalities)
        self.panel = GlobalPanels(self.ui)
        self.session: ChatSession | None = None
        self.controller: CLIController | None = None
        self.main_history = InMemoryHistory()
        self.key_bindings = exit_bindings()
        self._shown_step: SetupStep | None = None

    # <~~SETUP~~>
    def run_setup(self):
        """Prompts for whatever the saved config and overrides did not supply."""
        with CONSOLE.status("[bold yellow]Loading configuration...[/bold yellow]"):
            self.machine.start()
        while not self.machine.complete:
            try:
                step = self.machine.step
                if step is SetupStep.AWAITING_CREDENTIAL:
                    self.ask_credential()
                elif step is SetupStep.AWAITING_MODEL_CHOICE:
                    self.ask_model()
                elif step is SetupStep.AWAITING_PERSONALITY_CHOICE:
                    self.ask_personality()
            except (KeyboardInterrupt, EOFError):
                CONSOLE.print(FAREWELL)
                self.machine.cancel()

    def _enter(self, step: SetupStep, title: str) -> bool:
        """Prints a step's banner once. True on first entry."""
        if self._shown_step is step:
            return False
        self._shown_step = step
        CONSOLE.print()
        self.panel.spawn_banner(title)
        return True

    def ask_credential(self):
        if self._enter(SetupStep.AWAITING_CREDENTIAL, "Welcome to DuckLI Setup!"):
            CONSOLE.print(self.ui.credential_intro_constructor())
            CONSOLE.print()
        key = prompt(
            HTML("<ansigreen>API Key: </ansigreen>"),
            is_password=True,
            key_bindings=self.key_bindings,
        )
        if not key.strip():
            CONSOLE.print("[dim]No input detected.[/dim]")
            return
        with CONSOLE.status("[bold yellow]Fetching available models...[/bold yellow]"):
            self.machine.submit_credential(key)

    def ask_model(self):
        state = self.machine.state
        if self._enter(SetupStep.AWAITING_MODEL_CHOICE, "Choose Your AI Model"):
            CONSOLE.print(self.ui.model_list_constructor(state.models, state.fetch_error))
            CONSOLE.print()
        model = prompt(
            HTML("<ansigreen>Model: </ansigreen>"),
            default=state.model_text,
            completer=WordCompleter(
                [m.id for m in state.models], match_middle=True, WORD=True
            ),
            style=COMPLETER_STYLER,
            complete_while_typing=False,
            key_bindings=self.key_bindings,
        )
        if not model.strip():
            CONSOLE.print("[dim]No input detected.[/dim]")
        self.machine.submit_model(model)

    def ask_personality(self):
        self._enter(SetupStep.AWAITING_PERSONALITY_CHOICE, "Choose Your Duck's Personality")
        run_personality_picker(self.machine, self.ui)

    # <~~CHAT~~>
    def start_chat(self) -> ChatSession:
        config = self.machine.config
        personality = self.machine.welcome or self.personalities.resolve(
            config.personality_id
        )
        self.session = ChatSession(config, personality)
        self.session.greet()
        self.controller = CLIController(self.session, self.panel, self.ui)
        return self.session

    def turn(self) -> bool:
        """One prompt and, unless it was a command, one round trip. False ends the loop."""
        try:
            user_message = prompt(
                PROMPT_PREFIX,
                history=self.main_history,
                key_bindings=self.key_bindings,
                placeholder=HTML("<ansigray>Describe your coding problem...</ansigray>"),
            )
        except (KeyboardInterrupt, EOFError):
            return False
        if not user_message.strip():
            return True
        if self.controller.handle_input(user_message):
            return True

        already_shown = len(self.session.transcript)
        with CONSOLE.status("[bold yellow]Duck is thinking...[/bold yellow]"):
            self.session.submit(user_message)
        CONSOLE.print()
        for message in self.session.transcript[already_shown:]:
            if message.role == ASSISTANT_ROLE:
                self.panel.spawn_message(message)
        self.panel.spawn_status_panel(self.session)
        return True

    # <~~RUN~~>
    def run(self):
        self.run_setup()
        session = self.start_chat()
        CONSOLE.clear()
        self.panel.spawn_intro_panel(session)
        for message in session.transcript:
            self.panel.spawn_message(message)
        CONSOLE.print()
        while self.turn():
            pass
        CONSOLE.print(FAREWELL)


def build_parser() -> argparse.ArgumentParser:
    personalities = ", ".join(PersonalityCatalog().ids())
    parser = argparse.ArgumentParser(
        prog="duckli",
        description="🦆 DuckLI is your AI-powered rubber duck for debugging and coding help!",
        epilog=(
            f"Get your OpenRouter API key at: {KEYS_URL}\n"
            "After first setup, your API key, model and personality are saved automatically."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--api-key", help=f"OpenRouter API key (or set {API_KEY_ENV})"
    )
    parser.add_argument("--model", help="Model to use, e.g. openai/gpt-4")
    parser.add_argument(
        "--personality", help=f"Duck personality ({personalities})"
    )
    parser.add_argument(
        "--reconfigure",
        action="store_true",
        help="Force the setup flow even if a saved config exists",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Write debug output to the log file"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


# <~~MAIN FLOW~~>
def main(argv=None):
    args = build_parser().parse_args(argv)
    panel = GlobalPanels(UIConstructor(PersonalityCatalog()))
    try:
        init_logger(logging.DEBUG if args.debug else logging.ERROR)
        personalities = PersonalityCatalog()
        machine = SetupStateMachine(
            Overrides.from_args(args),
            CredentialStore(),
            ModelCatalog(),
            personalities,
        )
        DuckApp(machine, personalities).run()
    except (KeyboardInterrupt, EOFError):
        CONSOLE.print(FAREWELL)
    except Exception as e:
        log_exception(e, "Critical startup error")
        panel.spawn_error_panel("CRITICAL ERROR", f"{e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
