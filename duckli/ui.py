"""Builds and spawns UI objects. UIConstructor and GlobalPanels live here."""

import re
import textwrap

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from rich import box
from rich.console import Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from duckli import __version__
from duckli.globals import (
    CONFIG_FILE,
    CONSOLE,
    KEYS_URL,
    LOG_DIR,
    RICH_CODE_THEME,
)
from duckli.personalities import ASCII_DUCK

# Fenced code segments, kept whole so the fences survive the split
FENCE_PATTERN = re.compile(r"(```[\s\S]*?```)")


def split_content(content: str) -> list[tuple[str, str, str]]:
    """
    Splits message content into ("text", "", body) and ("code", language, body) parts.\n
    The language tag is whatever follows the opening fence on its line.
    """
    parts: list[tuple[str, str, str]] = []
    for part in FENCE_PATTERN.split(content):
        if not part:
            continue
        if part.startswith("```") and part.endswith("```") and len(part) >= 6:
            lines = part[3:-3].split("\n")
            language = lines[0].strip().lower()
            parts.append(("code", language, "\n".join(lines[1:])))
        else:
            parts.append(("text", "", part))
    return parts


def extract_code_blocks(content: str) -> list[tuple[str, str]]:
    """(language, code) for every fenced block in a message"""
    return [(lang, body) for kind, lang, body in split_content(content) if kind == "code"]


class UIConstructor:
    """Constructs and returns various UI objects"""

    def __init__(self, personalities, code_theme: str = RICH_CODE_THEME):
        self.personalities = personalities
        self.code_theme = code_theme

    def banner_constructor(self, title: str) -> Group:
        return Group(
            Panel(
                Text(f"🦆 {title}", style="bold yellow"),
                border_style="yellow",
                box=box.ROUNDED,
                expand=False,
            ),
            Text(ASCII_DUCK, style="yellow"),
        )

    def credential_intro_constructor(self) -> Text:
        return Text.assemble(
            "Let's get you set up with your AI rubber duck assistant.\n\n",
            "First, you'll need an OpenRouter API key to access AI models.\n",
            ("Get your API key at: ", "cyan"),
            (KEYS_URL, "cyan underline"),
            ("\n\nPress Enter to continue, Esc to exit", "dim"),
        )

    def model_list_constructor(self, models, fetch_error: str = "") -> Text:
        text = Text("Enter the AI model you'd like to use as your rubber duck.\n\n")
        if fetch_error:
            text.append("Could not list models, any model id will do.\n", style="red")
        elif models:
            text.append("Popular models:\n", style="cyan")
            for m in models[:8]:
                text.append(f"  • {m.id}", style="default")
                if m.display_name != m.id:
                    text.append(f"  {m.display_name}", style="dim")
                text.append(f"  [{m.context_length:,} ctx", style="dim")
                if m.pricing:
                    # Per-token rates shown per million tokens
                    text.append(
                        f", ${m.pricing.prompt_rate * 1e6:.2f}/"
                        f"${m.pricing.completion_rate * 1e6:.2f} per 1M",
                        style="dim",
                    )
                text.append("]\n", style="dim")
        text.append("\nType a model name and press Enter, or Esc to exit", style="dim")
        return text

    def personality_menu_constructor(self, cursor: int) -> FormattedText:
        """prompt_toolkit fragments for the personality list"""
        fragments = [
            ("", "Select the personality you'd like your rubber duck to have:\n\n"),
        ]
        for index, p in enumerate(self.personalities.list()):
            selected = index == cursor
            fragments.append(
                ("ansicyan bold" if selected else "ansimagenta", f"  {'▶ ' if selected else '  '}{p.label}")
            )
            fragments.append(("ansigray", f" ({p.id})\n"))
            fragments.append(("" if selected else "ansigray", f"      {p.description}\n"))
        fragments.append(
            ("ansigray", "\nUse ↑/↓ arrow keys to navigate, Enter to select, or Esc to exit\n")
        )
        return FormattedText(fragments)

    def message_body_constructor(self, content: str) -> Group:
        """Text as Markdown, fenced code as highlighted, labelled blocks."""
        renderables = []
        for kind, language, body in split_content(content):
            if kind == "code":
                renderables.append(
                    Panel(
                        Syntax(body, language or "text", theme=self.code_theme),
                        title=Text(f"Language: {language}" if language else "Code", style="dim"),
                        title_align="left",
                        border_style="grey50",
                        box=box.SQUARE,
                    )
                )
            elif body.strip():
                renderables.append(Markdown(body.strip("\n"), code_theme=self.code_theme))
        return Group(*renderables)

    def user_panel_constructor(self, content: str) -> Panel:
        return Panel(
            content,
            box=box.ROUNDED,
            title=Text("👤 You", style="bold blue"),
            title_align="left",
            border_style="cyan",
            style="default",
        )

    def assistant_panel_constructor(self, content: str) -> Panel:
        return Panel(
            self.message_body_constructor(content),
            title=Text("🦆 Duckli", style="bold green"),
            title_align="left",
            border_style="yellow",
            style="default",
            box=box.ROUNDED,
        )

    def status_panel_constructor(self, session) -> Panel:
        status_text = Text.assemble(
            ("🦆 ", "yellow"),
            ("Model: "),
            (f"{session.config.model_id}", "bold"),
            (" | "),
            (f"Duck: {session.personality.label}"),
            (" | "),
            (f"Turn: {session.count_turns()}"),
        )
        tokens = session.count_tokens()
        if tokens:
            status_text.append(f" | Tokens: {tokens:,}")
        return Panel(status_text, border_style="dim", style="dim", expand=False)

    def intro_panel_constructor(self, session) -> Panel:
        intro_text = Text.assemble(
            ("Model: ", "bold sandy_brown"),
            (f"{session.config.model_id}"),
            ("\nPersonality: ", "bold sandy_brown"),
            (f"{session.personality.label} ({session.personality.id})"),
        )
        if session.config.from_override:
            intro_text.append("\nUsing command line settings, not saved.", style="dim")
        return Panel(
            intro_text,
            title=Text(f"🦆 DuckLI {__version__} - Your AI Rubber Duck", "bold yellow"),
            title_align="left",
            border_style="yellow",
            box=box.HORIZONTALS,
            padding=(0, 0),
        )

    def error_panel_constructor(self, error: str, exception: str) -> Panel:
        return Panel(
            exception,
            title=Text(f"❌ {error}", style="bold red"),
            title_align="left",
            border_style="red",
            expand=False,
        )

    def copy_panel_constructor(self, blocks: str) -> Panel:
        wrapped = f"### The following code has been copied to your clipboard\n```\n{blocks}\n```"
        return Panel(
            Markdown(wrapped, code_theme=self.code_theme),
            title=Text("📋 Clipboard Sync", style="bold orange1"),
            title_align="left",
            border_style="orange1",
            box=box.HORIZONTALS,
            padding=(0, 0),
        )

    def help_chart_constructor(self) -> Markdown:
        return Markdown(
            textwrap.dedent("""
            | **Commands** | *Available while chatting* |
            | --- | ----------- |
            | `!h` or `!help` | Show this chart. |
            | `!cp` | Copy all code blocks from the last response. |
            | `!config` | Display the current settings and file locations. |
            | `!clear` | Clear the terminal window. |
            | `!q` or `!quit` | Exit DuckLI. |
            | `Esc` or `Ctrl + C` | Exit immediately. |
            | | |
            | **NOTE:** | Run `duckli --reconfigure` to change your saved key, model or personality. |
            """)
        )

    def settings_chart_constructor(self, session) -> Markdown:
        saved = "no (command line settings)" if session.config.from_override else "yes"
        return Markdown(
            textwrap.dedent(f"""
            | **Current Settings** | *Fixed for this session* |
            | --- | ----------- |
            | **Model**: | *{session.config.model_id}* |
            | | |
            | **Personality**: | *{session.personality.label}* |
            | | |
            | **Saved**: | *{saved}* |
            - Your configuration file is located at: `{CONFIG_FILE}`
            - Your error logs are located at:        `{LOG_DIR}`
            """)
        )


class GlobalPanels:
    """Global panel spawner"""

    def __init__(self, ui: UIConstructor):
        self.ui: UIConstructor = ui

    def spawn_banner(self, title: str):
        CONSOLE.print(self.ui.banner_constructor(title))

    def spawn_intro_panel(self, session):
        """Simple welcome panel, prints once chat begins."""
        CONSOLE.print(self.ui.intro_panel_constructor(session))
        CONSOLE.print(Markdown("Type `!h` for a list of commands."))
        CONSOLE.print()

    def spawn_status_panel(self, session):
        CONSOLE.print(self.ui.status_panel_constructor(session))
        CONSOLE.print()

    def spawn_error_panel(self, error: str, exception: str):
        CONSOLE.print(self.ui.error_panel_constructor(error, exception))
        CONSOLE.print()

    def spawn_message(self, message):
        """Spawns a transcript entry in the panel matching its role."""
        if message.role == "user":
            CONSOLE.print(self.ui.user_panel_constructor(message.content))
        else:
            CONSOLE.print(self.ui.assistant_panel_constructor(message.content))

    def spawn_copy_panel(self, blocks: str):
        CONSOLE.print(self.ui.copy_panel_constructor(blocks))
        CONSOLE.print()


def run_personality_picker(machine, ui: UIConstructor):
    """
    Keyboard-driven personality list. Arrow keys move the machine's cursor,
    Enter confirms. Esc and Ctrl+C raise KeyboardInterrupt to the caller.
    """
    kb = KeyBindings()

    @kb.add("up")
    def _up(event):
        machine.move_up()

    @kb.add("down")
    def _down(event):
        machine.move_down()

    @kb.add("enter")
    def _confirm(event):
        machine.confirm()
        event.app.exit()

    @kb.add("escape", eager=True)
    @kb.add("c-c")
    def _quit(event):
        event.app.exit(exception=KeyboardInterrupt)

    control = FormattedTextControl(
        lambda: ui.personality_menu_constructor(machine.state.cursor),
        focusable=True,
        show_cursor=False,
    )
    app = Application(
        layout=Layout(Window(control, always_hide_cursor=True)),
        key_bindings=kb,
        full_screen=False,
    )
    app.run()
