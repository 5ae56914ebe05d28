"""Global functions and variables, used across various modules."""

import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

from platformdirs import user_data_dir
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.styles import Style
from rich.console import Console

# Default directories, created on demand
APP_DIR = user_data_dir("DuckLI")
CONFIG_DIR = os.path.join(APP_DIR, "config")
LOG_DIR = os.path.join(APP_DIR, "logs")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")

# Backend (OpenRouter speaks the OpenAI wire format)
API_BASE_URL = "https://openrouter.ai/api/v1"
API_KEY_ENV = "OPENROUTER_API_KEY"
CLIENT_TITLE = "DuckLI - AI Rubber Duck"
KEYS_URL = "https://openrouter.ai/keys"

# Model catalog rules
POPULAR_MODELS = (
    "anthropic/claude-3.5-sonnet",
    "openai/gpt-4",
    "anthropic/claude-3-haiku",
    "openai/gpt-3.5-turbo",
)
MIN_CONTEXT_LENGTH = 4000
MAX_LISTED_MODELS = 15
FALLBACK_MODEL = "anthropic/claude-3.5-sonnet"
SUGGESTED_MODEL = "meta-llama/llama-3.3-8b-instruct:free"

DEFAULT_PERSONALITY = "cheerful"
RICH_CODE_THEME = "monokai"

# Terminal integration
CONSOLE = Console()

# Main prompt prefix
PROMPT_PREFIX = HTML("<ansiblue>👤 You</ansiblue><ansiyellow>:</ansiyellow> ")

# Dark style for all prompt_toolkit completers
COMPLETER_STYLER = Style.from_dict(
    {
        # Completions
        "completion-menu.completion": "bg:#202020 #ffffff",
        "completion-menu.completion.current": "bg:#7a6a00 #000000",
        # Tooltips
        "completion-menu.meta.completion": "bg:#202020 #aaaaaa",
        "completion-menu.meta.completion.current": "bg:#7a6a00 #000000",
    }
)


def init_logger(level: int = logging.ERROR):
    """Initializes the logging system."""
    os.makedirs(LOG_DIR, exist_ok=True)
    date_str = datetime.now().strftime("%Y%m%d")
    # Output example: duckli_20251109.log
    log_path = os.path.join(LOG_DIR, f"duckli_{date_str}.log")
    # Max of 3 backups, max size of 1MB
    handler = RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )


def log_exception(e: BaseException, context: str = ""):
    """Creates a full formatted traceback string and writes it to a log file"""
    import traceback

    # Format the traceback (exception class, exception instance, traceback object)
    tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    # Add optional context provided by error catchers
    msg = f"{context}\n{tb}" if context else tb
    logging.error(msg)
