"""DuckLI, an AI rubber duck for the terminal."""

__version__ = "0.3.0"
