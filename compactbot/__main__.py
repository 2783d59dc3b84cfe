"""Entry point for running compactbot as a module."""

from compactbot.cli.commands import app

if __name__ == "__main__":
    app()
