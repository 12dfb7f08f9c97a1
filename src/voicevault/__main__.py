"""Entry point for running voicevault as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the voicevault CLI application."""
    app()


if __name__ == "__main__":
    main()
