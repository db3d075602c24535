"""Entry point for running storyvoice as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the storyvoice CLI application."""
    app()


if __name__ == "__main__":
    main()
