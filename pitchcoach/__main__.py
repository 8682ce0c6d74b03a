"""CLI entry point.

Usage:
    python -m pitchcoach <command> [OPTIONS]

Commands:
    evaluate    Run one evaluation inline and print the report
    status      Show a stored job and its report
    serve       Run the HTTP API
"""

from pitchcoach.cli import cli


def main() -> None:
    """Entry point for ``python -m pitchcoach``."""
    cli()


if __name__ == "__main__":
    main()
