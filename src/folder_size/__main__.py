"""Application entry point for folder-size."""

from folder_size.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Run the folder-size command line interface."""
    cli()


if __name__ == "__main__":
    main()
