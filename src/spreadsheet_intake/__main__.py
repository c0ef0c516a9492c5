"""Allow ``python -m spreadsheet_intake``."""

from spreadsheet_intake import cli

if __name__ == "__main__":
    cli.app()
