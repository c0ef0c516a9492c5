"""spreadsheet-intake — Import, validate, preview and re-export spreadsheets."""

__version__ = "0.1.0"

DEFAULT_FILE_FORMAT = ".xlsx, .xls"
