"""Fill labelled Google Sheets cells from an Excel lookup workbook."""

__version__ = "1.0.0"
