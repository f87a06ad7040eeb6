from .csv_importer import CsvImportError, CsvParseResult, parse_grant_csv, sanitize_cell

__all__ = ["CsvImportError", "CsvParseResult", "parse_grant_csv", "sanitize_cell"]
