"""Report export package."""

from mmm.export.csv_export import (
    CSV_HEADERS,
    ExportError,
    encode_csv,
    export_csv,
    report_filename,
)

__all__ = [
    "CSV_HEADERS",
    "ExportError",
    "encode_csv",
    "export_csv",
    "report_filename",
]
