"""Report rendering for comparison batches."""

from .report_emitter import (
    MERGED_SCHEMAS,
    ROW_SCHEMAS,
    Column,
    ReportEmitter,
    register_row_schema,
    render_rows,
)

__all__ = [
    "Column",
    "MERGED_SCHEMAS",
    "ROW_SCHEMAS",
    "ReportEmitter",
    "register_row_schema",
    "render_rows",
]
