"""
Report Emitter - render batch results as CSV tables and JSON artifacts.

Column layouts are declared once per comparison kind as a tuple of Column
objects; the writer only knows how to turn a schema and a list of entries
into rows.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from synapse_compare.domain.config import ComparisonKind
from synapse_compare.domain.records import BatchEntry, BatchResult, Summary
from synapse_compare.utils.clock import ReportNamer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    """One report column: header text and how to read its value from an entry."""

    header: str
    extract: Callable[[BatchEntry], Any]


def _record_field(name: str) -> Callable[[BatchEntry], Any]:
    def extract(entry: BatchEntry) -> Any:
        return getattr(entry.record, name) if entry.record is not None else None

    return extract


def _payload_field(name: str) -> Callable[[BatchEntry], Any]:
    def extract(entry: BatchEntry) -> Any:
        if entry.record is None:
            return None
        return getattr(entry.record.payload, name, None)

    return extract


def _external_field(name: str) -> Callable[[BatchEntry], Any]:
    return lambda entry: (entry.external or {}).get(name)


def _error_kind(entry: BatchEntry) -> Optional[str]:
    record = entry.record
    return record.error_kind.label if record is not None and record.error_kind else None


BASE_COLUMNS: Tuple[Column, ...] = (
    Column("Row", lambda e: e.index),
    Column("URL1", lambda e: e.url1),
    Column("URL2", lambda e: e.url2),
    Column("Success", _record_field("success")),
    Column("ResponseTime(ms)", _record_field("response_time_ms")),
    Column("URL1_Status", _record_field("status1")),
    Column("URL2_Status", _record_field("status2")),
    Column("URL1_Size", _record_field("size1")),
    Column("URL2_Size", _record_field("size2")),
)

IMAGE_COLUMNS: Tuple[Column, ...] = (
    Column("Width1", _payload_field("width1")),
    Column("Height1", _payload_field("height1")),
    Column("Width2", _payload_field("width2")),
    Column("Height2", _payload_field("height2")),
    Column("DiffPixels", _payload_field("diff_pixel_count")),
    Column("Similarity%", _payload_field("similarity_percent")),
)

TEXT_COLUMNS: Tuple[Column, ...] = (
    Column("TextMatch", _payload_field("exact_match")),
    Column("Similarity%", _payload_field("similarity_percent")),
)

ERROR_COLUMNS: Tuple[Column, ...] = (
    Column("ErrorKind", _error_kind),
    Column("ErrorDetails", lambda e: e.record.error_detail if e.record else None),
)

EXTERNAL_COLUMNS: Tuple[Column, ...] = (
    Column("Iteration", _external_field("iteration")),
    Column("URL1", lambda e: e.url1),
    Column("URL2", lambda e: e.url2),
    Column("LoadTest_ResponseTime(ms)", _external_field("responseTime")),
    Column("LoadTest_URL1_Status", _external_field("url1Status")),
    Column("LoadTest_URL2_Status", _external_field("url2Status")),
    Column("LoadTest_URL1_Size", _external_field("url1Size")),
    Column("LoadTest_URL2_Size", _external_field("url2Size")),
    Column("LoadTest_SizeMatch", _external_field("sizeMatch")),
    Column("LoadTest_Similarity%", _external_field("similarity")),
    Column("Compare_Success", _record_field("success")),
    Column("Compare_ResponseTime(ms)", _record_field("response_time_ms")),
    Column("Compare_URL1_Status", _record_field("status1")),
    Column("Compare_URL2_Status", _record_field("status2")),
    Column("Compare_URL1_Size", _record_field("size1")),
    Column("Compare_URL2_Size", _record_field("size2")),
)

LOAD_RECORD_COLUMNS: Tuple[Column, ...] = (
    Column("Iteration", _external_field("iteration")),
    Column("URL1", _external_field("url1")),
    Column("URL2", _external_field("url2")),
    Column("ResponseTime(ms)", _external_field("responseTime")),
    Column("URL1_Status", _external_field("url1Status")),
    Column("URL2_Status", _external_field("url2Status")),
    Column("URL1_Size", _external_field("url1Size")),
    Column("URL2_Size", _external_field("url2Size")),
    Column("SizeMatch", _external_field("sizeMatch")),
    Column("Similarity%", _external_field("similarity")),
    Column("Timestamp", _external_field("timestamp")),
)

ROW_SCHEMAS: Dict[ComparisonKind, Tuple[Column, ...]] = {}
MERGED_SCHEMAS: Dict[ComparisonKind, Tuple[Column, ...]] = {}


def register_row_schema(kind: ComparisonKind, kind_columns: Sequence[Column]) -> None:
    """Register the kind-specific columns and derive the row and merged layouts."""
    kind_columns = tuple(kind_columns)
    ROW_SCHEMAS[kind] = BASE_COLUMNS + kind_columns + ERROR_COLUMNS
    MERGED_SCHEMAS[kind] = (
        EXTERNAL_COLUMNS
        + kind_columns
        + ERROR_COLUMNS
        + (Column("Timestamp", _external_field("timestamp")),)
    )


register_row_schema(ComparisonKind.IMAGE, IMAGE_COLUMNS)
register_row_schema(ComparisonKind.TEXT, TEXT_COLUMNS)


def format_cell(value: Any) -> str:
    """Render one cell: empty for missing values, lowercase booleans."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_rows(schema: Sequence[Column], entries: Sequence[BatchEntry]) -> List[List[str]]:
    """Header row followed by one formatted row per entry."""
    rows = [[column.header for column in schema]]
    for entry in entries:
        rows.append([format_cell(column.extract(entry)) for column in schema])
    return rows


def merged_record(entry: BatchEntry) -> Dict[str, Any]:
    """Load-engine record with the fresh comparison attached, for the JSON dump."""
    data = dict(entry.external or {"url1": entry.url1, "url2": entry.url2})
    if entry.record is not None:
        data["detailedComparison"] = entry.record.to_dict()
    return data


class ReportEmitter:
    """Writes comparison artifacts into one output directory."""

    def __init__(self, output_dir: Path | str, namer: Optional[ReportNamer] = None) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.namer = namer or ReportNamer()

    def _write_csv(self, path: Path, rows: List[List[str]]) -> Path:
        with path.open("w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerows(rows)
        return path

    def _write_json(self, path: Path, data: Any) -> Path:
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return path

    def write_rows(self, result: BatchResult) -> Path:
        """Row report with one line per attempted pair, in input order."""
        path = self.output_dir / self.namer.row_report(result.kind.value)
        self._write_csv(path, render_rows(ROW_SCHEMAS[result.kind], result.attempted))
        logger.info("Report saved: %s", path)
        return path

    def write_summary(self, summary: Summary) -> Path:
        path = self.output_dir / self.namer.summary()
        self._write_json(path, summary.to_dict())
        logger.info("Summary saved: %s", path)
        return path

    def write_merged(self, result: BatchResult) -> Tuple[Path, Path]:
        """Load-engine fields beside fresh comparison fields, plus a full JSON dump."""
        csv_path = self.output_dir / self.namer.merged_csv()
        json_path = self.output_dir / self.namer.merged_json()
        self._write_csv(csv_path, render_rows(MERGED_SCHEMAS[result.kind], result.entries))
        self._write_json(json_path, [merged_record(entry) for entry in result.entries])
        logger.info("Detailed reports saved: %s, %s", csv_path, json_path)
        return csv_path, json_path

    def write_load_records(self, records: Sequence[Dict[str, Any]]) -> Tuple[Path, Path]:
        """Raw load-engine comparison records as JSON plus a basic CSV."""
        json_path = self.output_dir / self.namer.load_records_json()
        csv_path = self.output_dir / self.namer.load_records_csv()
        self._write_json(json_path, list(records))
        entries = [
            BatchEntry(
                index=i,
                url1=str(r.get("url1", "")),
                url2=str(r.get("url2", "")),
                external=r,
            )
            for i, r in enumerate(records, start=1)
        ]
        self._write_csv(csv_path, render_rows(LOAD_RECORD_COLUMNS, entries))
        logger.info("Basic comparison results: %d entries", len(entries))
        return json_path, csv_path

    def emit(self, result: BatchResult, summary: Summary) -> Dict[str, Path]:
        """Write every artifact that applies to this batch."""
        written = {
            "rows": self.write_rows(result),
            "summary": self.write_summary(summary),
        }
        if result.has_external:
            written["merged_csv"], written["merged_json"] = self.write_merged(result)
        return written

