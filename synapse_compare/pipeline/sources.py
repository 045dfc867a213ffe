"""
Pair sources for the batch pipeline.

Every source is an iterable of PairRequest in input order:
- CsvPairSource: rows of a CSV file with two URL columns
- ExternalLogSource: records logged by the load engine during a run
- SynthesizedPairSource: URLs built per iteration, url2 derived by base swap
"""

from __future__ import annotations

import csv
import json
import random
import string
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

from synapse_compare.domain.records import PairRequest
from synapse_compare.utils.logger import get_logger

logger = get_logger(__name__)

COMPARISON_LOG_MARKER = '{"type":"comparison"'


class SourceError(Exception):
    """Raised when a pair source cannot be read or holds no pairs."""

    pass


def _is_success_status(value: Any) -> bool:
    try:
        status = int(value)
    except (TypeError, ValueError):
        return False
    return 200 <= status < 300


class CsvPairSource:
    """URL pairs from a CSV file with a header row."""

    def __init__(
        self,
        path: str | Path,
        column1: str = "url1",
        column2: str = "url2",
        encoding: str = "utf-8-sig",
    ) -> None:
        self.path = Path(path)
        self.column1 = column1
        self.column2 = column2
        self.encoding = encoding

    def _read_rows(self) -> List[Dict[str, Optional[str]]]:
        try:
            with self.path.open("r", encoding=self.encoding, newline="") as f:
                reader = csv.DictReader(f)
                header = reader.fieldnames or []
                rows = list(reader)
        except OSError as e:
            raise SourceError(f"Cannot read CSV file {self.path}: {e}") from e
        except csv.Error as e:
            raise SourceError(f"Malformed CSV file {self.path}: {e}") from e

        missing = [c for c in (self.column1, self.column2) if c not in header]
        if missing:
            raise SourceError(
                f"CSV file {self.path} has no column(s) {', '.join(missing)}; "
                f"available: {', '.join(header) or 'none'}"
            )

        if not rows:
            raise SourceError(f"No data found in CSV file {self.path}")

        return rows

    def __iter__(self) -> Iterator[PairRequest]:
        for index, row in enumerate(self._read_rows(), start=1):
            yield PairRequest(
                index=index,
                url1=(row.get(self.column1) or "").strip() or None,
                url2=(row.get(self.column2) or "").strip() or None,
            )


class ExternalLogSource:
    """
    Records emitted by the external load engine.

    Only records whose url1Status and url2Status are both 2xx are compared;
    the rest are forwarded untouched so they still appear in the merged report.
    """

    REQUIRED_FIELDS = ("iteration", "url1", "url2", "url1Status", "url2Status")

    def __init__(self, records: Sequence[Dict[str, Any]], origin: str = "<memory>") -> None:
        self.records = list(records)
        self.origin = origin

    @classmethod
    def from_results_json(cls, path: str | Path) -> "ExternalLogSource":
        """Load a JSON array of comparison records (comparison-results.json)."""
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise SourceError(f"Cannot read results file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SourceError(f"Results file {path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise SourceError(f"Results file {path} must hold a JSON array of records")
        return cls(data, origin=str(path))

    @classmethod
    def from_console_log(cls, path: str | Path) -> "ExternalLogSource":
        """Extract comparison records embedded in the load engine's console output."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceError(f"Cannot read console log {path}: {e}") from e
        return cls(parse_console_log(text), origin=str(path))

    def __iter__(self) -> Iterator[PairRequest]:
        if not self.records:
            raise SourceError(f"No comparison records found in {self.origin}")

        for index, record in enumerate(self.records, start=1):
            if not isinstance(record, dict):
                logger.warning(
                    "Ignoring non-object record",
                    operation="read_external_log",
                    context={"index": index, "origin": self.origin},
                )
                continue

            absent = [k for k in self.REQUIRED_FIELDS if k not in record]
            if absent:
                logger.warning(
                    "Record lacks required fields",
                    operation="read_external_log",
                    context={"index": index, "missing": absent},
                )

            eligible = _is_success_status(record.get("url1Status")) and _is_success_status(
                record.get("url2Status")
            )
            yield PairRequest(
                index=index,
                url1=record.get("url1") or None,
                url2=record.get("url2") or None,
                external=record,
                eligible=eligible,
            )


def parse_console_log(text: str) -> List[Dict[str, Any]]:
    """
    Pull every {"type":"comparison", ...} object out of console output lines.

    Text before the marker and after the closing brace is ignored; lines whose
    JSON does not parse are skipped.
    """
    decoder = json.JSONDecoder()
    records: List[Dict[str, Any]] = []

    for line_no, line in enumerate(text.splitlines(), start=1):
        start = line.find(COMPARISON_LOG_MARKER)
        if start == -1:
            continue
        try:
            record, _ = decoder.raw_decode(line, start)
        except json.JSONDecodeError as e:
            logger.debug(
                "Skipping unparsable comparison line",
                operation="parse_console_log",
                context={"line": line_no, "reason": str(e)},
            )
            continue
        records.append(record)

    return records


def swap_base_url(url: str, base_url: str, base_url2: str) -> str:
    """Replace the primary base URL prefix with the secondary one."""
    if url.startswith(base_url):
        return base_url2 + url[len(base_url):]
    return url.replace(base_url, base_url2, 1)


CHARSETS = {
    "alphanumeric": string.ascii_letters + string.digits,
    "alpha": string.ascii_letters,
    "numeric": string.digits,
    "hex": "0123456789abcdef",
    "lowercase": string.ascii_lowercase,
    "uppercase": string.ascii_uppercase,
}


class ParameterUrlBuilder:
    """
    Builds a request URL from parameter specs.

    Supported specs (dicts as loaded from YAML):
        {"name": ..., "type": "static", "value": ...}
        {"name": ..., "type": "integer", "min": 0, "max": 100}
        {"name": ..., "type": "string", "length": 10, "charset": "alphanumeric"}
        {"name": ..., "type": "array", "values": [...]}
    """

    def __init__(
        self,
        base_url: str,
        parameters: Optional[Sequence[Dict[str, Any]]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base_url = base_url
        self.parameters = list(parameters or [])
        self.rng = rng or random.Random()

    def _value(self, spec: Dict[str, Any]) -> Any:
        kind = spec.get("type")
        if kind == "static":
            return spec.get("value", "")
        if kind == "integer":
            low = int(spec.get("min", 0))
            high = int(spec.get("max", 100))
            return self.rng.randint(low, high)
        if kind == "string":
            charset = spec.get("customChars") or CHARSETS.get(
                spec.get("charset", "alphanumeric"), CHARSETS["alphanumeric"]
            )
            length = int(spec.get("length", 10))
            return "".join(self.rng.choice(charset) for _ in range(length))
        if kind == "array":
            values = spec.get("values") or []
            if not values:
                raise ValueError(f"Array parameter {spec.get('name')!r} has no values")
            return self.rng.choice(values)
        raise ValueError(f"Unsupported parameter type {kind!r} for {spec.get('name')!r}")

    def __call__(self, iteration: int) -> str:
        if not self.parameters:
            return self.base_url
        query = "&".join(
            f"{spec['name']}={quote(str(self._value(spec)), safe='')}" for spec in self.parameters
        )
        return f"{self.base_url}?{query}"


class SynthesizedPairSource:
    """Pairs built by a URL builder, with url2 on the secondary base URL."""

    def __init__(
        self,
        iterations: int,
        base_url: str,
        base_url2: str,
        url_builder: Optional[Callable[[int], str]] = None,
    ) -> None:
        if iterations <= 0:
            raise SourceError(f"iterations must be positive, got {iterations}")
        self.iterations = iterations
        self.base_url = base_url
        self.base_url2 = base_url2
        self.url_builder = url_builder or ParameterUrlBuilder(base_url)

    def __iter__(self) -> Iterator[PairRequest]:
        for iteration in range(self.iterations):
            url1 = self.url_builder(iteration)
            yield PairRequest(
                index=iteration + 1,
                url1=url1,
                url2=swap_base_url(url1, self.base_url, self.base_url2),
            )
