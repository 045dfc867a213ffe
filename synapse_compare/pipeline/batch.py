"""
Batch Pipeline

Drives the Pair Comparator over a pair source, keeps results in input order,
and computes the batch Summary once every pair has settled.
"""

from __future__ import annotations

import math
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from synapse_compare.api.fetcher import ResourceFetcher
from synapse_compare.comparison.comparator import PairComparator
from synapse_compare.domain.config import ComparisonConfig, ComparisonKind
from synapse_compare.domain.records import (
    BatchEntry,
    BatchResult,
    PairRequest,
    Summary,
    TextPayload,
)
from synapse_compare.pipeline.sources import SourceError
from synapse_compare.utils.clock import Clock, iso_timestamp
from synapse_compare.utils.logger import get_logger, log_operation, redact_url

if TYPE_CHECKING:
    from synapse_compare.reporting.report_emitter import ReportEmitter

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


def round_half_up(value: float, digits: int = 2) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize(result: BatchResult, clock: Optional[Clock] = None) -> Summary:
    """
    Aggregate a finished batch.

    Only attempted pairs count towards totals; skipped rows and load-engine
    rows forwarded without comparison are reported separately.
    """
    attempted = result.attempted
    records = [e.record for e in attempted]
    successful = [r for r in records if r.success]
    failed = [r for r in records if not r.success]

    total = len(records)
    success_rate = round_half_up(len(successful) / total * 100) if total else 0.0
    avg_response_time = int(round_half_up(_mean([r.response_time_ms for r in records]), 0))

    similarities = [r.similarity_percent for r in successful if r.similarity_percent is not None]
    avg_similarity = round_half_up(_mean(similarities))

    error_counts = Counter(r.error_kind.label for r in failed if r.error_kind is not None)

    exact_matches = None
    if result.kind is ComparisonKind.TEXT:
        exact_matches = sum(
            1 for r in records if isinstance(r.payload, TextPayload) and r.payload.exact_match
        )

    avg_external = None
    if result.has_external:
        external_times = []
        for entry in result.entries:
            value = (entry.external or {}).get("responseTime")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                external_times.append(float(value))
        avg_external = int(round_half_up(_mean(external_times), 0))

    return Summary(
        total=total,
        successful=len(successful),
        failed=len(failed),
        success_rate=success_rate,
        avg_response_time_ms=avg_response_time,
        avg_similarity=avg_similarity,
        error_counts=dict(error_counts),
        exact_matches=exact_matches,
        skipped=result.skipped,
        passthrough=sum(1 for e in result.entries if not e.attempted),
        avg_external_response_time_ms=avg_external,
        timestamp=iso_timestamp((clock or Clock()).now),
    )


class BatchPipeline:
    """
    Runs comparisons for every pair a source yields.

    Up to max_workers pairs are in flight at once. Each result lands in the
    slot of its input position, so entry order always equals input order.
    """

    def __init__(
        self,
        fetcher: Optional[ResourceFetcher] = None,
        max_workers: int = 1,
        clock: Optional[Clock] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize pipeline.

        Args:
            fetcher: Shared ResourceFetcher (one is created per run if omitted)
            max_workers: Number of pairs compared concurrently
            clock: Clock used to timestamp the summary
            progress: Called with (completed, total) after each comparison
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.fetcher = fetcher
        self.max_workers = max_workers
        self.clock = clock or Clock()
        self.progress = progress

    def run(
        self,
        source: Iterable[PairRequest],
        config: ComparisonConfig,
        output: Optional["ReportEmitter"] = None,
    ) -> Summary:
        """
        Compare every pair, optionally emit reports, and return the Summary.

        Raises:
            SourceError: The source cannot be read or yields no pairs
        """
        result = self.execute(source, config)
        summary = summarize(result, self.clock)
        if output is not None:
            output.emit(result, summary)
        return summary

    @log_operation("batch_run")
    def execute(self, source: Iterable[PairRequest], config: ComparisonConfig) -> BatchResult:
        """Compare every pair and return the ordered BatchResult."""
        requests = list(source)
        if not requests:
            raise SourceError("No URL pairs to compare")

        slots: List[Optional[BatchEntry]] = [None] * len(requests)
        work = []
        skipped = 0

        for position, request in enumerate(requests):
            if not request.eligible:
                slots[position] = BatchEntry(
                    index=request.index,
                    url1=request.url1,
                    url2=request.url2,
                    external=request.external,
                )
                continue
            if not request.is_complete:
                logger.warning(
                    f"Row {request.index}: Missing URLs, skipping",
                    operation="batch_run",
                    context={"row": request.index},
                )
                skipped += 1
                continue
            work.append((position, request))

        logger.info(
            f"Processing {len(work)} comparisons",
            operation="batch_run",
            context={
                "type": config.kind.value,
                "pairs": len(work),
                "skipped": skipped,
                "passthrough": len(requests) - len(work) - skipped,
                "workers": self.max_workers,
            },
        )

        owns_fetcher = self.fetcher is None
        fetcher = self.fetcher or ResourceFetcher()
        completed = 0
        try:
            with PairComparator(
                config, fetcher=fetcher, fetch_workers=2 * self.max_workers
            ) as comparator:
                if self.max_workers == 1:
                    for position, request in work:
                        slots[position] = self._compare(comparator, request)
                        completed += 1
                        self._report_progress(completed, len(work))
                else:
                    with ThreadPoolExecutor(
                        max_workers=self.max_workers, thread_name_prefix="synapse-pair"
                    ) as pool:
                        futures = [
                            (position, pool.submit(self._compare, comparator, request))
                            for position, request in work
                        ]
                        for position, future in futures:
                            slots[position] = future.result()
                            completed += 1
                            self._report_progress(completed, len(work))
        finally:
            if owns_fetcher:
                fetcher.close()

        return BatchResult(
            kind=config.kind,
            entries=[entry for entry in slots if entry is not None],
            skipped=skipped,
        )

    def _compare(self, comparator: PairComparator, request: PairRequest) -> BatchEntry:
        record = comparator.compare(request.url1, request.url2)
        if not record.success:
            logger.warning(
                f"Row {request.index}: comparison failed",
                operation="compare_pair",
                context={
                    "row": request.index,
                    "url1": redact_url(request.url1),
                    "url2": redact_url(request.url2),
                    "error_kind": record.error_kind.label if record.error_kind else None,
                },
                error=record.error_detail,
            )
        return BatchEntry(
            index=request.index,
            url1=request.url1,
            url2=request.url2,
            record=record,
            external=request.external,
        )

    def _report_progress(self, completed: int, total: int) -> None:
        if self.progress is not None:
            self.progress(completed, total)
