"""
Pair Comparator

Fetches both sides of a URL pair concurrently, dispatches the bodies to the
evaluator matching the configured kind, and always returns a well-formed
ComparisonRecord: evaluator and fetch failures become failed records.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from synapse_compare.api.fetcher import ResourceFetcher
from synapse_compare.comparison.exceptions import DecodeError, DimensionMismatchError
from synapse_compare.comparison.image_evaluator import ImageEvaluator
from synapse_compare.comparison.text_evaluator import TextEvaluator
from synapse_compare.domain.config import ComparisonConfig
from synapse_compare.domain.records import (
    ComparisonRecord,
    ErrorKind,
    FetchOutcome,
    empty_payload,
)
from synapse_compare.utils.logger import get_logger, redact_url

logger = get_logger(__name__)


def _elapsed_ms(start: float, timer: Callable[[], float]) -> int:
    return int(round((timer() - start) * 1000))


class PairComparator:
    """
    Compares one URL pair at a time under a fixed ComparisonConfig.

    Fetches run on a thread pool owned by the comparator. Each fetch carries
    its own timeout, so one side timing out never delays or aborts the other.
    Safe to share between pipeline workers as long as fetch_workers covers
    two fetches per concurrently running pair.
    """

    def __init__(
        self,
        config: ComparisonConfig,
        fetcher: Optional[ResourceFetcher] = None,
        fetch_workers: int = 2,
        timer: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize comparator.

        Args:
            config: Shared read-only comparison settings
            fetcher: ResourceFetcher (a default one is created if omitted)
            fetch_workers: Size of the fetch thread pool (at least 2)
            timer: Monotonic clock in seconds, injectable for tests
        """
        self.config = config
        self.fetcher = fetcher or ResourceFetcher()
        self.text_evaluator = TextEvaluator()
        self.image_evaluator = ImageEvaluator()
        self.timer = timer
        self._executor = ThreadPoolExecutor(
            max_workers=max(2, fetch_workers), thread_name_prefix="synapse-fetch"
        )

    def __enter__(self) -> "PairComparator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def compare(self, url1: str, url2: str) -> ComparisonRecord:
        """
        Compare the resources behind two URLs.

        Args:
            url1: Primary URL
            url2: Secondary URL

        Returns:
            ComparisonRecord; never raises for per-pair faults
        """
        start = self.timer()
        outcome1: Optional[FetchOutcome] = None
        outcome2: Optional[FetchOutcome] = None
        response_time_ms = 0

        try:
            expect_image = self.config.is_image
            future1 = self._executor.submit(
                self.fetcher.fetch, url1, self.config.timeout_ms, expect_image
            )
            future2 = self._executor.submit(
                self.fetcher.fetch, url2, self.config.timeout_ms, expect_image
            )
            outcome1 = future1.result()
            outcome2 = future2.result()
            response_time_ms = _elapsed_ms(start, self.timer)

            if not outcome1.ok or not outcome2.ok:
                return self._fetch_failed(outcome1, outcome2, response_time_ms)

            if self.config.is_image:
                return self._compare_images(outcome1, outcome2, response_time_ms)
            return self._compare_text(outcome1, outcome2, response_time_ms)

        except Exception as e:
            if not response_time_ms:
                response_time_ms = _elapsed_ms(start, self.timer)
            logger.error(
                "Comparison failed",
                operation="compare_pair",
                context={"url1": redact_url(url1), "url2": redact_url(url2)},
                error=str(e),
            )
            return ComparisonRecord(
                kind=self.config.kind,
                success=False,
                response_time_ms=response_time_ms,
                status1=outcome1.status_code if outcome1 else 0,
                status2=outcome2.status_code if outcome2 else 0,
                size1=outcome1.size if outcome1 else None,
                size2=outcome2.size if outcome2 else None,
                payload=empty_payload(self.config.kind),
                error_kind=ErrorKind.COMPARISON_FAILED,
                error_detail=str(e) or type(e).__name__,
            )

    def _fetch_failed(
        self, outcome1: FetchOutcome, outcome2: FetchOutcome, response_time_ms: int
    ) -> ComparisonRecord:
        detail = (
            f"URL1: {outcome1.error_message or 'OK'}, URL2: {outcome2.error_message or 'OK'}"
        )
        return ComparisonRecord(
            kind=self.config.kind,
            success=False,
            response_time_ms=response_time_ms,
            status1=outcome1.status_code,
            status2=outcome2.status_code,
            size1=outcome1.size,
            size2=outcome2.size,
            payload=empty_payload(self.config.kind),
            error_kind=ErrorKind.FETCH_FAILED,
            error_detail=detail,
        )

    def _compare_images(
        self, outcome1: FetchOutcome, outcome2: FetchOutcome, response_time_ms: int
    ) -> ComparisonRecord:
        common = dict(
            kind=self.config.kind,
            response_time_ms=response_time_ms,
            status1=outcome1.status_code,
            status2=outcome2.status_code,
            size1=outcome1.size,
            size2=outcome2.size,
        )

        try:
            payload = self.image_evaluator.evaluate(
                outcome1.body, outcome2.body, self.config.pixel_threshold
            )
        except DimensionMismatchError as e:
            return ComparisonRecord(
                success=False,
                payload=ImageEvaluator.mismatch_payload(e),
                error_kind=ErrorKind.DIMENSION_MISMATCH,
                error_detail=str(e),
                **common,
            )
        except DecodeError as e:
            return ComparisonRecord(
                success=False,
                payload=empty_payload(self.config.kind),
                error_kind=ErrorKind.DECODE_ERROR,
                error_detail=str(e),
                **common,
            )

        return ComparisonRecord(success=True, payload=payload, **common)

    def _compare_text(
        self, outcome1: FetchOutcome, outcome2: FetchOutcome, response_time_ms: int
    ) -> ComparisonRecord:
        return ComparisonRecord(
            kind=self.config.kind,
            success=True,
            response_time_ms=response_time_ms,
            status1=outcome1.status_code,
            status2=outcome2.status_code,
            size1=outcome1.size,
            size2=outcome2.size,
            payload=self.text_evaluator.evaluate(outcome1.body, outcome2.body),
        )


def compare(
    url1: str, url2: str, config: ComparisonConfig, fetcher: Optional[ResourceFetcher] = None
) -> ComparisonRecord:
    """Compare a single pair with a short-lived comparator."""
    with PairComparator(config, fetcher=fetcher) as comparator:
        return comparator.compare(url1, url2)
