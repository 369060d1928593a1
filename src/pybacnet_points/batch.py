"""Batch driver: run the pipeline over many points, isolating per-point failures."""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from .normalize import PointNormalizer
from .signature import to_signature
from .tagger import HaystackTagger
from .types import HaystackTagSet, NormalizedPoint, PointSignature, RawPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """One (input, result | error) pair."""

    item: Any
    result: Any = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def identifier(self) -> str:
        return _identifier(self.item)


@dataclass(frozen=True)
class PointRecord:
    """Everything the pipeline derives from one raw point."""

    normalized: NormalizedPoint
    tags: HaystackTagSet
    signature: PointSignature


def _identifier(item: Any) -> str:
    for attr in ("name", "original_name"):
        value = getattr(item, attr, None)
        if value is not None:
            return str(value)
    return repr(item)


def _attempt(func: Callable[[Any], Any], item: Any) -> BatchResult:
    try:
        return BatchResult(item=item, result=func(item))
    except Exception as e:
        logger.warning("Batch item %r failed: %s: %s", _identifier(item), type(e).__name__, e)
        return BatchResult(item=item, error=str(e), error_type=type(e).__name__)


def run_batch(func: Callable[[Any], Any], items: Iterable[Any], max_workers: int | None = None) -> list[BatchResult]:
    """
    Apply func to every item, in input order. With max_workers > 1 items run on a
    thread pool. A failing item becomes an error entry; the rest still run.
    """
    items = list(items)
    if max_workers is not None and max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(lambda item: _attempt(func, item), items))
    return [_attempt(func, item) for item in items]


def normalize_batch(
    points: Iterable[RawPoint],
    equipment_type: str | None = None,
    *,
    normalizer: PointNormalizer | None = None,
    max_workers: int | None = None,
) -> list[BatchResult]:
    """Normalize raw points; empty identifiers come back as EmptyIdentifierError entries."""
    normalizer = normalizer or PointNormalizer()
    return run_batch(lambda p: normalizer.normalize(p, equipment_type), points, max_workers)


def tag_batch(
    points: Iterable[NormalizedPoint],
    *,
    tagger: HaystackTagger | None = None,
    max_workers: int | None = None,
) -> list[BatchResult]:
    tagger = tagger or HaystackTagger()
    return run_batch(tagger.generate_tags, points, max_workers)


def process_batch(
    points: Iterable[RawPoint],
    equipment_type: str | None = None,
    *,
    normalizer: PointNormalizer | None = None,
    tagger: HaystackTagger | None = None,
    max_workers: int | None = None,
) -> list[BatchResult]:
    """Normalize, tag and sign each raw point; results are PointRecord instances."""
    normalizer = normalizer or PointNormalizer()
    tagger = tagger or HaystackTagger()

    def process(raw: RawPoint) -> PointRecord:
        normalized = normalizer.normalize(raw, equipment_type)
        return PointRecord(
            normalized=normalized,
            tags=tagger.generate_tags(normalized),
            signature=to_signature(normalized),
        )

    return run_batch(process, points, max_workers)
