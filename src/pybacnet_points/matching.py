"""Template matching: score template signatures against observed points, aggregate, recommend."""

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .signature import keyword_overlap, pattern_matches, to_signature
from .types import (
    MatchReport,
    NormalizedPoint,
    PointFunction,
    PointSignature,
    SignatureUsage,
    TemplateMatch,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7


@dataclass(frozen=True)
class MatchingConfig:
    """Similarity threshold and blend weights for match confidence and aggregation."""

    partial_similarity: float = 0.5
    required_confidence: float = 0.7
    low_confidence: float = 0.8
    pattern_weight: float = 0.6
    role_weight: float = 0.2
    quantity_weight: float = 0.1
    unit_weight: float = 0.1
    neutral_agreement: float = 0.5
    required_weight: float = 0.7
    role_mismatch_cap: float = 0.6


@dataclass(frozen=True)
class _Candidate:
    point: NormalizedPoint
    exact: bool
    confidence: float


class SignatureStats:
    """
    Running usage statistics per template signature id.

    One matching run is recorded under a single lock, so concurrent runs against a
    shared template library never interleave their updates.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._usage: dict[str, SignatureUsage] = {}

    def record(self, matches: Iterable[TemplateMatch]) -> None:
        """Count every evaluated template signature; average confidence over accepted matches."""
        with self._lock:
            for m in matches:
                key = m.signature.signature_id
                current = self._usage.get(key, SignatureUsage())
                successful = current.successful_matches
                avg = current.avg_confidence
                if m.accepted:
                    successful += 1
                    avg += (m.confidence - avg) / successful
                self._usage[key] = SignatureUsage(
                    match_count=current.match_count + 1,
                    successful_matches=successful,
                    avg_confidence=avg,
                )

    def usage(self, signature_id: str) -> SignatureUsage:
        with self._lock:
            return self._usage.get(signature_id, SignatureUsage())

    def apply(self, signature: PointSignature) -> PointSignature:
        """Copy of a signature carrying its accumulated statistics."""
        u = self.usage(signature.signature_id)
        return replace(
            signature,
            match_count=u.match_count,
            successful_matches=u.successful_matches,
            avg_confidence=round(u.avg_confidence, 4),
        )

    def snapshot(self) -> dict[str, SignatureUsage]:
        with self._lock:
            return dict(self._usage)

    def __len__(self) -> int:
        with self._lock:
            return len(self._usage)


def _agreement(expected: str | None, observed: str | None, neutral: float) -> float:
    if expected is None or observed is None:
        return neutral
    return 1.0 if expected == observed else 0.0


def _role_agreement(expected: PointFunction | None, observed: PointFunction | None, neutral: float) -> float:
    if expected is None or observed is None:
        return neutral
    if expected == observed:
        return 1.0
    if {expected, observed} == {PointFunction.STATUS, PointFunction.SENSOR}:
        return 0.5
    return 0.0


def _evaluate(
    template: PointSignature,
    point: NormalizedPoint,
    observed: PointSignature,
    cfg: MatchingConfig,
) -> _Candidate | None:
    exact = pattern_matches(template, observed)
    if exact:
        strength = 1.0
    else:
        strength = keyword_overlap(template.keywords, observed.keywords)
        if strength <= cfg.partial_similarity:
            return None
    role = _role_agreement(template.point_function, observed.point_function, cfg.neutral_agreement)
    confidence = (
        cfg.pattern_weight * strength
        + cfg.role_weight * role
        + cfg.quantity_weight * _agreement(template.quantity, observed.quantity, cfg.neutral_agreement)
        + cfg.unit_weight * _agreement(template.units, observed.units, cfg.neutral_agreement)
    )
    if role == 0.0:
        # A point in the wrong role never fills a slot on its own.
        confidence = min(confidence, cfg.role_mismatch_cap)
    return _Candidate(point=point, exact=exact, confidence=round(min(confidence, 1.0), 4))


def _best(
    template: PointSignature,
    observed: list[tuple[NormalizedPoint, PointSignature]],
    cfg: MatchingConfig,
) -> _Candidate | None:
    candidates = []
    for point, signature in observed:
        candidate = _evaluate(template, point, signature, cfg)
        if candidate is not None:
            candidates.append(candidate)
    if not candidates:
        return None
    # Exact before partial, then confidence, then point identity for a stable pick.
    return min(
        candidates,
        key=lambda c: (
            not c.exact,
            -c.confidence,
            c.point.original_name,
            c.point.normalized_name,
            c.point.object_type,
            c.point.units or "",
        ),
    )


def _assignments(matches: list[TemplateMatch]) -> tuple[tuple[str, str], ...]:
    """
    Primary template slot per matched point. When several slots claim one point the
    winner has the higher confidence, then exact over partial, then the more specific
    pattern, then the lexicographically smaller signature id.
    """
    claims: dict[str, list[TemplateMatch]] = {}
    for m in matches:
        if m.accepted and m.point is not None:
            claims.setdefault(m.point.original_name, []).append(m)
    out = []
    for name in sorted(claims):
        winner = min(
            claims[name],
            key=lambda m: (-m.confidence, not m.exact_match, -m.signature.specificity, m.signature.signature_id),
        )
        out.append((name, winner.signature.signature_id))
    return tuple(out)


def _recommendations(
    matches: list[TemplateMatch],
    unmatched_points: list[NormalizedPoint],
    threshold: float,
    cfg: MatchingConfig,
) -> tuple[str, ...]:
    recs: list[str] = []
    missing_required = [m.signature for m in matches if m.signature.is_required and not m.accepted]
    if missing_required:
        patterns = ", ".join(s.pattern for s in missing_required)
        recs.append(f"Missing {len(missing_required)} required points: {patterns}")

    below = [m for m in matches if not m.accepted and (m.exact_match or m.partial_match)]
    if below:
        patterns = ", ".join(m.signature.pattern for m in below)
        recs.append(f"{len(below)} template points matched below the {threshold:.2f} threshold: {patterns}")

    low = [m for m in matches if m.accepted and m.confidence < cfg.low_confidence]
    if low:
        recs.append(f"{len(low)} points have low confidence matches - consider manual review")

    if unmatched_points:
        recs.append(
            f"{len(unmatched_points)} points could not be matched to template - consider extending template"
        )

    missing_optional = [m.signature for m in matches if not m.signature.is_required and not m.accepted]
    if missing_optional:
        patterns = ", ".join(s.pattern for s in missing_optional)
        recs.append(f"{len(missing_optional)} optional points not found: {patterns}")
    return tuple(recs)


def match_template(
    template_signatures: Sequence[PointSignature],
    observed_points: Sequence[NormalizedPoint],
    threshold: float = DEFAULT_THRESHOLD,
    *,
    config: MatchingConfig | None = None,
    stats: SignatureStats | None = None,
) -> MatchReport:
    """
    Match one template's signatures against the observed points of one equipment instance.

    Each template signature independently takes its best exact or partial candidate;
    a candidate is accepted when its confidence reaches threshold. The report lists
    matches sorted by signature id, so the result does not depend on input order.
    When stats is given, the run is recorded into it after matching.
    """
    if template_signatures is None or observed_points is None:
        raise ValueError("template_signatures and observed_points must not be None")
    cfg = config or MatchingConfig()

    templates = sorted(template_signatures, key=lambda s: (s.signature_id, s.pattern))
    observed = [(p, to_signature(p)) for p in observed_points]

    matches: list[TemplateMatch] = []
    for template in templates:
        best = _best(template, observed, cfg)
        if best is None:
            matches.append(TemplateMatch(template, None, False, False, 0.0, False))
        else:
            matches.append(
                TemplateMatch(
                    signature=template,
                    point=best.point,
                    exact_match=best.exact,
                    partial_match=not best.exact,
                    confidence=best.confidence,
                    accepted=best.confidence >= threshold,
                )
            )

    accepted = [m for m in matches if m.accepted]
    matched_points = {m.point for m in accepted}
    unmatched_points = sorted(
        (p for p in observed_points if p not in matched_points),
        key=lambda p: (p.original_name, p.normalized_name),
    )
    required = [m for m in matches if m.signature.is_required]

    if not templates or not observed_points:
        aggregate = 0.0 if required else 1.0
    else:
        if required:
            strong = [m for m in required if (m.exact_match or m.partial_match) and m.confidence > cfg.required_confidence]
            required_score = len(strong) / len(required)
        else:
            required_score = 1.0
        mean = sum(m.confidence for m in accepted) / len(accepted) if accepted else 0.0
        aggregate = cfg.required_weight * required_score + (1 - cfg.required_weight) * mean

    exact_count = sum(1 for m in accepted if m.exact_match)
    report = MatchReport(
        matches=tuple(matches),
        aggregate_confidence=round(aggregate, 4),
        required_match_rate=round(sum(1 for m in required if m.accepted) / len(required), 4) if required else 1.0,
        total_match_rate=round(len(accepted) / len(matches), 4) if matches else 1.0,
        unmatched_signatures=tuple(m.signature for m in matches if not m.accepted),
        unmatched_points=tuple(unmatched_points),
        assignments=_assignments(matches),
        recommendations=_recommendations(matches, unmatched_points, threshold, cfg),
        reasoning=(
            f"Found {exact_count} exact matches and {len(accepted) - exact_count} partial matches "
            f"out of {len(matches)} template points"
        ),
    )
    logger.debug(
        "Matched %d/%d template signatures against %d points (aggregate %.3f)",
        len(accepted),
        len(matches),
        len(observed),
        report.aggregate_confidence,
    )

    if stats is not None:
        stats.record(report.matches)
    return report
