"""Self-assessment of how far a result set can be trusted."""

from __future__ import annotations

from vsearch.core.config import ConfidenceThresholds
from vsearch.db.models import CatalogStats, ConfidenceDiagnostics, ConfidenceReport, ConfidenceTier, SearchResult
from vsearch.utils.text import tokenize

SUMMARIES: dict[str, str] = {
    "low": "Search confidence is low for this query in the current library.",
    "medium": "Search confidence is moderate. Validate clip relevance before relying on it.",
    "high": "Search confidence is high for this query and current filters.",
}

MAX_PREFIX_REASONS = 4
OVERLAP_SAMPLE = 5


def _term_overlap(results: list[SearchResult], terms: list[str]) -> float:
    """Mean fraction of query terms found in each top result's title/topic/category/tags."""
    ratios = []
    for row in results[:OVERLAP_SAMPLE]:
        haystack = " ".join([row.title, row.topic, row.category, " ".join(row.tags)]).lower()
        if not terms or not haystack.strip():
            ratios.append(0.0)
            continue
        ratios.append(sum(1 for t in terms if t in haystack) / len(terms))
    return sum(ratios) / len(ratios) if ratios else 0.0


def assess(
    query: str,
    results: list[SearchResult],
    stats: CatalogStats,
    semantic_enabled: bool,
    *,
    top_row_count: int = 0,
    thresholds: ConfidenceThresholds | None = None,
) -> ConfidenceReport:
    """Grade a result set low/medium/high from score strength, query overlap and library coverage.

    Pure function of its inputs. `score` is for observability only; the tier
    comes from the reason codes and the hard cutoffs.
    """
    th = thresholds or ConfidenceThresholds()
    terms = tokenize(query)

    scores = [max(0.0, r.score) / 100 for r in results]
    top = scores[0] if scores else 0.0
    top3 = scores[:3]
    mean3 = sum(top3) / len(top3) if top3 else 0.0
    unique_videos = len({r.video_id for r in results if r.video_id})
    overlap = _term_overlap(results, terms)
    coverage = stats.transcribed_videos / max(1, stats.total_videos)

    codes: list[str] = []
    if top < th.low_top_score:
        codes.append("low_top_score")
    if mean3 < th.weak_cluster:
        codes.append("weak_top_result_cluster")
    if unique_videos <= 1 and len(results) >= 3:
        codes.append("single_video_dominance")
    if overlap < th.weak_overlap:
        codes.append("weak_query_overlap")
    if coverage < th.limited_coverage:
        codes.append("limited_transcript_coverage")
    if not semantic_enabled:
        codes.append("semantic_ranker_unavailable")

    tier: ConfidenceTier = "high"
    if (
        len(codes) >= th.low_reason_count
        or top < th.low_top
        or mean3 < th.low_mean_top3
        or (top < th.low_top_with_overlap[0] and overlap < th.low_top_with_overlap[1])
        or (mean3 < th.low_mean_with_overlap[0] and overlap < th.low_mean_with_overlap[1])
    ):
        tier = "low"
    elif len(codes) >= th.medium_reason_count or top < th.medium_top or overlap < th.medium_overlap:
        tier = "medium"

    w_top, w_mean, w_overlap, w_coverage = th.score_weights
    score = round(100 * (w_top * top + w_mean * mean3 + w_overlap * overlap + w_coverage * coverage))

    return ConfidenceReport(
        tier=tier,
        score=max(0, min(100, score)),
        reason_codes=codes,
        summary=SUMMARIES[tier],
        diagnostics=ConfidenceDiagnostics(
            top_score=round(top * 100, 2),
            avg_top3_score=round(mean3 * 100, 2),
            term_overlap=round(overlap * 100, 2),
            transcript_coverage=round(coverage * 100, 2),
            unique_videos=unique_videos,
            top_row_count=top_row_count,
        ),
    )


def should_prefix_guidance(report: ConfidenceReport | None) -> bool:
    if report is None:
        return False
    if report.tier == "low":
        return True
    return (
        report.tier == "medium"
        and "low_top_score" in report.reason_codes
        and "weak_query_overlap" in report.reason_codes
    )


def build_uncertainty_prefix(report: ConfidenceReport, guidance: str) -> str:
    """Prepend the uncertainty disclosure (summary plus up to four reason codes) to guidance text."""
    reasons = report.reason_codes[:MAX_PREFIX_REASONS]
    signals = f" Signals: {', '.join(reasons)}." if reasons else ""
    body = f" {guidance.strip()}" if guidance.strip() else ""
    summary = report.summary or "Search confidence is low."
    return f"{summary}{signals} Treat these clips as exploratory and refine your query before relying on them.{body}".strip()
