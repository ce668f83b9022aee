"""Tallies active respondents per segment."""

import logging
from typing import Iterable, Optional

from apostles.core.assignments import ManualAssignmentStore, effective_classify
from apostles.core.config import SegmentationConfig
from apostles.core.errors import OutOfRangeScore
from apostles.core.models import Distribution, QuadrantType, Respondent

logger = logging.getLogger(__name__)


def active_respondents(points: Iterable[Respondent]) -> list[Respondent]:
    return [p for p in points if not p.excluded]


def aggregate(
    points: Iterable[Respondent],
    config: SegmentationConfig,
    overrides: Optional[ManualAssignmentStore] = None) -> Distribution:
    """
    Count non-excluded respondents per segment.

    Every label is present in the result, with zero for empty segments.
    Respondents with out-of-range scores (and no override) are listed under
    `invalid` instead of being pushed into a neighbouring bucket.
    """
    counts = {segment: 0 for segment in QuadrantType}
    invalid: list[str] = []

    active = active_respondents(points)
    for point in active:
        try:
            segment = effective_classify(point, config, overrides)
        except OutOfRangeScore as e:
            logger.warning(str(e))
            invalid.append(point.id)
            continue
        counts[segment] += 1

    logger.debug(
        f"Aggregated {len(active)} active respondents: "
        f"{sum(counts.values())} classified, {len(invalid)} invalid"
    )

    return Distribution(counts=counts, invalid=invalid)
