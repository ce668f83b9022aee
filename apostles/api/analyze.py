"""High-level segmentation API."""

import logging
from typing import Iterable, Optional

from apostles.core.assignments import ManualAssignmentStore
from apostles.core.config import RulesConfig
from apostles.core.models import Respondent, SegmentationResult
from apostles.core.session import SegmentationSession

logger = logging.getLogger(__name__)


def analyze(
    respondents: Iterable[Respondent],
    rules: Optional[RulesConfig] = None,
    overrides: Optional[ManualAssignmentStore] = None,
    threshold: Optional[float] = None,
    premium_enabled: Optional[bool] = None
) -> SegmentationResult:
    """Classify respondents, tally segments and run the proximity analysis.

    Args:
        respondents: Respondents with satisfaction and loyalty scores
        rules: Scales, midpoint, zones and proximity rules. Uses defaults if None.
        overrides: Operator assignments that win over the geometric segment
        threshold: Proximity threshold replacing the one in the rules
        premium_enabled: Replaces rules.premium_enabled when given

    Returns:
        Assignments, distribution, proximity report and configuration issues.
    """
    rules = rules or RulesConfig.default()
    if premium_enabled is not None:
        rules = rules.model_copy(update={'premium_enabled': premium_enabled})

    session = SegmentationSession(respondents, rules, overrides, threshold=threshold)
    result = session.result()

    logger.info(
        f"Classified {result.distribution.total} respondents into "
        f"{sum(1 for n in result.distribution.counts.values() if n)} segments"
    )
    for issue in result.issues:
        logger.warning(issue)

    return result
