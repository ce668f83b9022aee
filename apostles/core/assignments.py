"""
Operator overrides of the geometric classification.

One ManualAssignmentStore exists per working session and is passed explicitly
to every consumer. Each state change bumps `version`, which memoized
aggregates include in their cache key so they recompute instead of patching.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from apostles.core.config import SegmentationConfig
from apostles.core.models import QuadrantType, Respondent
from apostles.core.quadrant_classifier import classify

logger = logging.getLogger(__name__)


class ManualAssignmentStore:
    """Maps respondent ids to an operator-chosen segment."""

    def __init__(self, overrides: Optional[dict[str, QuadrantType | str]] = None):
        self._overrides: dict[str, QuadrantType] = {}
        self._version = 0
        for respondent_id, segment in (overrides or {}).items():
            self._overrides[str(respondent_id)] = QuadrantType(segment)

    @property
    def version(self) -> int:
        return self._version

    def get(self, respondent_id: str) -> Optional[QuadrantType]:
        return self._overrides.get(respondent_id)

    def set_override(self, respondent_id: str, segment: QuadrantType | str) -> None:
        segment = QuadrantType(segment)
        if self._overrides.get(respondent_id) == segment:
            return
        self._overrides[respondent_id] = segment
        self._bump()
        logger.debug(f"Respondent {respondent_id} manually assigned to {segment}")

    def clear_override(self, respondent_id: str) -> bool:
        """Remove one override. Returns False when there was none."""
        if respondent_id not in self._overrides:
            return False
        del self._overrides[respondent_id]
        self._bump()
        logger.debug(f"Cleared manual assignment for respondent {respondent_id}")
        return True

    def clear_all(self) -> None:
        if not self._overrides:
            return
        count = len(self._overrides)
        self._overrides.clear()
        self._bump()
        logger.debug(f"Cleared {count} manual assignments")

    def prune(self, existing_ids: Iterable[str]) -> list[str]:
        """Drop overrides for respondents that no longer exist. Returns the dropped ids."""
        keep = set(existing_ids)
        dropped = [rid for rid in self._overrides if rid not in keep]
        for rid in dropped:
            del self._overrides[rid]
        if dropped:
            self._bump()
            logger.debug(f"Pruned manual assignments for deleted respondents: {dropped}")
        return dropped

    def snapshot(self) -> dict[str, QuadrantType]:
        return dict(self._overrides)

    def items(self):
        return self._overrides.items()

    def _bump(self) -> None:
        self._version += 1

    def __contains__(self, respondent_id: object) -> bool:
        return respondent_id in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)

    def __iter__(self) -> Iterator[str]:
        return iter(self._overrides)


def effective_classify(
    point: Respondent,
    config: SegmentationConfig,
    overrides: Optional[ManualAssignmentStore] = None) -> QuadrantType:
    """The operator's override if there is one, otherwise the geometric segment."""
    if overrides is not None:
        manual = overrides.get(point.id)
        if manual is not None:
            return manual
    return classify(point, config)
