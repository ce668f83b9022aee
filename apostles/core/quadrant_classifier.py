"""
Assigns each respondent exactly one segment of the apostles model.

The special zones sit inside the extreme corners of the main quadrants
(apostles inside loyalists, terrorists inside defectors), so they are tested
first; otherwise every apostle would also satisfy the loyalists predicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from apostles.core.config import SegmentationConfig
from apostles.core.errors import DegenerateZone, OutOfRangeScore
from apostles.core.geometry import Corner, ZoneBounds, special_zone_bounds
from apostles.core.models import (
    MAIN_QUADRANTS,
    SPECIAL_ZONES,
    Midpoint,
    QuadrantType,
    Respondent,
    ScaleRange,
)
from apostles.core.schema import Axis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneRect:
    """Axis-aligned rectangle of scale positions, inclusive on every edge."""
    sat: ZoneBounds
    loy: ZoneBounds

    def contains(self, satisfaction: float, loyalty: float) -> bool:
        return self.sat.contains(satisfaction) and self.loy.contains(loyalty)


@dataclass(frozen=True)
class ZoneLayout:
    """
    Resolved geometry for one configuration.

    Zones are resolved whether or not they are shown; the feature flags only
    decide whether the classifier and the proximity analyzer use them. A
    degenerate zone is resolved as None and described in `issues`.
    """
    satisfaction: ScaleRange
    loyalty: ScaleRange
    midpoint: Midpoint
    apostles: Optional[ZoneRect]
    near_apostles: Optional[ZoneRect]
    terrorists: Optional[ZoneRect]
    issues: tuple[str, ...] = ()

    @property
    def has_space_for_near_apostles(self) -> bool:
        return self.near_apostles is not None


def _resolve_zone(
    zone: QuadrantType,
    size: int,
    corner: Corner,
    sat_range: ScaleRange,
    loy_range: ScaleRange,
    midpoint: Midpoint) -> Optional[ZoneRect]:

    sat_bounds = special_zone_bounds(sat_range, size, corner)
    loy_bounds = special_zone_bounds(loy_range, size, corner)
    if sat_bounds is None or loy_bounds is None:
        return None

    # The zone has to stay strictly on its side of the midpoint, otherwise it
    # swallows the whole main quadrant it is nested in
    if corner == Corner.HIGH:
        reaches_midpoint = sat_bounds.low <= midpoint.sat or loy_bounds.low <= midpoint.loy
    else:
        reaches_midpoint = sat_bounds.high >= midpoint.sat or loy_bounds.high >= midpoint.loy

    if reaches_midpoint:
        raise DegenerateZone(
            f"{zone} zone size {size} reaches the midpoint "
            f"({midpoint.sat}, {midpoint.loy})"
        )

    return ZoneRect(sat=sat_bounds, loy=loy_bounds)


def _near_apostles_ring(apostles: ZoneRect, midpoint: Midpoint) -> Optional[ZoneRect]:
    """One-unit band just outside the apostles zone, if it fits above the midpoint."""
    ring = ZoneRect(
        sat=ZoneBounds(apostles.sat.low - 1, apostles.sat.high),
        loy=ZoneBounds(apostles.loy.low - 1, apostles.loy.high),
    )
    if ring.sat.low < midpoint.sat or ring.loy.low < midpoint.loy:
        return None
    return ring


@lru_cache(maxsize=128)
def build_layout(config: SegmentationConfig, strict: bool = False) -> ZoneLayout:
    """
    Resolve scale ranges and special zones for a configuration.

    A degenerate zone falls back to zero size so the main quadrants win, and
    the condition is reported in `issues`. With strict=True the DegenerateZone
    error is raised instead.
    """
    sat_range = config.satisfaction_range
    loy_range = config.loyalty_range
    midpoint = config.midpoint
    issues: list[str] = []

    zones: dict[QuadrantType, Optional[ZoneRect]] = {}
    for zone, size, corner in (
        (QuadrantType.APOSTLES, config.zone_sizes.apostles, Corner.HIGH),
        (QuadrantType.TERRORISTS, config.zone_sizes.terrorists, Corner.LOW),
    ):
        try:
            zones[zone] = _resolve_zone(zone, size, corner, sat_range, loy_range, midpoint)
        except DegenerateZone as e:
            if strict:
                raise
            logger.warning(f"{e}. Treating the {zone} zone as empty.")
            issues.append(str(e))
            zones[zone] = None

    apostles = zones[QuadrantType.APOSTLES]
    near_apostles = _near_apostles_ring(apostles, midpoint) if apostles else None

    if apostles and near_apostles is None:
        logger.debug("No space for a near-apostles ring between the apostles zone and the midpoint")

    return ZoneLayout(
        satisfaction=sat_range,
        loyalty=loy_range,
        midpoint=midpoint,
        apostles=apostles,
        near_apostles=near_apostles,
        terrorists=zones[QuadrantType.TERRORISTS],
        issues=tuple(issues),
    )


def main_quadrant(satisfaction: float, loyalty: float, midpoint: Midpoint) -> QuadrantType:
    """Compare a coordinate to the midpoint; ties go to the higher segment on both axes."""
    high_sat = satisfaction >= midpoint.sat
    low_sat = satisfaction < midpoint.sat
    high_loy = loyalty >= midpoint.loy
    low_loy = loyalty < midpoint.loy

    if high_sat and high_loy:
        return QuadrantType.LOYALISTS
    if high_sat and low_loy:
        return QuadrantType.MERCENARIES
    if low_sat and high_loy:
        return QuadrantType.HOSTAGES
    if low_sat and low_loy:
        return QuadrantType.DEFECTORS
    # Only unordered values (NaN) get here
    return QuadrantType.NEUTRAL


class QuadrantClassifier:

    def __init__(self, config: SegmentationConfig):
        """
        Args:
            config: validated SegmentationConfig
        """
        self.config = config
        self.layout = build_layout(config)

    @property
    def special_zones_active(self) -> bool:
        return self.config.show_special_zones

    @property
    def near_apostles_active(self) -> bool:
        return (
            self.config.show_special_zones
            and self.config.show_near_apostles
            and self.layout.has_space_for_near_apostles
        )

    def check_scores(self, respondent: Respondent) -> None:
        """Raise OutOfRangeScore if either score lies outside its scale."""
        for axis, value, scale in (
            (Axis.SATISFACTION, respondent.satisfaction, self.layout.satisfaction),
            (Axis.LOYALTY, respondent.loyalty, self.layout.loyalty),
        ):
            if not scale.contains(value):
                raise OutOfRangeScore(respondent.id, axis, value, scale.identifier)

    def classify(self, respondent: Respondent) -> QuadrantType:
        """Classify a single non-excluded respondent."""
        self.check_scores(respondent)
        return self.classify_position(respondent.satisfaction, respondent.loyalty)

    def classify_position(self, satisfaction: float, loyalty: float) -> QuadrantType:
        layout = self.layout

        if self.special_zones_active:
            if layout.terrorists and layout.terrorists.contains(satisfaction, loyalty):
                return QuadrantType.TERRORISTS
            if layout.apostles and layout.apostles.contains(satisfaction, loyalty):
                return QuadrantType.APOSTLES
            # The ring rectangle also covers the apostles zone, which matched above
            if self.near_apostles_active and layout.near_apostles.contains(satisfaction, loyalty):
                return QuadrantType.NEAR_APOSTLES

        return main_quadrant(satisfaction, loyalty, layout.midpoint)

    def available_segments(self) -> list[QuadrantType]:
        """Segments an operator can assign manually under this configuration."""
        segments = list(MAIN_QUADRANTS)
        if self.special_zones_active:
            segments.append(QuadrantType.APOSTLES)
            segments.append(QuadrantType.TERRORISTS)
            if self.near_apostles_active:
                segments.append(QuadrantType.NEAR_APOSTLES)
        segments.append(QuadrantType.NEUTRAL)
        return segments


def classify(point: Respondent, config: SegmentationConfig) -> QuadrantType:
    """Classify one respondent; the caller filters out excluded respondents first."""
    return QuadrantClassifier(config).classify(point)


def is_special_zone(segment: QuadrantType) -> bool:
    return segment in SPECIAL_ZONES


_DISPLAY_NAMES = {
    QuadrantType.LOYALISTS: "Loyalists",
    QuadrantType.MERCENARIES: "Mercenaries",
    QuadrantType.HOSTAGES: "Hostages",
    QuadrantType.DEFECTORS: "Defectors",
    QuadrantType.APOSTLES: "Apostles",
    QuadrantType.NEAR_APOSTLES: "Near Apostles",
    QuadrantType.TERRORISTS: "Terrorists",
    QuadrantType.NEUTRAL: "Neutral",
}

# Terminology of the classic model for the four main quadrants
_CLASSIC_NAMES = {
    QuadrantType.LOYALISTS: "Champions",
    QuadrantType.MERCENARIES: "Potential Loyalists",
    QuadrantType.HOSTAGES: "At Risk",
    QuadrantType.DEFECTORS: "Cannot Do Much",
}


def display_name(segment: QuadrantType, classic: bool = False) -> str:
    if classic and segment in _CLASSIC_NAMES:
        return _CLASSIC_NAMES[segment]
    return _DISPLAY_NAMES[segment]
