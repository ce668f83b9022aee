"""
Boundary proximity analysis.

A respondent sitting right next to a segment boundary is one small score
change away from becoming someone else: a loyalist one point above the
satisfaction midpoint may turn into a hostage after a single bad experience,
a defector one point below it may be won back. This module finds those
respondents and groups them by the boundary they are close to.

The relationships come from the same geometry the classifier uses. Each main
quadrant touches

    - two lateral neighbours, across one midpoint line:

          hostages   | loyalists
          -----------+------------   <- loyalty midpoint
          defectors  | mercenaries
                     ^
               satisfaction midpoint

    - one diagonal neighbour, through the midpoint corner only
      (loyalists <-> defectors, mercenaries <-> hostages);

and the special zones add loyalists -> apostles (or loyalists ->
near_apostles -> apostles when the ring is shown) and defectors ->
terrorists.

Every relationship is labelled once, statically, as an opportunity
(movement towards a more valuable segment) or a warning (towards a less
valuable one). Warnings score higher risk than opportunities, and
opportunities never go past MODERATE.

Distances are in scale units:

    - lateral:  distance to the midpoint line on the one axis that changes
    - diagonal: Chebyshev distance to the midpoint corner
    - special:  units still to travel before entering the zone rectangle
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import numpy as np

from apostles.core.config import ProximityRules, SegmentationConfig
from apostles.core.errors import OutOfRangeScore
from apostles.core.geometry import Boundary, distance_to_boundary
from apostles.core.models import (
    MAIN_QUADRANTS,
    CustomerProximityDetail,
    Outlook,
    ProximityDetail,
    ProximityRelationship,
    ProximityReport,
    ProximitySettings,
    ProximitySummary,
    QuadrantType,
    RelationshipKind,
    Respondent,
    RiskLevel,
)
from apostles.core.quadrant_classifier import QuadrantClassifier, ZoneLayout, build_layout, display_name
from apostles.core.schema import Axis

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 1.0

ClassifyFn = Callable[[Respondent], QuadrantType]

# Fixed value order of the segments; moving up is an opportunity
SEGMENT_VALUE: dict[QuadrantType, int] = {
    QuadrantType.APOSTLES: 6,
    QuadrantType.NEAR_APOSTLES: 5,
    QuadrantType.LOYALISTS: 4,
    QuadrantType.MERCENARIES: 3,
    QuadrantType.HOSTAGES: 2,
    QuadrantType.DEFECTORS: 1,
    QuadrantType.TERRORISTS: 0,
}

# Side of the midpoint each main quadrant occupies: +1 at or above, -1 below
QUADRANT_SIDES: dict[QuadrantType, tuple[int, int]] = {
    QuadrantType.LOYALISTS: (1, 1),
    QuadrantType.MERCENARIES: (1, -1),
    QuadrantType.HOSTAGES: (-1, 1),
    QuadrantType.DEFECTORS: (-1, -1),
}

SPECIAL_EDGES: tuple[tuple[QuadrantType, QuadrantType], ...] = (
    (QuadrantType.LOYALISTS, QuadrantType.APOSTLES),
    (QuadrantType.LOYALISTS, QuadrantType.NEAR_APOSTLES),
    (QuadrantType.NEAR_APOSTLES, QuadrantType.APOSTLES),
    (QuadrantType.DEFECTORS, QuadrantType.TERRORISTS),
)


@dataclass(frozen=True)
class Relationship:
    key: ProximityRelationship
    kind: RelationshipKind
    outlook: Outlook
    axis: Optional[Axis] = None  # the axis crossed, lateral relationships only

    @property
    def source(self) -> QuadrantType:
        return self.key.source

    @property
    def target(self) -> QuadrantType:
        return self.key.target

    @property
    def is_warning(self) -> bool:
        return self.outlook == Outlook.WARNING

    @property
    def is_opportunity(self) -> bool:
        return self.outlook == Outlook.OPPORTUNITY


def _outlook(source: QuadrantType, target: QuadrantType) -> Outlook:
    if SEGMENT_VALUE[target] > SEGMENT_VALUE[source]:
        return Outlook.OPPORTUNITY
    return Outlook.WARNING


def _build_relationship_table() -> dict[ProximityRelationship, Relationship]:
    """Derive every relationship from the segment adjacency graph."""
    table: dict[ProximityRelationship, Relationship] = {}
    axes = (Axis.SATISFACTION, Axis.LOYALTY)

    for source in MAIN_QUADRANTS:
        for target in MAIN_QUADRANTS:
            if source == target:
                continue
            crossed = [
                axis for axis, s, t in zip(axes, QUADRANT_SIDES[source], QUADRANT_SIDES[target])
                if s != t
            ]
            key = ProximityRelationship.between(source, target)
            if len(crossed) == 1:
                table[key] = Relationship(key, RelationshipKind.LATERAL, _outlook(source, target), crossed[0])
            else:
                table[key] = Relationship(key, RelationshipKind.DIAGONAL, _outlook(source, target))

    for source, target in SPECIAL_EDGES:
        key = ProximityRelationship.between(source, target)
        table[key] = Relationship(key, RelationshipKind.SPECIAL, _outlook(source, target))

    missing = set(ProximityRelationship) - set(table)
    if missing:
        raise RuntimeError(f"Relationships without an adjacency: {sorted(missing)}")

    # Keep enum order so reports list relationships consistently
    return {key: table[key] for key in ProximityRelationship}


RELATIONSHIPS: dict[ProximityRelationship, Relationship] = _build_relationship_table()


def relationship(key: ProximityRelationship | str) -> Relationship:
    return RELATIONSHIPS[ProximityRelationship(key)]


def relationships_from(source: QuadrantType) -> list[Relationship]:
    return [rel for rel in RELATIONSHIPS.values() if rel.source == source]


def is_warning(key: ProximityRelationship | str) -> bool:
    return relationship(key).is_warning


def is_opportunity(key: ProximityRelationship | str) -> bool:
    return relationship(key).is_opportunity


def describe(key: ProximityRelationship | str, classic: bool = False) -> str:
    """Human label, e.g. 'Loyalists Nearly Mercenaries'."""
    rel = relationship(key)
    return f"{display_name(rel.source, classic)} Nearly {display_name(rel.target, classic)}"


def active_relationships(
    premium_enabled: bool,
    show_special_zones: bool,
    show_near_apostles: bool,
    layout: Optional[ZoneLayout] = None) -> list[Relationship]:
    """
    Relationships computed for a given set of feature flags.

    Lateral relationships are always on. Diagonal ones need premium, special
    zone ones need premium and visible special zones. Loyalists border the
    apostles directly unless the near-apostles ring sits between them. With a
    layout, relationships into a zone that does not exist are dropped.
    """
    use_ring = show_near_apostles
    if layout is not None:
        use_ring = use_ring and layout.has_space_for_near_apostles

    active = []
    for rel in RELATIONSHIPS.values():
        if rel.kind == RelationshipKind.DIAGONAL and not premium_enabled:
            continue

        if rel.kind == RelationshipKind.SPECIAL:
            if not (premium_enabled and show_special_zones):
                continue
            if rel.key == ProximityRelationship.LOYALISTS_CLOSE_TO_APOSTLES and use_ring:
                continue
            if QuadrantType.NEAR_APOSTLES in (rel.source, rel.target) and not use_ring:
                continue
            if layout is not None and _zone_rect(layout, rel.target) is None:
                continue

        active.append(rel)
    return active


def _zone_rect(layout: ZoneLayout, zone: QuadrantType):
    return {
        QuadrantType.APOSTLES: layout.apostles,
        QuadrantType.NEAR_APOSTLES: layout.near_apostles,
        QuadrantType.TERRORISTS: layout.terrorists,
    }[zone]


def boundary_for(rel: Relationship, layout: ZoneLayout) -> Boundary:
    """The boundary a respondent of `rel.source` has to cross to reach `rel.target`."""
    midpoint = layout.midpoint

    if rel.kind == RelationshipKind.LATERAL:
        sat_side, loy_side = QUADRANT_SIDES[rel.source]
        if rel.axis == Axis.SATISFACTION:
            return Boundary.satisfaction_line(midpoint.sat, sat_side)
        return Boundary.loyalty_line(midpoint.loy, loy_side)

    if rel.kind == RelationshipKind.DIAGONAL:
        return Boundary.corner(midpoint, *QUADRANT_SIDES[rel.source])

    rect = _zone_rect(layout, rel.target)
    if rect is None:
        raise ValueError(f"No {rel.target} zone in this layout")
    if rel.target == QuadrantType.TERRORISTS:
        return Boundary.zone(rect.sat.high, rect.loy.high, sat_side=1, loy_side=1)
    return Boundary.zone(rect.sat.low, rect.loy.low, sat_side=-1, loy_side=-1)


def score_risk(
    distance: float,
    threshold: float,
    outlook: Outlook,
    rules: ProximityRules) -> tuple[float, RiskLevel]:
    """Risk score (0-100) and level for one respondent under one relationship."""
    closeness = 1.0 - distance / (threshold + 1.0)
    weight = rules.warning_weight if outlook == Outlook.WARNING else rules.opportunity_weight
    score = round(min(100.0, max(0.0, 100.0 * closeness * weight)), 1)

    if score >= rules.high_risk_score:
        level = RiskLevel.HIGH
    elif score >= rules.moderate_risk_score:
        level = RiskLevel.MODERATE
    else:
        level = RiskLevel.LOW

    if outlook == Outlook.OPPORTUNITY and level == RiskLevel.HIGH:
        level = RiskLevel.MODERATE

    return score, level


def check_availability(layout: ZoneLayout, threshold: float) -> Optional[str]:
    """
    Reason why proximity is not meaningful for these scales, or None.

    When every position of an axis lies within the threshold of the midpoint,
    every respondent would be flagged and the groups say nothing.
    """
    for axis, scale in ((Axis.SATISFACTION, layout.satisfaction), (Axis.LOYALTY, layout.loyalty)):
        if scale.span <= 2 * threshold:
            return (
                f"The {axis} scale {scale.identifier} is too coarse for proximity analysis: "
                f"every position lies within {threshold:g} unit(s) of a boundary. "
                f"Use a scale of 1-5 or larger."
            )
    return None


@dataclass
class _Hit:
    point: Respondent
    segment: QuadrantType
    distance: float


class ProximityAnalyzer:
    """Finds respondents within a threshold of an adjacent segment boundary."""

    def __init__(
        self,
        config: SegmentationConfig,
        rules: Optional[ProximityRules] = None,
        layout: Optional[ZoneLayout] = None):
        """
        Args:
            config: SegmentationConfig providing scales, midpoint and zone sizes
            rules: ProximityRules with the default threshold and risk scoring
            layout: ZoneLayout already resolved for config (built here if None)
        """
        self.config = config
        self.rules = rules or ProximityRules()
        self.layout = layout if layout is not None else build_layout(config)
        self._classifier = QuadrantClassifier(config)

    def analyze(
        self,
        points: Iterable[Respondent],
        classify_fn: Optional[ClassifyFn] = None,
        premium_enabled: bool = False,
        threshold: Optional[float] = None,
        show_special_zones: Optional[bool] = None,
        show_near_apostles: Optional[bool] = None) -> ProximityReport:

        threshold = self.rules.threshold if threshold is None else float(threshold)
        if threshold < 0:
            raise ValueError(f"Proximity threshold cannot be negative, got {threshold}")

        if show_special_zones is None:
            show_special_zones = self.config.show_special_zones
        if show_near_apostles is None:
            show_near_apostles = self.config.show_near_apostles
        classify_fn = classify_fn or self._classifier.classify

        measurable = []
        for point in points:
            if point.excluded:
                continue
            try:
                self._classifier.check_scores(point)
            except OutOfRangeScore as e:
                logger.warning(f"{e}. Skipped in proximity analysis.")
                continue
            measurable.append(point)

        settings = ProximitySettings(
            threshold=threshold,
            total_customers=len(measurable),
            premium_enabled=premium_enabled,
            show_special_zones=show_special_zones,
            show_near_apostles=show_near_apostles,
        )

        reason = check_availability(self.layout, threshold)
        if reason:
            logger.debug(f"Proximity analysis unavailable: {reason}")
            settings.is_available = False
            settings.unavailability_reason = reason
            return ProximityReport(
                analysis={key: ProximityDetail() for key in ProximityRelationship},
                summary=ProximitySummary(total_customers=len(measurable)),
                settings=settings,
            )

        rels = active_relationships(premium_enabled, show_special_zones, show_near_apostles, self.layout)
        by_source: dict[QuadrantType, list[Relationship]] = defaultdict(list)
        for rel in rels:
            by_source[rel.source].append(rel)
        boundaries = {rel.key: boundary_for(rel, self.layout) for rel in rels}

        hits: dict[ProximityRelationship, list[_Hit]] = defaultdict(list)
        targets: dict[str, list[QuadrantType]] = defaultdict(list)
        for point in measurable:
            segment = classify_fn(point)

            for rel in by_source.get(segment, ()):
                distance = distance_to_boundary(point.satisfaction, point.loyalty, boundaries[rel.key])
                # Negative distances belong to respondents placed here by an override
                if 0 <= distance <= threshold:
                    hits[rel.key].append(_Hit(point, segment, distance))
                    if rel.target not in targets[point.id]:
                        targets[point.id].append(rel.target)

        analysis = {
            key: self._detail(RELATIONSHIPS[key], hits.get(key, []), targets, threshold)
            for key in ProximityRelationship
        }

        logger.debug(
            f"Proximity analysis over {len(measurable)} respondents with threshold {threshold:g}: "
            + ", ".join(f"{key}={d.customer_count}" for key, d in analysis.items() if d.customer_count)
        )

        return ProximityReport(
            analysis=analysis,
            summary=self._summary(analysis, len(measurable)),
            settings=settings,
        )

    def _detail(
        self,
        rel: Relationship,
        hits: list[_Hit],
        targets: dict[str, list[QuadrantType]],
        threshold: float) -> ProximityDetail:

        if not hits:
            return ProximityDetail()

        customers = []
        for hit in sorted(hits, key=lambda h: (h.distance, h.point.id)):
            score, level = score_risk(hit.distance, threshold, rel.outlook, self.rules)
            customers.append(
                CustomerProximityDetail(
                    id=hit.point.id,
                    name=hit.point.name,
                    satisfaction=hit.point.satisfaction,
                    loyalty=hit.point.loyalty,
                    distance_from_boundary=hit.distance,
                    current_quadrant=hit.segment,
                    proximity_targets=list(targets[hit.point.id]),
                    risk_score=score,
                    risk_level=level,
                )
            )

        return ProximityDetail(
            customer_count=len({c.id for c in customers}),
            position_count=len({(c.satisfaction, c.loyalty) for c in customers}),
            average_distance=float(np.mean([c.distance_from_boundary for c in customers])),
            risk_level=max((c.risk_level for c in customers), key=lambda level: level.rank),
            customers=customers,
        )

    def _summary(
        self,
        analysis: dict[ProximityRelationship, ProximityDetail],
        total_customers: int) -> ProximitySummary:

        all_ids: set[str] = set()
        positions: set[tuple[float, float]] = set()
        opportunity_ids: set[str] = set()
        warning_ids: set[str] = set()

        for key, detail in analysis.items():
            for customer in detail.customers:
                all_ids.add(customer.id)
                positions.add((customer.satisfaction, customer.loyalty))
                if RELATIONSHIPS[key].is_opportunity:
                    opportunity_ids.add(customer.id)
                else:
                    warning_ids.add(customer.id)

        return ProximitySummary(
            total_customers=total_customers,
            total_proximity_customers=len(all_ids),
            total_proximity_positions=len(positions),
            opportunity_customers=len(opportunity_ids),
            warning_customers=len(warning_ids),
        )


def analyze_proximity(
    points: Iterable[Respondent],
    effective_classify_fn: Optional[ClassifyFn],
    premium_enabled: bool,
    threshold: Optional[float] = None,
    show_special_zones: Optional[bool] = None,
    show_near_apostles: Optional[bool] = None,
    *,
    config: SegmentationConfig,
    rules: Optional[ProximityRules] = None) -> ProximityReport:
    """Functional entry point around ProximityAnalyzer.analyze."""
    analyzer = ProximityAnalyzer(config, rules)
    return analyzer.analyze(
        points,
        effective_classify_fn,
        premium_enabled=premium_enabled,
        threshold=threshold,
        show_special_zones=show_special_zones,
        show_near_apostles=show_near_apostles,
    )
