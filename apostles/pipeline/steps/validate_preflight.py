"""Preflight checks on the configuration and respondents before classification."""

import logging
from dataclasses import dataclass
from typing import ClassVar

from apostles.core.assignments import ManualAssignmentStore
from apostles.core.config import RulesConfig
from apostles.core.errors import OutOfRangeScore
from apostles.core.quadrant_classifier import QuadrantClassifier, build_layout
from apostles.pipeline.context import Context
from apostles.pipeline.keys import Key
from apostles.pipeline.step import Step

logger = logging.getLogger(__name__)


def collect_issues(
    respondents: list,
    classifier: QuadrantClassifier,
    overrides: ManualAssignmentStore) -> list[str]:
    """
    Problems worth surfacing to the operator that do not stop the analysis:
    degenerate zones, scores outside the scales, and overrides that point at
    unknown respondents or at segments the current configuration does not show.
    """
    issues = list(classifier.layout.issues)
    config = classifier.config

    if config.show_near_apostles and not config.show_special_zones:
        issues.append("Near apostles are enabled but special zones are hidden; the ring is not shown")
    elif config.show_near_apostles and not classifier.layout.has_space_for_near_apostles:
        issues.append("No space for a near-apostles ring between the apostles zone and the midpoint")

    out_of_range = []
    for point in respondents:
        if point.excluded or point.id in overrides:
            continue
        try:
            classifier.check_scores(point)
        except OutOfRangeScore:
            out_of_range.append(point.id)
    if out_of_range:
        issues.append(
            f"{len(out_of_range)} respondent(s) have scores outside the configured scales: "
            f"{', '.join(out_of_range)}"
        )

    known_ids = {p.id for p in respondents}
    unknown = [rid for rid in overrides if rid not in known_ids]
    if unknown:
        issues.append(f"Overrides for unknown respondents: {', '.join(unknown)}")

    assignable = set(classifier.available_segments())
    hidden = [rid for rid, segment in overrides.items() if segment not in assignable]
    if hidden:
        issues.append(
            f"Overrides to segments not shown by the current configuration: {', '.join(hidden)}"
        )

    return issues


@dataclass
class ValidatePreflight(Step):
    """Pipeline step: resolves the zone layout and records non-fatal issues."""
    name: ClassVar[str] = "validate_preflight"

    strict: bool = False

    def run(self, ctx: Context) -> Context:

        logger.debug("Performing preflight validation")

        rules: RulesConfig = ctx.require_state(Key.STATE_RULES)
        overrides: ManualAssignmentStore = ctx.get_state(Key.STATE_OVERRIDES)
        if overrides is None:
            overrides = ManualAssignmentStore()

        # Raises DegenerateZone in strict mode
        layout = build_layout(rules.segmentation, strict=self.strict)
        classifier = QuadrantClassifier(rules.segmentation)

        active = ctx.active_respondents()
        if not active:
            logger.warning("No active respondents; every segment will be empty")

        issues = collect_issues(ctx.respondents, classifier, overrides)
        for issue in issues:
            logger.debug(f"Preflight issue: {issue}")

        ctx.set_state(Key.STATE_LAYOUT, layout)
        ctx.set_state(Key.STATE_ISSUES, issues)

        logger.debug(
            f"Preflight validation complete: {len(active)} active, "
            f"{len(ctx.respondents) - len(active)} excluded, {len(issues)} issue(s)"
        )

        return ctx
