"""
Pipeline step running the proximity analysis on the effective segments.

Respondents placed in a segment by an override are measured from the segment
they were assigned to, so a manual apostle is never reported as a loyalist
close to the apostles zone.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar, Optional

from apostles.core.assignments import ManualAssignmentStore, effective_classify
from apostles.core.config import RulesConfig
from apostles.core.proximity import ProximityAnalyzer
from apostles.pipeline.context import Context
from apostles.pipeline.keys import Key
from apostles.pipeline.step import Step

logger = logging.getLogger(__name__)


@dataclass
class AnalyzeProximity(Step):
    name: ClassVar[str] = "analyze_proximity"

    premium_enabled: Optional[bool] = None

    def run(self, ctx: Context) -> Context:
        rules: RulesConfig = ctx.require_state(Key.STATE_RULES)
        overrides: ManualAssignmentStore = ctx.get_state(Key.STATE_OVERRIDES)
        config = rules.segmentation

        premium = rules.premium_enabled if self.premium_enabled is None else self.premium_enabled

        # Resolved once by the preflight step
        layout = ctx.require_state(Key.STATE_LAYOUT)

        analyzer = ProximityAnalyzer(config, rules.proximity, layout)
        report = analyzer.analyze(
            ctx.respondents,
            lambda point: effective_classify(point, config, overrides),
            premium_enabled=premium,
            threshold=ctx.get_state(Key.STATE_PARAM_THRESHOLD),
        )

        if not report.settings.is_available:
            logger.info(report.settings.unavailability_reason)

        ctx.set_state(Key.GEN_PROXIMITY_REPORT, report)

        return ctx
