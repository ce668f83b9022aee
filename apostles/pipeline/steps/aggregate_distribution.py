"""Pipeline step wrapping the distribution aggregator."""

import logging
from dataclasses import dataclass
from typing import ClassVar

from apostles.core.assignments import ManualAssignmentStore
from apostles.core.config import RulesConfig
from apostles.core.distribution import aggregate
from apostles.pipeline.context import Context
from apostles.pipeline.keys import Key
from apostles.pipeline.step import Step

logger = logging.getLogger(__name__)


@dataclass
class AggregateDistribution(Step):
    name: ClassVar[str] = "aggregate_distribution"

    def run(self, ctx: Context) -> Context:
        rules: RulesConfig = ctx.require_state(Key.STATE_RULES)
        overrides: ManualAssignmentStore = ctx.get_state(Key.STATE_OVERRIDES)

        distribution = aggregate(ctx.respondents, rules.segmentation, overrides)
        ctx.set_state(Key.GEN_DISTRIBUTION, distribution)

        return ctx
