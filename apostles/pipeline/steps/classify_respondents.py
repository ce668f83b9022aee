"""
Builds the assignments table: the effective segment of every active
respondent, and whether an operator override decided it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar

import pandas as pd

from apostles.core.assignments import ManualAssignmentStore, effective_classify
from apostles.core.config import RulesConfig
from apostles.core.errors import OutOfRangeScore
from apostles.core.schema import DataKey
from apostles.pipeline.context import Context
from apostles.pipeline.keys import Key
from apostles.pipeline.step import Step

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = [
    DataKey.RESPONDENT_ID,
    DataKey.NAME,
    DataKey.SATISFACTION,
    DataKey.LOYALTY,
    DataKey.SEGMENT,
    DataKey.OVERRIDDEN,
]


def build_assignments(respondents, config, overrides: ManualAssignmentStore) -> pd.DataFrame:
    rows = []
    for point in respondents:
        if point.excluded:
            continue
        try:
            segment = effective_classify(point, config, overrides)
        except OutOfRangeScore:
            # Already reported by the preflight step; listed as invalid in the distribution
            continue
        rows.append({
            DataKey.RESPONDENT_ID: point.id,
            DataKey.NAME: point.name,
            DataKey.SATISFACTION: point.satisfaction,
            DataKey.LOYALTY: point.loyalty,
            DataKey.SEGMENT: segment,
            DataKey.OVERRIDDEN: point.id in overrides,
        })
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)


@dataclass
class ClassifyRespondents(Step):
    """Pipeline step: effective segment per active respondent."""
    name: ClassVar[str] = "classify_respondents"

    def run(self, ctx: Context) -> Context:
        rules: RulesConfig = ctx.require_state(Key.STATE_RULES)
        overrides: ManualAssignmentStore = ctx.get_state(Key.STATE_OVERRIDES)
        if overrides is None:
            overrides = ManualAssignmentStore()

        table = build_assignments(ctx.respondents, rules.segmentation, overrides)
        ctx.add_table(Key.DERIVED_TABLE_ASSIGNMENTS, table)

        logger.debug(
            f"Classified {len(table)} respondents "
            f"({int(table[DataKey.OVERRIDDEN].sum()) if len(table) else 0} by override)"
        )

        return ctx
