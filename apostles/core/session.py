"""
Working session over one respondent set.

The session owns the respondents, the rules and the single
ManualAssignmentStore of a piece of work. Aggregates are recomputed in full
through the pipeline whenever anything they depend on changes, and memoized
otherwise: the cache key is a fingerprint of the respondents, the rules and
the store version, so any edit produces a fresh result and repeated reads
of an unchanged session cost nothing.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, Optional

import pandas as pd

from apostles.core.assignments import ManualAssignmentStore, effective_classify
from apostles.core.config import ProximityRules, RulesConfig, SegmentationConfig
from apostles.core.models import (
    Distribution,
    ProximityReport,
    QuadrantType,
    Respondent,
    SegmentationResult,
)
from apostles.core.quadrant_classifier import QuadrantClassifier
from apostles.core.schema import DataKey
from apostles.pipeline.context import Context
from apostles.pipeline.keys import Key
from apostles.pipeline.runner import run_pipeline
from apostles.pipeline.step import Step
from apostles.pipeline.steps.aggregate_distribution import AggregateDistribution
from apostles.pipeline.steps.analyze_proximity import AnalyzeProximity
from apostles.pipeline.steps.classify_respondents import ClassifyRespondents
from apostles.pipeline.steps.validate_preflight import ValidatePreflight

logger = logging.getLogger(__name__)


class SegmentationSession:

    def __init__(
        self,
        respondents: Iterable[Respondent],
        rules: Optional[RulesConfig] = None,
        store: Optional[ManualAssignmentStore] = None,
        threshold: Optional[float] = None,
        strict: bool = False):
        """
        Args:
            respondents: respondents of this session, ids unique
            rules: RulesConfig; defaults to RulesConfig.default()
            store: override store shared with the caller; a new one if None
            threshold: proximity threshold replacing rules.proximity.threshold
            strict: raise DegenerateZone instead of reporting it as an issue
        """
        self._respondents = list(respondents)
        self._rules = rules or RulesConfig.default()
        self.store = store if store is not None else ManualAssignmentStore()
        self.threshold = threshold
        self.strict = strict

        self._cache_key: Optional[str] = None
        self._cache: Optional[Context] = None
        self.runs = 0

    # Inputs

    @property
    def respondents(self) -> list[Respondent]:
        return list(self._respondents)

    @property
    def rules(self) -> RulesConfig:
        return self._rules

    @property
    def config(self) -> SegmentationConfig:
        return self._rules.segmentation

    def update_config(self, **changes) -> SegmentationConfig:
        """
        Change segmentation settings, e.g. update_config(midpoint=Midpoint(sat=4, loy=4)).

        Validation errors (InvalidScale, MidpointOutOfRange) propagate and the
        previous configuration stays in place.
        """
        config = self._rules.segmentation.replace(**changes)
        self._rules = self._rules.model_copy(update={'segmentation': config})
        logger.debug(f"Segmentation config updated: {changes}")
        return config

    def update_proximity(self, **changes) -> ProximityRules:
        proximity = ProximityRules.model_validate({**self._rules.proximity.model_dump(), **changes})
        self._rules = self._rules.model_copy(update={'proximity': proximity})
        return proximity

    def set_premium(self, enabled: bool) -> None:
        self._rules = self._rules.model_copy(update={'premium_enabled': enabled})

    def set_respondents(self, respondents: Iterable[Respondent]) -> None:
        """Replace the respondent set; overrides of respondents no longer present are dropped."""
        self._respondents = list(respondents)
        dropped = self.store.prune(p.id for p in self._respondents)
        if dropped:
            logger.info(f"Dropped {len(dropped)} manual assignment(s) of removed respondents")

    def set_override(self, respondent_id: str, segment: QuadrantType | str) -> None:
        self.store.set_override(respondent_id, segment)

    def clear_override(self, respondent_id: str) -> bool:
        return self.store.clear_override(respondent_id)

    def clear_all_overrides(self) -> None:
        self.store.clear_all()

    # Memoized results

    def fingerprint(self) -> str:
        h = hashlib.sha256()
        for point in self._respondents:
            h.update(point.model_dump_json().encode('utf-8'))
            h.update(b'\n')
        h.update(self._rules.model_dump_json(exclude={'metadata'}).encode('utf-8'))
        h.update(f"threshold={self.threshold};strict={self.strict}".encode('utf-8'))
        h.update(f"store={id(self.store)}:{self.store.version}".encode('utf-8'))
        return h.hexdigest()

    def _build_pipeline(self) -> list[Step]:
        return [
            ValidatePreflight(strict=self.strict),
            ClassifyRespondents(),
            AggregateDistribution(),
            AnalyzeProximity(),
        ]

    def _context(self) -> Context:
        key = self.fingerprint()
        if self._cache is not None and key == self._cache_key:
            return self._cache

        ctx = Context(respondents=list(self._respondents))
        ctx.set_state(Key.STATE_RULES, self._rules)
        ctx.set_state(Key.STATE_OVERRIDES, self.store)
        if self.threshold is not None:
            ctx.set_state(Key.STATE_PARAM_THRESHOLD, self.threshold)

        ctx = run_pipeline(ctx, self._build_pipeline())
        self.runs += 1

        self._cache_key = key
        self._cache = ctx
        return ctx

    @property
    def distribution(self) -> Distribution:
        return self._context().require_state(Key.GEN_DISTRIBUTION)

    @property
    def proximity(self) -> ProximityReport:
        return self._context().require_state(Key.GEN_PROXIMITY_REPORT)

    @property
    def assignments(self) -> pd.DataFrame:
        return self._context().require_table(Key.DERIVED_TABLE_ASSIGNMENTS).copy()

    @property
    def issues(self) -> list[str]:
        return list(self._context().require_state(Key.STATE_ISSUES))

    def segment_of(self, respondent_id: str) -> QuadrantType:
        """Effective segment of one respondent (override first)."""
        for point in self._respondents:
            if point.id == respondent_id:
                return effective_classify(point, self.config, self.store)
        raise KeyError(f"Unknown respondent '{respondent_id}'")

    def available_segments(self) -> list[QuadrantType]:
        return QuadrantClassifier(self.config).available_segments()

    def result(self) -> SegmentationResult:
        table = self.assignments
        return SegmentationResult(
            assignments=dict(zip(table[DataKey.RESPONDENT_ID], table[DataKey.SEGMENT])),
            overridden=table.loc[table[DataKey.OVERRIDDEN].astype(bool),DataKey.RESPONDENT_ID].tolist(),
            distribution=self.distribution,
            proximity=self.proximity,
            issues=self.issues,
        )
