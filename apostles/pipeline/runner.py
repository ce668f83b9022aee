"""
Pipeline runner that executes steps sequentially and records per-step
timing metrics.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable

from .context import Context
from .step import Step

logger = logging.getLogger(__name__)


def run_pipeline(ctx: Context, steps: Iterable[Step]) -> Context:
    """Execute pipeline steps in order and record timing metrics."""
    metrics: Dict[str, float] = {}

    for step in steps:
        step_name = getattr(step, "name", step.__class__.__name__)
        t0 = time.perf_counter()

        try:
            ctx = step.run(ctx)
        except Exception as e:
            logger.error(f"Step {step_name} failed: {e}")
            raise

        if ctx is None:
            raise ValueError(f"Step {step_name} returned None")

        metrics[f"{step_name}.ms"] = round((time.perf_counter() - t0) * 1000.0, 2)

    if metrics:
        logger.debug("Pipeline execution metrics:")
        for key, value in metrics.items():
            logger.debug(f"  {key}: {value}ms")
        logger.debug(f"  Total execution time: {sum(metrics.values()):.2f}ms")

    return ctx
