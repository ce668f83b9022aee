"""
Abstract base class for all pipeline steps.

Every pipeline step inherits from this class and implements `run`, which
receives the pipeline context and returns it after the step's logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from .context import Context


class Step(ABC):
    """Base class for all pipeline steps.

    Attributes:
        name: Human-readable name for logs and metrics
    """

    name: ClassVar[str] = "step"

    @abstractmethod
    def run(self, ctx: Context) -> Context:
        """Execute the step's logic.

        Args:
            ctx: Pipeline context containing respondents, tables and state

        Returns:
            Updated context after step execution
        """
        ...
