"""
Load manual segment assignments from a JSON object.

Example format:

{
  "r1": "apostles",
  "r7": "hostages"
}
"""

from apostles.core.assignments import ManualAssignmentStore
from apostles.core.loaders.base_loader import BaseLoader
from apostles.core.models import QuadrantType


class OverridesLoadError(Exception):
    """Raised when override loading fails."""
    pass


class OverridesLoader(BaseLoader):

    @property
    def _error_class(self):
        return OverridesLoadError

    def load(self) -> ManualAssignmentStore:
        """Load overrides directly into a ManualAssignmentStore."""
        return super().load()

    def _load_from_file(self, file_handle) -> ManualAssignmentStore:
        data = self._load_json(file_handle, expect_list=False)

        overrides = {}
        for respondent_id, label in data.items():
            try:
                overrides[str(respondent_id)] = QuadrantType(label)
            except ValueError as e:
                raise OverridesLoadError(
                    f"Unknown segment '{label}' for respondent {respondent_id}"
                ) from e

        return ManualAssignmentStore(overrides)
