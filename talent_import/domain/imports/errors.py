"""
Exceptions raised by the import pipeline.

Only ``FileStructureError`` is fatal to an import. Row and store errors are
caught by the batch executor and turned into per-row error entries.
"""
from typing import List, Optional


class FileStructureError(ValueError):
    """Raised when an uploaded workbook cannot be read at all."""

    def __init__(self, message: str, file_type: Optional[str] = None):
        self.file_type = file_type
        self.message = message
        super().__init__(self.message)


class RowTransformError(ValueError):
    """Raised when a raw row cannot be turned into a creation payload."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        self.missing_fields = list(missing_fields or [])
        self.message = message
        super().__init__(self.message)


class EntityCreationError(Exception):
    """
    Raised by an entity store when a create fails.

    ``kind`` separates unique-constraint violations from other integrity and
    data errors so per-row fallbacks can report them precisely.
    """

    UNIQUE_VIOLATION = "unique_violation"
    INTEGRITY = "integrity"
    DATA = "data"

    def __init__(self, message: str, kind: str = INTEGRITY):
        self.kind = kind
        self.message = message
        super().__init__(self.message)

    @property
    def is_unique_violation(self) -> bool:
        return self.kind == self.UNIQUE_VIOLATION
