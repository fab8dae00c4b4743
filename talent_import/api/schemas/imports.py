import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


SKIP_TARGET = "SKIP"


class EntityKind(str, Enum):
    """Record types a spreadsheet can be imported into"""
    CANDIDATE = "candidate"
    JOB = "job"
    CLIENT = "client"


class ColumnMapping(BaseModel):
    """Assignment of one source column to a target field (or SKIP)."""
    source_column: str
    target_field: str = SKIP_TARGET
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        if math.isnan(number):
            return 0.0
        return max(0.0, min(1.0, number))

    @property
    def is_active(self) -> bool:
        return self.target_field != SKIP_TARGET


class ParsedFile(BaseModel):
    """Structure of an uploaded file as seen after header detection."""
    file_id: str
    columns: List[str]
    sample_rows: List[Dict[str, str]] = Field(default_factory=list)
    total_rows: int = 0
    header_row_index: int = 0
    header_detected: bool = True


class ImportRowError(BaseModel):
    row: int  # 1-based, relative to the data rows of the file
    message: str


class ImportResult(BaseModel):
    created: int = 0
    skipped: int = 0
    errors: List[ImportRowError] = Field(default_factory=list)

    def record_created(self, count: int = 1) -> None:
        self.created += count

    def record_skipped(self, row: int, message: str) -> None:
        self.skipped += 1
        self.errors.append(ImportRowError(row=row, message=message))

    def merge(self, other: "ImportResult") -> None:
        self.created += other.created
        self.skipped += other.skipped
        self.errors.extend(other.errors)


class FieldDefinitionResponse(BaseModel):
    key: str
    label: str
    value_type: str
    required: bool = False
    enum_values: Optional[List[str]] = None
    virtual: bool = False


class AnalyzeMappingRequest(BaseModel):
    entity_type: EntityKind
    columns: List[str]
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list)


class ExecuteImportRequest(BaseModel):
    file_id: str
    entity_type: EntityKind
    mappings: List[ColumnMapping]
