"""
Copy imported values into the tenant's custom fields.

A tenant may define a custom field that mirrors a built-in one ("Visa
Status") or that only exists in their spreadsheets ("Security Clearance").
Names are compared after stripping case, whitespace and punctuation.
"""
import logging
import re
from typing import Any, Dict, Optional, Sequence

from talent_import.api.schemas.imports import ColumnMapping
from talent_import.domain.imports.field_catalog import FieldDefinition
from talent_import.domain.imports.store import CustomFieldDefinition

logger = logging.getLogger(__name__)

CUSTOM_DATA_KEY = "customData"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_field_name(value: str) -> str:
    return _NON_ALNUM.sub("", str(value).lower())


class CustomFieldEnricher:
    """Resolves which payload keys and skipped columns feed which custom field."""

    def __init__(
        self,
        custom_fields: Sequence[CustomFieldDefinition],
        fields: Sequence[FieldDefinition],
        mappings: Sequence[ColumnMapping],
    ):
        lookup: Dict[str, str] = {}
        for custom_field in custom_fields:
            for name in (custom_field.field_key, custom_field.field_name):
                normalized = normalize_field_name(name)
                if normalized:
                    lookup.setdefault(normalized, custom_field.field_key)

        # catalog key -> custom field key
        self.model_fields: Dict[str, str] = {}
        for field in fields:
            for name in (field.key, field.label):
                custom_key = lookup.get(normalize_field_name(name))
                if custom_key:
                    self.model_fields.setdefault(field.key, custom_key)
                    break

        # skipped source column -> custom field key
        self.skipped_columns: Dict[str, str] = {}
        for mapping in mappings:
            if mapping.is_active:
                continue
            custom_key = lookup.get(normalize_field_name(mapping.source_column))
            if custom_key:
                self.skipped_columns[mapping.source_column] = custom_key

        if self.model_fields or self.skipped_columns:
            logger.info(
                "Custom field matches: %d model field(s), %d unmapped column(s)",
                len(self.model_fields),
                len(self.skipped_columns),
            )

    @property
    def active(self) -> bool:
        return bool(self.model_fields or self.skipped_columns)

    def enrich(self, payload: Dict[str, Any], raw_row: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Write matched values into ``payload["customData"]`` (in place) and return the payload."""
        if not self.active:
            return payload

        custom_data: Dict[str, Any] = dict(payload.get(CUSTOM_DATA_KEY) or {})
        for field_key, custom_key in self.model_fields.items():
            value = payload.get(field_key)
            if value is not None:
                custom_data[custom_key] = value.isoformat() if hasattr(value, "isoformat") else value

        for column, custom_key in self.skipped_columns.items():
            value = (raw_row or {}).get(column)
            if value is not None and str(value).strip():
                custom_data.setdefault(custom_key, str(value).strip())

        if custom_data:
            payload[CUSTOM_DATA_KEY] = custom_data
        return payload
