"""
Turn one raw spreadsheet row into a typed creation payload.

A row either becomes a complete payload or fails with a ``RowTransformError``
naming what is missing or unresolvable. Failures never escape the row: the
batch executor records them and moves on.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from talent_import.api.schemas.imports import ColumnMapping, EntityKind
from talent_import.domain.imports.errors import RowTransformError
from talent_import.domain.imports.field_catalog import (
    ARRAY,
    CLIENT_NAME_FIELD,
    DATE,
    ENUM,
    FULL_NAME_FIELD,
    NUMBER,
    FieldDefinition,
    resolve_entity_kind,
)
from talent_import.domain.imports.store import EntityStore
from talent_import.domain.imports.synonyms import get_synonym_table
from talent_import.utils.date import parse_flexible_date

logger = logging.getLogger(__name__)

_NUMBER_PREFIX = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")
_CURRENCY_CHARS = "$€£¥₹ "
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: str


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def to_upper_snake(value: str) -> str:
    """``"On Hold"`` -> ``"ON_HOLD"``"""
    return _NON_ALNUM.sub("_", str(value).strip()).strip("_").upper()


def coerce_array(raw_value: str) -> List[str]:
    return [part.strip() for part in str(raw_value).split(",") if part.strip()]


def coerce_number(raw_value: str) -> Optional[float]:
    """Leading numeric value of a cell ("$85/hr" -> 85.0), None when there is none."""
    text = str(raw_value).strip().lstrip(_CURRENCY_CHARS).replace(",", "")
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return None
    number = float(match.group(0))
    if math.isinf(number) or math.isnan(number):
        return None
    return number


def coerce_enum(raw_value: str, field: FieldDefinition, entity_kind: EntityKind) -> Optional[str]:
    """
    Normalize an enum cell to one of the field's allowed values.

    Order: exact upper-snake match, match ignoring underscores, synonym table,
    then the table default or the first allowed value.
    """
    normalized = to_upper_snake(raw_value)
    allowed = field.enum_values
    if not allowed:
        return normalized or None
    if normalized in allowed:
        return normalized

    compact = normalized.replace("_", "")
    for value in allowed:
        if value.replace("_", "") == compact:
            return value

    table = get_synonym_table(entity_kind, field.key)
    if table is not None:
        synonym = table.lookup(raw_value)
        if synonym in allowed:
            return synonym
        if table.default in allowed:
            return table.default

    logger.debug("No %s value matches '%s'; using %s", field.key, raw_value, allowed[0])
    return allowed[0]


def coerce_value(raw_value: str, field: FieldDefinition, entity_kind: EntityKind) -> Any:
    """Convert a raw string to the field's value type; None means "leave unset"."""
    if field.value_type == ARRAY:
        return coerce_array(raw_value)
    if field.value_type == NUMBER:
        return coerce_number(raw_value)
    if field.value_type == DATE:
        return parse_flexible_date(raw_value, log_context=field.key)
    if field.value_type == ENUM:
        return coerce_enum(raw_value, field, entity_kind)
    return str(raw_value).strip()


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split on the first whitespace; a single token fills both parts."""
    parts = full_name.strip().split(None, 1)
    if len(parts) == 2:
        return parts[0], parts[1].strip()
    return parts[0], parts[0]


class RowTransformer:
    """
    Builds creation payloads for one import run.

    Client lookups are cached for the lifetime of the transformer, so a file
    with thousands of jobs for the same client resolves it once.
    """

    def __init__(self, store: EntityStore):
        self.store = store
        self._client_ids: Dict[Tuple[str, str], Optional[str]] = {}

    def _resolve_client_id(self, tenant_id: str, client_name: str) -> Optional[str]:
        cache_key = (tenant_id, client_name.lower())
        if cache_key not in self._client_ids:
            self._client_ids[cache_key] = self.store.find_client_id(tenant_id, client_name)
        return self._client_ids[cache_key]

    def transform(
        self,
        raw_row: Dict[str, Any],
        mappings: Sequence[ColumnMapping],
        fields: Sequence[FieldDefinition],
        entity_kind: Union[str, EntityKind],
        context: TenantContext,
    ) -> Dict[str, Any]:
        """
        Raises:
            RowTransformError: If a required field is missing or a reference cannot be resolved
        """
        entity_kind = resolve_entity_kind(entity_kind)
        field_map = {field.key: field for field in fields}
        data: Dict[str, Any] = {}
        full_name: Optional[str] = None
        client_name: Optional[str] = None

        for mapping in mappings:
            if not mapping.is_active:
                continue
            raw_value = raw_row.get(mapping.source_column)
            if _is_blank(raw_value):
                continue
            raw_value = str(raw_value).strip()
            target = mapping.target_field

            if target == FULL_NAME_FIELD:
                full_name = full_name or raw_value
                continue
            if entity_kind == EntityKind.JOB and target == CLIENT_NAME_FIELD:
                client_name = client_name or raw_value
                continue

            field = field_map.get(target)
            if field is None:
                logger.debug("Ignoring mapping to unknown field '%s'", target)
                continue

            value = coerce_value(raw_value, field, entity_kind)
            if not _is_blank(value):
                data[target] = value

        # Explicit first/last name columns win over the split full name
        if full_name:
            first, last = split_full_name(full_name)
            if _is_blank(data.get("firstName")):
                data["firstName"] = first
            if _is_blank(data.get("lastName")):
                data["lastName"] = last

        if entity_kind == EntityKind.JOB and client_name:
            client_id = self._resolve_client_id(context.tenant_id, client_name)
            if client_id is None:
                raise RowTransformError(f'Client not found: "{client_name}"')
            data["clientId"] = client_id

        missing = []
        for field in fields:
            if not field.required:
                continue
            if entity_kind == EntityKind.JOB and field.key == CLIENT_NAME_FIELD:
                if "clientId" not in data:
                    missing.append(field.label)
                continue
            if _is_blank(data.get(field.key)):
                missing.append(field.label)
        if missing:
            raise RowTransformError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

        data["tenantId"] = context.tenant_id
        data["createdById"] = context.user_id
        return data
