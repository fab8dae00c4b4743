"""
Entity store used by the import pipeline.

The pipeline only needs four capabilities: atomic multi-row creation, single
row creation, a case-insensitive client lookup and the tenant's custom field
definitions. ``SqlAlchemyEntityStore`` provides them on top of the models in
``talent_import.db.models``.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

from sqlalchemy import Integer, func, select
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from talent_import.api.schemas.imports import EntityKind
from talent_import.db.models import ENTITY_MODELS, Client, CustomField
from talent_import.domain.imports.errors import EntityCreationError

logger = logging.getLogger(__name__)

_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique violation", "uniqueviolation")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class CustomFieldDefinition:
    field_key: str
    field_name: str


class EntityStore(Protocol):
    def create_many(self, entity_kind: EntityKind, payloads: Sequence[Dict[str, Any]]) -> int:
        """Create all payloads in one transaction or none of them."""
        ...

    def create_one(self, entity_kind: EntityKind, payload: Dict[str, Any]) -> Any:
        ...

    def find_client_id(self, tenant_id: str, name: str) -> Optional[str]:
        ...

    def custom_fields(self, tenant_id: str, entity_kind: EntityKind) -> List[CustomFieldDefinition]:
        ...


def payload_key_to_column(key: str) -> str:
    """``currentEmployer`` -> ``current_employer``"""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def translate_store_error(exc: Exception) -> EntityCreationError:
    """Wrap a SQLAlchemy error so callers can tell unique violations apart."""
    detail = str(getattr(exc, "orig", None) or exc).strip().splitlines()[0]
    if isinstance(exc, IntegrityError):
        if any(marker in detail.lower() for marker in _UNIQUE_MARKERS):
            return EntityCreationError(f"Unique constraint failed: {detail}", kind=EntityCreationError.UNIQUE_VIOLATION)
        return EntityCreationError(f"Integrity error: {detail}", kind=EntityCreationError.INTEGRITY)
    if isinstance(exc, DataError):
        return EntityCreationError(f"Invalid value: {detail}", kind=EntityCreationError.DATA)
    return EntityCreationError(detail, kind=EntityCreationError.INTEGRITY)


class SqlAlchemyEntityStore:
    """EntityStore backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _build(self, entity_kind: Union[str, EntityKind], payload: Dict[str, Any]):
        model = ENTITY_MODELS[EntityKind(entity_kind).value]
        columns = model.__table__.columns.keys()
        values = {}
        for key, value in payload.items():
            column = payload_key_to_column(key)
            if column not in columns:
                raise EntityCreationError(f"Unknown field '{key}' for {model.__tablename__}", kind=EntityCreationError.DATA)
            if isinstance(value, float) and isinstance(model.__table__.columns[column].type, Integer):
                value = int(value)
            values[column] = value
        return model(**values)

    def create_many(self, entity_kind: EntityKind, payloads: Sequence[Dict[str, Any]]) -> int:
        entities = [self._build(entity_kind, payload) for payload in payloads]
        with self._session_factory() as session:
            try:
                session.add_all(entities)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_store_error(e) from e
        return len(entities)

    def create_one(self, entity_kind: EntityKind, payload: Dict[str, Any]) -> str:
        entity = self._build(entity_kind, payload)
        with self._session_factory() as session:
            try:
                session.add(entity)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_store_error(e) from e
            return entity.id

    def find_client_id(self, tenant_id: str, name: str) -> Optional[str]:
        with self._session_factory() as session:
            stmt = (
                select(Client.id)
                .where(Client.tenant_id == tenant_id)
                .where(func.lower(Client.name) == name.strip().lower())
                .limit(1)
            )
            return session.execute(stmt).scalar_one_or_none()

    def custom_fields(self, tenant_id: str, entity_kind: EntityKind) -> List[CustomFieldDefinition]:
        with self._session_factory() as session:
            stmt = (
                select(CustomField.field_key, CustomField.field_name)
                .where(CustomField.tenant_id == tenant_id)
                .where(CustomField.entity_type == EntityKind(entity_kind).value)
                .order_by(CustomField.display_order)
            )
            return [CustomFieldDefinition(field_key=key, field_name=name) for key, name in session.execute(stmt)]
