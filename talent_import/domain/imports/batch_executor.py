"""
Run confirmed mappings over every row of a file.

Rows are processed in fixed-size batches. Each batch is created in one
transaction; if that fails, the batch is replayed row by row so a single bad
row never discards its neighbours. Row numbers in errors are 1-based over the
data rows of the whole file.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from talent_import.api.schemas.imports import ColumnMapping, EntityKind, ImportResult
from talent_import.core.config import settings
from talent_import.domain.imports.custom_fields import CustomFieldEnricher
from talent_import.domain.imports.errors import EntityCreationError
from talent_import.domain.imports.field_catalog import FieldDefinition, resolve_entity_kind
from talent_import.domain.imports.row_transformer import RowTransformer, TenantContext
from talent_import.domain.imports.store import CustomFieldDefinition, EntityStore

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    """Result of one batch; ``result`` only counts rows of this batch."""
    batch_number: int
    first_row: int
    row_count: int
    used_fallback: bool = False
    result: ImportResult = field(default_factory=ImportResult)


def _error_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or exc.__class__.__name__


class BatchExecutor:
    def __init__(self, store: EntityStore, batch_size: Optional[int] = None):
        self.store = store
        self.batch_size = batch_size or settings.import_batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    def iter_batches(
        self,
        rows: Sequence[Dict[str, Any]],
        mappings: Sequence[ColumnMapping],
        fields: Sequence[FieldDefinition],
        entity_kind: Union[str, EntityKind],
        context: TenantContext,
    ) -> Iterator[BatchOutcome]:
        """
        Yield one outcome per batch.

        Batches run only as the caller iterates, so stopping iteration stops
        the import. Rows already created stay created.
        """
        entity_kind = resolve_entity_kind(entity_kind)
        transformer = RowTransformer(self.store)
        enricher = CustomFieldEnricher(self._load_custom_fields(context, entity_kind), fields, mappings)

        for batch_start in range(0, len(rows), self.batch_size):
            batch = rows[batch_start:batch_start + self.batch_size]
            outcome = BatchOutcome(
                batch_number=batch_start // self.batch_size + 1,
                first_row=batch_start + 1,
                row_count=len(batch),
            )
            prepared: List[Tuple[int, Dict[str, Any]]] = []

            for offset, raw_row in enumerate(batch):
                row_number = batch_start + offset + 1
                try:
                    payload = transformer.transform(raw_row, mappings, fields, entity_kind, context)
                    prepared.append((row_number, enricher.enrich(payload, raw_row)))
                except Exception as e:
                    outcome.result.record_skipped(row_number, _error_message(e))
                    logger.warning(f"Row {row_number} transform error: {_error_message(e)}")

            if prepared:
                self._create_batch(entity_kind, prepared, outcome)

            yield outcome

    def _load_custom_fields(self, context: TenantContext, entity_kind: EntityKind) -> List[CustomFieldDefinition]:
        try:
            return list(self.store.custom_fields(context.tenant_id, entity_kind))
        except Exception as e:
            logger.warning(f"Could not load custom fields for tenant {context.tenant_id}; importing without them: {e}")
            return []

    def _create_batch(
        self,
        entity_kind: EntityKind,
        prepared: List[Tuple[int, Dict[str, Any]]],
        outcome: BatchOutcome,
    ) -> None:
        try:
            self.store.create_many(entity_kind, [payload for _, payload in prepared])
            outcome.result.record_created(len(prepared))
            return
        except Exception as e:
            logger.warning(
                f"Batch {outcome.batch_number} transaction failed, retrying {len(prepared)} rows individually: {e}"
            )

        outcome.used_fallback = True
        for row_number, payload in prepared:
            try:
                self.store.create_one(entity_kind, payload)
                outcome.result.record_created()
            except Exception as individual_error:
                outcome.result.record_skipped(row_number, _error_message(individual_error))
                if isinstance(individual_error, EntityCreationError) and individual_error.is_unique_violation:
                    logger.info(f"Row {row_number} skipped as duplicate: {_error_message(individual_error)}")
                else:
                    logger.warning(f"Row {row_number} insert error: {_error_message(individual_error)}")

    def execute(
        self,
        rows: Sequence[Dict[str, Any]],
        mappings: Sequence[ColumnMapping],
        fields: Sequence[FieldDefinition],
        entity_kind: Union[str, EntityKind],
        context: TenantContext,
    ) -> ImportResult:
        """Process every batch and return the accumulated result."""
        started = time.perf_counter()
        result = ImportResult()
        for outcome in self.iter_batches(rows, mappings, fields, entity_kind, context):
            result.merge(outcome.result)

        logger.info(
            "Import complete: %d created, %d skipped, %d errors in %.2fs",
            result.created,
            result.skipped,
            len(result.errors),
            time.perf_counter() - started,
        )
        return result
