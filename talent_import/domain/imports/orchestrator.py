"""
Import workflow: upload -> analyze -> execute.

``ImportService`` ties the pipeline stages together for one deployment. The
API router and the console script are thin wrappers around it.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from talent_import.api.schemas.imports import ColumnMapping, EntityKind, ImportResult, ParsedFile
from talent_import.core.config import settings
from talent_import.domain.imports.batch_executor import BatchExecutor
from talent_import.domain.imports.field_catalog import fields_for, resolve_entity_kind
from talent_import.domain.imports.header_locator import locate_header_row
from talent_import.domain.imports.mapping_engine import MappingEngine, freeze_mappings
from talent_import.domain.imports.processors.tabular_reader import (
    columns_from,
    detect_file_type,
    read_workbook,
    rows_from,
)
from talent_import.domain.imports.row_transformer import TenantContext
from talent_import.domain.imports.store import EntityStore
from talent_import.domain.uploads.uploaded_files import UploadStore

logger = logging.getLogger(__name__)


def parse_file_content(file_content: bytes, filename: str):
    """
    Read a file and split it at the detected header row.

    Returns:
        Tuple of (columns, rows, header_row_index, header_detected)
    """
    sheet = read_workbook(file_content, detect_file_type(filename))
    header_row_index, header_detected = locate_header_row(sheet)
    columns = columns_from(sheet, header_row_index)
    rows = rows_from(sheet, header_row_index)
    return columns, rows, header_row_index, header_detected


class ImportService:
    def __init__(
        self,
        store: EntityStore,
        uploads: Optional[UploadStore] = None,
        mapping_engine: Optional[MappingEngine] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.uploads = uploads or UploadStore()
        self.mapping_engine = mapping_engine or MappingEngine()
        self.batch_size = batch_size

    def parse_upload(self, file_content: bytes, filename: str) -> ParsedFile:
        """
        Store an upload and describe its structure.

        Type and size are checked before anything is read. The file is then
        parsed before it is stored, so an unreadable upload never leaves
        anything behind.

        Raises:
            FileStructureError: If the file type is unsupported or the content unreadable
            ValueError: If the file exceeds the size limit
        """
        self.uploads.validate(file_content, filename)
        columns, rows, header_row_index, header_detected = parse_file_content(file_content, filename)
        file_id = self.uploads.save(file_content, filename)

        logger.info(
            "Parsed %s: %d columns, %d data rows, header at row %d",
            filename,
            len(columns),
            len(rows),
            header_row_index,
        )
        return ParsedFile(
            file_id=file_id,
            columns=columns,
            sample_rows=rows[:settings.sample_row_limit],
            total_rows=len(rows),
            header_row_index=header_row_index,
            header_detected=header_detected,
        )

    def analyze_mappings(
        self,
        entity_kind: Union[str, EntityKind],
        columns: Sequence[str],
        sample_rows: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[ColumnMapping]:
        return self.mapping_engine.propose_mappings(entity_kind, columns, sample_rows)

    def execute_import(
        self,
        context: TenantContext,
        file_id: str,
        entity_kind: Union[str, EntityKind],
        mappings: Sequence[Union[ColumnMapping, Dict[str, Any]]],
    ) -> ImportResult:
        """
        Run confirmed mappings over every data row of a stored upload.

        Mappings are validated first; a rejected mapping set keeps the upload so
        it can be corrected and resubmitted. Once the import starts, the upload
        is released afterwards whether or not it succeeded.

        Raises:
            ValueError: If the file id or the mappings are invalid
            UploadNotFoundError: If the upload no longer exists
        """
        entity_kind = resolve_entity_kind(entity_kind)
        self.uploads.path_for(file_id)  # invalid ids fail here, before release
        frozen = freeze_mappings(entity_kind, mappings)

        try:
            file_content = self.uploads.load(file_id)
            _, rows, _, _ = parse_file_content(file_content, file_id)
            logger.info(
                "Importing %d %s rows from %s for tenant %s", len(rows), entity_kind.value, file_id, context.tenant_id
            )
            executor = BatchExecutor(self.store, batch_size=self.batch_size)
            return executor.execute(rows, frozen, fields_for(entity_kind), entity_kind, context)
        finally:
            self.uploads.release(file_id)
