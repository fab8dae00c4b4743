"""
Bulk import endpoints: upload a spreadsheet, review proposed column mappings,
then run the import.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from talent_import.api.dependencies import get_import_service, get_tenant_context
from talent_import.api.schemas.imports import (
    AnalyzeMappingRequest,
    ColumnMapping,
    EntityKind,
    ExecuteImportRequest,
    FieldDefinitionResponse,
    ImportResult,
    ParsedFile,
)
from talent_import.domain.imports.errors import FileStructureError
from talent_import.domain.imports.field_catalog import fields_for
from talent_import.domain.imports.orchestrator import ImportService
from talent_import.domain.imports.row_transformer import TenantContext
from talent_import.domain.uploads.uploaded_files import UploadNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["imports"])


@router.post("/upload", response_model=ParsedFile)
async def upload_file(
    file: UploadFile = File(...),
    entity_type: EntityKind = Form(...),
    context: TenantContext = Depends(get_tenant_context),
    service: ImportService = Depends(get_import_service),
):
    """
    Upload a CSV or Excel file and detect its columns.

    Returns the stored file id, the detected columns, a few sample rows and
    the data row count. Pass the file id to ``/import/execute`` once the
    mappings have been reviewed.
    """
    file_content = await file.read()
    try:
        parsed = service.parse_upload(file_content, file.filename or "")
    except FileStructureError as e:
        logger.warning("Rejected %s upload %s: %s", e.file_type or "unknown", file.filename, e.message)
        raise HTTPException(status_code=400, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        "Tenant %s uploaded %s for %s import (%d rows)",
        context.tenant_id,
        file.filename,
        entity_type.value,
        parsed.total_rows,
    )
    return parsed


@router.post("/analyze", response_model=List[ColumnMapping])
def analyze_mappings(
    request: AnalyzeMappingRequest,
    service: ImportService = Depends(get_import_service),
):
    """Propose a target field for every column. Never fails on mapping problems."""
    return service.analyze_mappings(request.entity_type, request.columns, request.sample_rows)


@router.post("/execute", response_model=ImportResult)
def execute_import(
    request: ExecuteImportRequest,
    context: TenantContext = Depends(get_tenant_context),
    service: ImportService = Depends(get_import_service),
):
    try:
        return service.execute_import(context, request.file_id, request.entity_type, request.mappings)
    except UploadNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FileStructureError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/fields/{entity_type}", response_model=List[FieldDefinitionResponse])
async def list_fields(entity_type: EntityKind):
    """Field catalog for an entity kind, in display order."""
    return [
        FieldDefinitionResponse(
            key=field.key,
            label=field.label,
            value_type=field.value_type,
            required=field.required,
            enum_values=list(field.enum_values) if field.enum_values else None,
            virtual=field.virtual,
        )
        for field in fields_for(entity_type)
    ]
