"""
Shared dependencies for API endpoints.
"""
from functools import lru_cache

from fastapi import Header, HTTPException

from talent_import.core.config import settings
from talent_import.db.session import get_session_local
from talent_import.domain.imports.llm_client import build_text_generator
from talent_import.domain.imports.mapping_engine import MappingEngine
from talent_import.domain.imports.orchestrator import ImportService
from talent_import.domain.imports.row_transformer import TenantContext
from talent_import.domain.imports.store import SqlAlchemyEntityStore


@lru_cache(maxsize=1)
def get_import_service() -> ImportService:
    store = SqlAlchemyEntityStore(get_session_local())
    return ImportService(store, mapping_engine=MappingEngine(build_text_generator(settings)))


def get_tenant_context(
    x_tenant_id: str = Header(None),
    x_user_id: str = Header(None),
) -> TenantContext:
    if not x_tenant_id or not x_user_id:
        raise HTTPException(status_code=401, detail="X-Tenant-Id and X-User-Id headers are required")
    return TenantContext(tenant_id=x_tenant_id, user_id=x_user_id)
