"""
HTTP API over the retrieval core.

The caller is identified by the X-User-Id / X-User-Role headers, which the
host application sets from its own session handling.
"""

from fastapi import FastAPI, HTTPException, Depends, Header, BackgroundTasks
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional

from .schemas import (
    HealthResponse,
    EntityTypeListResponse,
    EntityTypeResponse,
    FieldInfo,
    QueryRequest,
    QueryResponse,
    SearchRequest,
    SearchResponse,
    SearchMatchModel,
    RebuildRequest,
    RebuildResponse,
)
from ..assistant.format import format_entity_types_list
from ..core import config
from ..core.config import VERSION, debug_enabled, get_embedding_provider
from ..core.dao import EmbeddingDAO
from ..core.db import health_check
from ..core.privacy import get_access_constraints
from ..core.query import QueryEngine, QueryParams
from ..core.records import SQLiteRecordStore
from ..core.registry import SchemaRegistry, default_registry
from ..core.schema import Principal
from ..vector.content import get_supported_entity_types, is_entity_type_supported
from ..vector.embeddings import IEmbeddingProvider
from ..vector.indexer import Indexer
from ..vector.search import SearchEngine, format_search_results
from ..util.logging import logger, audit_event


class Services:
    """Wires the record store, embedding store and engines over one database."""

    def __init__(self, db_path: Optional[str] = None, embedding_provider: IEmbeddingProvider = None,
                 registry: SchemaRegistry = None, index_delay_sec: float = config.INDEX_DELAY_SEC):
        self.db_path = db_path or config.DB_PATH
        self.registry = registry or default_registry
        self.embedding_provider = embedding_provider or get_embedding_provider()
        self.record_source = SQLiteRecordStore(self.db_path, self.registry)
        self.embedding_store = EmbeddingDAO(self.db_path)
        self.query_engine = QueryEngine(self.record_source, self.registry)
        self.search_engine = SearchEngine(self.embedding_provider, self.embedding_store,
                                          self.record_source, self.registry)
        self.indexer = Indexer(self.embedding_provider, self.embedding_store, self.record_source,
                               delay_sec=index_delay_sec)


_services: Optional[Services] = None


def get_services() -> Services:
    """Process-wide services, created on first use."""
    global _services
    if _services is None:
        _services = Services()
    return _services


def get_principal(x_user_id: Optional[str] = Header(None), x_user_role: Optional[str] = Header(None)) -> Principal:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return Principal(id=x_user_id, role=x_user_role or "student")


# Initialize the FastAPI application
app = FastAPI(
    title="Actify Retrieval API",
    version=VERSION,
    description="Privacy-aware query and semantic search over Actify records",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(services: Services = Depends(get_services)):
    """Check system health."""
    db_health = health_check(services.db_path)
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        embedding_count=services.embedding_store.count(),
        embedding_model=services.embedding_provider.model_id,
    )


@app.get("/entity-types", response_model=EntityTypeListResponse)
def list_entity_types_endpoint(principal: Principal = Depends(get_principal),
                               services: Services = Depends(get_services)):
    """Entity types the caller may read."""
    names = [
        name for name in services.registry.list_entity_types()
        if get_access_constraints(principal, name).allowed
    ]
    return EntityTypeListResponse(entity_types=names, formatted=format_entity_types_list(names))


@app.get("/entity-types/{name}", response_model=EntityTypeResponse)
def describe_entity_type_endpoint(name: str, principal: Principal = Depends(get_principal),
                                  services: Services = Depends(get_services)):
    description = services.registry.describe_entity_type(name)
    if not description:
        raise HTTPException(status_code=404, detail=f"Entity type '{name}' not found")

    constraints = get_access_constraints(principal, name)
    if not constraints.allowed:
        raise HTTPException(status_code=403, detail=constraints.error_message or "Access denied")

    return EntityTypeResponse(
        name=description.name,
        description=description.description,
        fields=[FieldInfo(**f.__dict__) for f in description.fields],
        relations=description.relations,
    )


@app.post("/query", response_model=QueryResponse)
def query_endpoint(request: QueryRequest, principal: Principal = Depends(get_principal),
                   services: Services = Depends(get_services)):
    """Structured query. Denials and bad filters come back as success=false, not HTTP errors."""
    params = QueryParams(
        entity_type=request.entity_type,
        filter=request.filter,
        fields=request.fields,
        limit=request.limit,
        order_by=request.order_by,
    )
    result = services.query_engine.query(params, principal)
    return QueryResponse(**result.to_dict())


@app.post("/search", response_model=SearchResponse)
def search_endpoint(request: SearchRequest, principal: Principal = Depends(get_principal),
                    services: Services = Depends(get_services)):
    top_k = min(request.top_k, config.SEARCH_MAX_TOP_K)
    result = services.search_engine.search(request.query, principal, entity_types=request.entity_types, top_k=top_k)
    return SearchResponse(
        matches=[SearchMatchModel(**m.to_dict()) for m in result.matches],
        total_candidates=result.total_candidates,
        formatted=format_search_results(result.matches),
    )


@app.post("/admin/rebuild-embeddings", response_model=RebuildResponse, status_code=202)
def rebuild_embeddings_endpoint(background_tasks: BackgroundTasks, request: Optional[RebuildRequest] = None,
                                principal: Principal = Depends(get_principal),
                                services: Services = Depends(get_services)):
    """Re-index one entity type, or every supported type, in the background."""
    if not principal.is_elevated:
        raise HTTPException(status_code=403, detail="Admin access required")

    entity_type = request.entity_type if request else None
    if entity_type and not is_entity_type_supported(entity_type):
        raise HTTPException(status_code=400, detail=f"Entity type '{entity_type}' is not supported for embeddings")

    entity_types: List[str] = [entity_type] if entity_type else get_supported_entity_types()

    audit_event(
        event_type="embeddings.rebuild_requested",
        identifiers={"principal_id": principal.id},
        payload={"entity_types": entity_types},
    )
    background_tasks.add_task(_rebuild, services.indexer, entity_types)
    return RebuildResponse(status="started", entity_types=entity_types)


def _rebuild(indexer: Indexer, entity_types: List[str]):
    results = indexer.index_all(entity_types)
    for name, summary in results.items():
        logger.log_index_operation("rebuild", name, details={
            "indexed": summary.total_indexed, "failed": summary.total_failed
        })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
