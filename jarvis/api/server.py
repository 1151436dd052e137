"""
Jarvis API Server
=================

Polling gateway over the ontology store and the chat message log.
Pure translation layer: validates presence of required fields, maps
domain errors to status codes, otherwise stateless.

Endpoints:
- GET    /ontology                  -> Full current view
- POST   /ontology/entity           -> Create entity
- GET    /ontology/entity/{id}      -> Read entity
- PUT    /ontology/entity/{id}      -> Merge properties
- DELETE /ontology/entity/{id}      -> Tombstone entity
- POST   /ontology/relation         -> Append relation
- GET    /ontology/related/{id}     -> Relations touching an entity
- POST   /ontology/query            -> Filter live entities
- GET    /messages, /messages/poll  -> Messages after a cursor
- POST   /messages                  -> Append message
- GET    /health                    -> Liveness

All error bodies are {"error": string}.

Usage:
    uvicorn jarvis.api.server:app --port 3002
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import AppConfig
from ..contracts.base import (
    ConflictError, JarvisError, NotFoundError, StorageIOError, ValidationError,
    utc_now_iso
)
from ..engine import JarvisBackend
from ..observability import setup_logging


logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageIOError, 500),
)


# =============================================================================
# REQUEST BODIES
# =============================================================================

class EntityCreateRequest(BaseModel):
    type: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None


class EntityUpdateRequest(BaseModel):
    properties: Optional[Dict[str, Any]] = None
    expected_updated: Optional[str] = None


class RelationCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: Optional[str] = Field(default=None, alias="from")
    rel: Optional[str] = None
    target: Optional[str] = Field(default=None, alias="to")
    properties: Optional[Dict[str, Any]] = None


class QueryRequest(BaseModel):
    type: Optional[str] = None
    where: Optional[Dict[str, Any]] = None


class MessageCreateRequest(BaseModel):
    message: Optional[str] = None
    sender: Optional[str] = None


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    config: Optional[AppConfig] = None,
    backend: Optional[JarvisBackend] = None
) -> FastAPI:
    """
    Build the gateway.

    The backend is created in the lifespan handler from ``config`` (or the
    environment) unless one is injected.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open storage and seed defaults on startup; close on shutdown."""
        app_config = config or AppConfig.from_env()
        setup_logging(app_config.log_level)

        instance = backend
        if instance is None:
            logger.info("Initializing backend (%s storage)", app_config.storage.backend_type)
            instance = JarvisBackend(app_config.storage)
        if app_config.seed_defaults:
            instance.seed()

        app.state.backend = instance
        yield

        logger.info("Shutting down backend")
        instance.close()
        app.state.backend = None

    app = FastAPI(
        title="Jarvis API",
        version="0.1.0",
        description="Ontology event log and polling chat gateway",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    _register_ontology_routes(app)
    _register_chat_routes(app)

    @app.get("/health")
    def health_check():
        """System status."""
        return {"status": "ok", "timestamp": utc_now_iso()}

    return app


def _backend(request: Request) -> JarvisBackend:
    return request.app.state.backend


# =============================================================================
# ERROR MAPPING
# =============================================================================

def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(JarvisError)
    async def handle_domain_error(request: Request, exc: JarvisError):
        status = 500
        for error_type, code in STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                status = code
                break
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
        return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "invalid request"})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


# =============================================================================
# ONTOLOGY ROUTES
# =============================================================================

def _register_ontology_routes(app: FastAPI) -> None:

    @app.get("/ontology")
    def get_ontology(request: Request):
        return _backend(request).ontology.list_all()

    @app.post("/ontology/entity", status_code=201)
    def create_entity(body: EntityCreateRequest, request: Request):
        entity = _backend(request).ontology.create_entity(body.type, body.properties)
        return entity.to_dict()

    @app.get("/ontology/entity/{entity_id}")
    def get_entity(entity_id: str, request: Request):
        return _backend(request).ontology.get_entity(entity_id).to_dict()

    @app.put("/ontology/entity/{entity_id}")
    def update_entity(entity_id: str, body: EntityUpdateRequest, request: Request):
        entity = _backend(request).ontology.update_entity(
            entity_id, body.properties, expected_updated=body.expected_updated
        )
        return entity.to_dict()

    @app.delete("/ontology/entity/{entity_id}")
    def delete_entity(entity_id: str, request: Request):
        _backend(request).ontology.delete_entity(entity_id)
        return {"success": True}

    @app.post("/ontology/relation", status_code=201)
    def create_relation(body: RelationCreateRequest, request: Request):
        relation = _backend(request).ontology.create_relation(
            body.source, body.rel, body.target, body.properties
        )
        return relation.to_dict()

    @app.get("/ontology/related/{entity_id}")
    def get_related(entity_id: str, request: Request, rel: Optional[str] = None) -> List[Dict[str, Any]]:
        relations = _backend(request).ontology.get_related(entity_id, rel)
        return [r.to_dict() for r in relations]

    @app.post("/ontology/query")
    def query_entities(request: Request, body: Optional[QueryRequest] = None) -> List[Dict[str, Any]]:
        body = body or QueryRequest()
        entities = _backend(request).ontology.query(body.type, body.where)
        return [e.to_dict() for e in entities]


# =============================================================================
# CHAT ROUTES
# =============================================================================

def _poll(request: Request, last: int) -> Dict[str, Any]:
    result = _backend(request).messages.read_since(last)
    return {
        "messages": [m.to_dict() for m in result["messages"]],
        "serverTime": result["serverTime"],
    }


def _register_chat_routes(app: FastAPI) -> None:

    @app.get("/messages")
    def get_messages(request: Request, last: int = 0):
        return _poll(request, last)

    @app.post("/messages", status_code=201)
    def post_message(body: MessageCreateRequest, request: Request):
        message = _backend(request).messages.append(body.message, body.sender)
        return message.to_dict()

    @app.get("/messages/poll")
    def poll_messages(request: Request, last: int = 0):
        return _poll(request, last)


app = create_app()
