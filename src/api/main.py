"""
FastAPI backend: JSON-LD REST API over the person catalog.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase

from api.auth import require_writer
from api.schemas import (
    ASSOCIATION_BODIES,
    LOOKUP_BODIES,
    PersonBody,
    PersonUpdateBody,
    to_fields,
)
from api.views import (
    PERSON_COLLECTION,
    association_read_view,
    collection_view,
    lookup_read_view,
    parse_iri,
    person_read_view,
)
from prosopo.application import CatalogService, InUse, Invalid, NotFound
from prosopo.application.catalog_service import DEFAULT_PAGE_SIZE
from prosopo.domain import ASSOCIATION_TYPES, LOOKUP_TYPES, Association
from prosopo.infrastructure import (
    InMemoryCatalogRepository,
    Neo4jCatalogRepository,
    apply_seed,
    ensure_catalog_constraints,
    get_seed_path,
    load_seed,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

JSONLD_MEDIA_TYPE = "application/ld+json"
BACKEND_NEO4J = "neo4j"
BACKEND_MEMORY = "memory"


def _get_driver():
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    return GraphDatabase.driver(uri, auth=(user, password))


def _storage_backend() -> str:
    return os.environ.get("STORAGE_BACKEND", BACKEND_NEO4J).strip().lower()


def _page_size() -> int:
    raw = os.environ.get("PAGE_SIZE", "").strip()
    return int(raw) if raw else DEFAULT_PAGE_SIZE


def _create_repository(app: FastAPI):
    backend = _storage_backend()
    if backend == BACKEND_MEMORY:
        return InMemoryCatalogRepository()
    if backend != BACKEND_NEO4J:
        raise RuntimeError(f"Unsupported STORAGE_BACKEND: {backend}")
    app.state.driver = _get_driver()
    ensure_catalog_constraints(app.state.driver)
    return Neo4jCatalogRepository(app.state.driver)


def _get_cached_repository(app: FastAPI):
    if getattr(app.state, "repository", None) is None:
        app.state.repository = _create_repository(app)
    return app.state.repository


def get_service(request: Request) -> CatalogService:
    app = request.app
    if getattr(app.state, "service", None) is None:
        app.state.service = CatalogService(
            _get_cached_repository(app), page_size=_page_size()
        )
    return app.state.service


def _seed_lookups(repository) -> None:
    path = get_seed_path()
    if not path.exists():
        logger.info("No lookup seed at %s", path)
        return
    apply_seed(repository, load_seed(path))


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        _seed_lookups(_get_cached_repository(app))
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()
            app.state.driver = None


app = FastAPI(title="Prosopo API", lifespan=lifespan)


def _ld(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, media_type=JSONLD_MEDIA_TYPE)


def _raise_for(result) -> None:
    if isinstance(result, Invalid):
        raise HTTPException(status_code=422, detail=result.reason)
    if isinstance(result, NotFound):
        detail = f"{result.kind} {result.id} not found" if result.id else f"No {result.kind} found"
        raise HTTPException(status_code=404, detail=detail)
    if isinstance(result, InUse):
        raise HTTPException(
            status_code=409,
            detail=f"{result.kind} {result.id} is referenced by {len(result.referenced_by)} row(s)",
        )


def _fields_or_422(body, refs, *, with_person: bool) -> dict:
    try:
        return to_fields(body, refs, with_person=with_person)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


def _row_view(service: CatalogService, row: Association) -> dict:
    lookups = {
        name: service.get_lookup(target, getattr(row, name))
        for name, (target, _) in row.refs.items()
        if getattr(row, name)
    }
    return association_read_view(row, lookups)


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: people ---


@app.post("/people", dependencies=[Depends(require_writer)])
def create_person(body: PersonBody, service: CatalogService = Depends(get_service)):
    result = service.create_person(body.name, body.romanized_name)
    _raise_for(result)
    return _ld(person_read_view(result), status_code=201)


@app.get("/people")
def list_people(
    q: str | None = None,
    order: str = "asc",
    page: int = 1,
    service: CatalogService = Depends(get_service),
):
    if order.lower() not in ("asc", "desc"):
        raise HTTPException(status_code=422, detail="order must be 'asc' or 'desc'")
    result = service.list_people(search=q, descending=order.lower() == "desc", page=page)
    members = [person_read_view(p) for p in result.items]
    return _ld(collection_view(PERSON_COLLECTION, "Person", members, result.total))


@app.get("/count")
def count_people(service: CatalogService = Depends(get_service)):
    return {"count": service.count_people()}


@app.get("/people/{person_id}")
def get_person(person_id: str, service: CatalogService = Depends(get_service)):
    person = service.get_person(person_id)
    if person is None:
        raise HTTPException(status_code=404, detail=f"people {person_id} not found")
    return _ld(person_read_view(person))


@app.put("/people/{person_id}", dependencies=[Depends(require_writer)])
def update_person(
    person_id: str,
    body: PersonUpdateBody,
    service: CatalogService = Depends(get_service),
):
    result = service.update_person(person_id, body.model_dump(exclude_unset=True))
    _raise_for(result)
    return _ld(person_read_view(result))


@app.delete("/people/{person_id}", dependencies=[Depends(require_writer)])
def delete_person(person_id: str, service: CatalogService = Depends(get_service)):
    _raise_for(service.delete_person(person_id))
    return Response(status_code=204)


@app.get("/people/{person_id}/main-picture")
def get_main_picture(person_id: str, service: CatalogService = Depends(get_service)):
    result = service.main_picture(person_id)
    _raise_for(result)
    return _ld(_row_view(service, result))


# --- REST: association rows ---


def _register_association_routes(kind: str, body_model: type) -> None:
    cls = ASSOCIATION_TYPES[kind]
    type_name = cls.__name__

    def create_row(body: body_model, service: CatalogService = Depends(get_service)):
        fields = _fields_or_422(body, cls.refs, with_person=True)
        result = service.create_association(kind, fields)
        _raise_for(result)
        return _ld(_row_view(service, result), status_code=201)

    def list_rows(person: str | None = None, service: CatalogService = Depends(get_service)):
        try:
            person_id = parse_iri(person, PERSON_COLLECTION) if person else None
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        rows = service.list_associations(kind, person_id=person_id)
        members = [_row_view(service, r) for r in rows]
        return _ld(collection_view(kind, type_name, members))

    def get_row(row_id: str, service: CatalogService = Depends(get_service)):
        row = service.get_association(kind, row_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"{kind} {row_id} not found")
        return _ld(_row_view(service, row))

    def update_row(
        row_id: str, body: body_model, service: CatalogService = Depends(get_service)
    ):
        fields = _fields_or_422(body, cls.refs, with_person=True)
        result = service.update_association(kind, row_id, fields)
        _raise_for(result)
        return _ld(_row_view(service, result))

    def delete_row(row_id: str, service: CatalogService = Depends(get_service)):
        _raise_for(service.delete_association(kind, row_id))
        return Response(status_code=204)

    writer = [Depends(require_writer)]
    app.add_api_route(f"/{kind}", create_row, methods=["POST"], name=f"create_{kind}", dependencies=writer)
    app.add_api_route(f"/{kind}", list_rows, methods=["GET"], name=f"list_{kind}")
    app.add_api_route(f"/{kind}/{{row_id}}", get_row, methods=["GET"], name=f"get_{kind}")
    app.add_api_route(f"/{kind}/{{row_id}}", update_row, methods=["PUT"], name=f"update_{kind}", dependencies=writer)
    app.add_api_route(f"/{kind}/{{row_id}}", delete_row, methods=["DELETE"], name=f"delete_{kind}", dependencies=writer)


for _kind, _body in ASSOCIATION_BODIES.items():
    _register_association_routes(_kind, _body)


# --- REST: lookups ---


def _register_lookup_routes(kind: str, body_model: type) -> None:
    cls = LOOKUP_TYPES[kind]
    type_name = cls.__name__

    def create_lookup(body: body_model, service: CatalogService = Depends(get_service)):
        fields = _fields_or_422(body, cls.refs, with_person=False)
        result = service.create_lookup(kind, fields)
        _raise_for(result)
        return _ld(lookup_read_view(result), status_code=201)

    def list_lookups(service: CatalogService = Depends(get_service)):
        members = [lookup_read_view(lk) for lk in service.list_lookups(kind)]
        return _ld(collection_view(kind, type_name, members))

    def get_lookup(lookup_id: str, service: CatalogService = Depends(get_service)):
        lookup = service.get_lookup(kind, lookup_id)
        if lookup is None:
            raise HTTPException(status_code=404, detail=f"{kind} {lookup_id} not found")
        return _ld(lookup_read_view(lookup))

    def delete_lookup(lookup_id: str, service: CatalogService = Depends(get_service)):
        _raise_for(service.delete_lookup(kind, lookup_id))
        return Response(status_code=204)

    writer = [Depends(require_writer)]
    app.add_api_route(f"/{kind}", create_lookup, methods=["POST"], name=f"create_{kind}", dependencies=writer)
    app.add_api_route(f"/{kind}", list_lookups, methods=["GET"], name=f"list_{kind}")
    app.add_api_route(f"/{kind}/{{lookup_id}}", get_lookup, methods=["GET"], name=f"get_{kind}")
    app.add_api_route(f"/{kind}/{{lookup_id}}", delete_lookup, methods=["DELETE"], name=f"delete_{kind}", dependencies=writer)


for _kind, _body in LOOKUP_BODIES.items():
    _register_lookup_routes(_kind, _body)
