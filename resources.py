"""
CRUD routes shared by every collection.

A ResourceDescriptor names the URL segment, the Mongo collection and the
pydantic model for one resource; build_router() turns it into the five
routes:

    GET    /{name}        list every document
    GET    /{name}/{id}   one document
    POST   /{name}        create (201, Location header, {"id": ...})
    PUT    /{name}/{id}   full replace (204)
    DELETE /{name}/{id}   delete (204)

Write routes go through the authorization gate first, then the JSON
content-type check, then id parsing and body validation.
"""

from dataclasses import dataclass
from typing import Any, Dict, Type

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from auth import require_admin, require_write
from database import (
    create_document,
    delete_document,
    get_document,
    get_documents,
    replace_document,
    serialize_doc,
)
from errors import MalformedBody, NotFound, UnsupportedMediaType
from identifiers import parse_object_id
from schemas import Anime, Manga, User, WatchItem, to_document, validate_payload


@dataclass(frozen=True)
class ResourceDescriptor:
    name: str
    collection: str
    model: Type[BaseModel]
    tag: str
    admin_writes: bool = False


async def json_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise UnsupportedMediaType()
    try:
        return await request.json()
    except ValueError:
        raise MalformedBody()


ID_RESPONSES: Dict[int, Dict[str, str]] = {
    400: {"description": "Invalid id"},
    404: {"description": "Not found"},
}
WRITE_RESPONSES: Dict[int, Dict[str, str]] = {
    400: {"description": "Validation error"},
    401: {"description": "Missing or invalid bearer token"},
    403: {"description": "Insufficient scope"},
    415: {"description": "Unsupported Media Type"},
}


def build_router(resource: ResourceDescriptor) -> APIRouter:
    router = APIRouter(prefix=f"/{resource.name}", tags=[resource.tag])
    guard = require_admin if resource.admin_writes else require_write
    write_deps = [Depends(guard)]
    body_doc = {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": resource.model.model_json_schema()}},
        }
    }

    # "/{name}/" is served directly instead of redirecting to "/{name}"
    @router.get("", summary=f"Get all {resource.name}")
    @router.get("/", include_in_schema=False)
    def list_items():
        return [serialize_doc(doc) for doc in get_documents(resource.collection)]

    @router.get("/{item_id}", summary=f"Get {resource.name} by id", responses=ID_RESPONSES)
    def get_item(item_id: str):
        doc = get_document(resource.collection, parse_object_id(item_id))
        if not doc:
            raise NotFound()
        return serialize_doc(doc)

    @router.post(
        "",
        status_code=201,
        summary=f"Create {resource.name}",
        dependencies=write_deps,
        openapi_extra=body_doc,
        responses=WRITE_RESPONSES,
    )
    @router.post("/", status_code=201, dependencies=write_deps, include_in_schema=False)
    def create_item(response: Response, body: Any = Depends(json_body)):
        payload = validate_payload(resource.model, body)
        oid = create_document(resource.collection, to_document(payload))
        response.headers["Location"] = f"/{resource.name}/{oid}"
        return {"id": str(oid)}

    @router.put(
        "/{item_id}",
        status_code=204,
        response_class=Response,
        summary=f"Replace {resource.name}",
        dependencies=write_deps,
        openapi_extra=body_doc,
        responses={**WRITE_RESPONSES, **ID_RESPONSES, 400: {"description": "Validation/ID error"}},
    )
    def replace_item(item_id: str, body: Any = Depends(json_body)):
        oid = parse_object_id(item_id)
        payload = validate_payload(resource.model, body)
        if not replace_document(resource.collection, oid, to_document(payload)):
            raise NotFound()
        return Response(status_code=204)

    @router.delete(
        "/{item_id}",
        status_code=204,
        response_class=Response,
        summary=f"Delete {resource.name}",
        dependencies=write_deps,
        responses=ID_RESPONSES,
    )
    def delete_item(item_id: str):
        if not delete_document(resource.collection, parse_object_id(item_id)):
            raise NotFound()
        return Response(status_code=204)

    return router


RESOURCES = [
    ResourceDescriptor("anime", "anime", Anime, "Anime"),
    ResourceDescriptor("manga", "manga", Manga, "Manga"),
    ResourceDescriptor("users", "users", User, "Users"),
    ResourceDescriptor("watchlists", "watchlists", WatchItem, "Watchlists"),
]
