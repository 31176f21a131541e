"""
Database Schemas

Each Pydantic model describes the body accepted by POST/PUT on one
collection. Validated models are turned into plain documents with
to_document(); ids and timestamps are added by the database layer.

- Anime     -> "anime" collection
- Manga     -> "manga" collection
- User      -> "users" collection
- WatchItem -> "watchlists" collection

Numeric fields run in pydantic's lax mode for every collection, so "1998"
is accepted where 1998 is.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)
from typing_extensions import Annotated

from errors import ValidationFailed
from identifiers import OBJECT_ID_PATTERN

MIN_RELEASE_YEAR = 1960

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
ObjectIdStr = Annotated[str, StringConstraints(pattern=OBJECT_ID_PATTERN)]

_url_adapter = TypeAdapter(AnyUrl)


def current_year() -> int:
    return datetime.now(timezone.utc).year


def _check_release_year(value: int) -> int:
    latest = current_year() + 1
    if value > latest:
        raise ValueError(f"must be between {MIN_RELEASE_YEAR} and {latest}")
    return value


def _check_url(value: str) -> str:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid URL")
    # stored as submitted, AnyUrl would append a trailing slash
    return value


ReleaseYear = Annotated[int, Field(ge=MIN_RELEASE_YEAR), AfterValidator(_check_release_year)]
UrlStr = Annotated[str, AfterValidator(_check_url)]


class Anime(BaseModel):
    """
    Anime collection schema
    Collection name: "anime"
    """
    title: NonEmptyStr
    genres: List[NonEmptyStr] = Field(..., min_length=1)
    releaseYear: ReleaseYear
    rating: Optional[float] = Field(None, ge=0, le=10)
    episodes: Optional[int] = Field(None, ge=0)
    studio: Optional[TrimmedStr] = None
    status: Literal["finished", "airing", "upcoming"]
    description: Optional[TrimmedStr] = None
    coverImage: Optional[UrlStr] = None


class Manga(BaseModel):
    """
    Manga collection schema
    Collection name: "manga"
    """
    title: NonEmptyStr
    genres: List[NonEmptyStr] = Field(..., min_length=1)
    author: NonEmptyStr
    chapters: Optional[int] = Field(None, ge=0)
    status: Literal["ongoing", "finished", "hiatus"]
    releaseYear: Optional[ReleaseYear] = None
    rating: Optional[float] = Field(None, ge=0, le=10)
    description: Optional[TrimmedStr] = None
    coverImage: Optional[UrlStr] = None


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    email: EmailStr
    displayName: NonEmptyStr
    role: Literal["user", "admin"] = "user"


class WatchItem(BaseModel):
    """
    Watchlist entries. userId and refId are plain references: nothing checks
    that the user, anime or manga they point to exists.
    Collection name: "watchlists"
    """
    userId: ObjectIdStr = Field(..., description="Owner user id")
    kind: Literal["anime", "manga"]
    refId: ObjectIdStr = Field(..., description="Anime or manga id, depending on kind")
    status: Literal["planned", "watching", "completed", "reading"] = "planned"
    notes: Optional[str] = Field(None, max_length=500)


# -----------------------------
# Helpers
# -----------------------------

M = TypeVar("M", bound=BaseModel)


def _field_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]) or None, "message": err["msg"]}
        for err in exc.errors()
    ]


def validate_payload(model: Type[M], raw: Any) -> M:
    """Validate a request body, collecting every field error at once."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailed(_field_errors(exc))


def to_document(payload: BaseModel) -> Dict[str, Any]:
    return payload.model_dump(exclude_none=True)
