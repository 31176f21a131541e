import re

from bson import ObjectId

from errors import InvalidIdentifier

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
_OBJECT_ID_RE = re.compile(OBJECT_ID_PATTERN)


def is_object_id(raw) -> bool:
    return isinstance(raw, str) and _OBJECT_ID_RE.fullmatch(raw) is not None


def parse_object_id(raw: str) -> ObjectId:
    """Turn a path segment into an ObjectId, or raise InvalidIdentifier (400)."""
    if not is_object_id(raw):
        raise InvalidIdentifier()
    return ObjectId(raw)
