"""Normalization of recursive-metadata responses (`/rmeta`).

The server reports each field either as a bare string or as a list of
strings. Both are folded into `list[str]` so callers see one shape. Any
other JSON value is rejected with a `DecodeError` naming the field: values
are never coerced or dropped.
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import StrictStr, TypeAdapter, ValidationError

from core.domain.errors import DecodeError
from core.domain.models import XTIKA_CONTENT, RecursiveMetadata

FieldValue = Union[StrictStr, list[StrictStr]]

_DOCUMENTS: TypeAdapter[list[dict[str, FieldValue]]] = TypeAdapter(
    list[dict[str, FieldValue]]
)


def _describe_failure(data: Any, exc: ValidationError) -> DecodeError:
    loc = exc.errors()[0]["loc"] if exc.errors() else ()

    if len(loc) >= 2 and isinstance(loc[0], int) and isinstance(loc[1], str):
        index, field = loc[0], loc[1]
        value = data[index][field]
        return DecodeError(
            f"document {index}: field {field!r} has value {value!r} of type "
            f"{type(value).__name__}, expected a string or a list of strings",
            field=field,
        )
    if len(loc) == 1 and isinstance(loc[0], int):
        item = data[loc[0]]
        return DecodeError(
            f"document {loc[0]} is a {type(item).__name__}, expected an object"
        )
    return DecodeError(
        f"expected a JSON array of objects, got {type(data).__name__}"
    )


def normalize_recursive_metadata(body: bytes | str) -> RecursiveMetadata:
    """Decode an `/rmeta` body into one `dict[str, list[str]]` per document.

    Document order and key order are preserved. An empty list stays an
    empty list.
    """

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"invalid JSON in recursive metadata: {exc}") from exc

    try:
        documents = _DOCUMENTS.validate_python(data, strict=True)
    except ValidationError as exc:
        raise _describe_failure(data, exc) from exc

    out: RecursiveMetadata = []
    for doc in documents:
        out.append(
            {
                key: [value] if isinstance(value, str) else list(value)
                for key, value in doc.items()
            }
        )
    return out


def extract_content(documents: RecursiveMetadata, field: str = XTIKA_CONTENT) -> list[str]:
    """Return the first value of `field` for each document that has it."""

    contents: list[str] = []
    for doc in documents:
        values = doc.get(field)
        if values:
            contents.append(values[0])
    return contents
