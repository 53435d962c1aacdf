"""Async client for a running Tika server.

Every operation goes through `TikaClient.call`, varying only method, path,
headers and body. The client keeps no per-request state, so one instance can
serve many concurrent coroutines.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator
from typing import IO, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import (
    ClientError,
    DecodeError,
    RequestError,
    TransportError,
)
from core.domain.metadata import extract_content, normalize_recursive_metadata
from core.domain.models import (
    DetectorNode,
    MimeTypeInfo,
    ParserNode,
    RecursiveMetadata,
    Translator,
)

logger = logging.getLogger(__name__)

Body = Union[bytes, str, IO[bytes], AsyncIterable[bytes], None]

JSON_HEADERS = {"Accept": "application/json"}

_CHUNK_SIZE = 64 * 1024

# RFC 9110 token characters.
_METHOD_RE = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")

_MIME_TYPES: TypeAdapter[dict[str, MimeTypeInfo]] = TypeAdapter(dict[str, MimeTypeInfo])


async def _iter_file(stream: IO[bytes]) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(stream.read, _CHUNK_SIZE)
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk


def _as_content(body: Body):
    if body is None or isinstance(body, (bytes, str)):
        return body
    if hasattr(body, "read"):
        return _iter_file(body)  # type: ignore[arg-type]
    return body


def _decode_model(body: bytes, model: type[BaseModel], what: str):
    try:
        return model.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeError(f"invalid {what} response: {exc}") from exc


class TikaClient:
    """Connection to a Tika server at `base_url` (e.g. `http://localhost:9998`).

    If no `http_client` is given one is built from `settings` and closed by
    `aclose()`; a caller-provided client is left open.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        *,
        settings: AppSettings | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or build_async_client(settings)

    @property
    def url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> TikaClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def call(
        self,
        body: Body,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        """Send one request and return the raw response body.

        Raises `RequestError` if the request cannot be built, `TransportError`
        if no response arrives and `ClientError` for a non-2xx status.
        """

        if not self._base_url:
            raise RequestError("no server URL configured")
        if not method or not _METHOD_RE.fullmatch(method):
            raise RequestError(f"invalid HTTP method {method!r}")

        url = self._base_url + path
        try:
            request = self._http.build_request(
                method,
                url,
                content=_as_content(body),
                headers=headers,
            )
        except httpx.InvalidURL as exc:
            raise RequestError(f"invalid URL {url!r}: {exc}") from exc

        try:
            response = await self._http.send(request)
        except httpx.UnsupportedProtocol as exc:
            raise RequestError(f"invalid URL {url!r}: {exc}") from exc
        except httpx.LocalProtocolError as exc:
            # Raised before anything is sent, e.g. for an illegal header value.
            raise RequestError(f"cannot send {method} {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {url}: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not 200 <= response.status_code <= 299:
            raise ClientError(response.status_code, response.text)
        return response.content

    async def call_string(
        self,
        body: Body,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
    ) -> str:
        content = await self.call(body, method, path, headers)
        return content.decode("utf-8", errors="replace")

    async def parse(self, body: Body) -> str:
        """Extracted text of the document."""

        return await self.call_string(body, "PUT", "/tika")

    async def parse_recursive(self, body: Body) -> list[str]:
        """Text of the document and of every embedded document, in order.

        Documents without content are skipped, not padded.
        """

        return extract_content(await self.meta_recursive(body))

    async def meta(self, body: Body) -> str:
        return await self.call_string(body, "PUT", "/meta")

    async def meta_field(self, body: Body, field: str) -> str:
        return await self.call_string(body, "PUT", f"/meta/{quote(field, safe=':')}")

    async def meta_recursive(self, body: Body) -> RecursiveMetadata:
        """Metadata of the document and its embedded documents.

        The text of each document is in the `X-TIKA:content` field.
        """

        content = await self.call(body, "PUT", "/rmeta/text")
        return normalize_recursive_metadata(content)

    async def detect(self, body: Body) -> str:
        """MIME type of the document."""

        return await self.call_string(body, "PUT", "/detect/stream")

    async def language(self, body: Body) -> str:
        """Two-letter language code of the document."""

        return await self.call_string(body, "PUT", "/language/stream")

    async def language_string(self, text: str) -> str:
        return await self.call_string(text, "PUT", "/language/string")

    async def translate(
        self,
        body: Body,
        translator: Translator | str,
        src: str,
        dst: str,
    ) -> str:
        name = translator.value if isinstance(translator, Translator) else translator
        return await self.call_string(body, "POST", f"/translate/all/{name}/{src}/{dst}")

    async def version(self) -> str:
        return await self.call_string(None, "GET", "/version")

    async def parsers(self) -> ParserNode:
        """Root of the parser tree; walk `children` for every parser."""

        content = await self.call(None, "GET", "/parsers/details", JSON_HEADERS)
        return _decode_model(content, ParserNode, "parsers")

    async def detectors(self) -> DetectorNode:
        content = await self.call(None, "GET", "/detectors", JSON_HEADERS)
        return _decode_model(content, DetectorNode, "detectors")

    async def mime_types(self) -> dict[str, MimeTypeInfo]:
        """MIME type name -> aliases and supertype."""

        content = await self.call(None, "GET", "/mime-types", JSON_HEADERS)
        try:
            return _MIME_TYPES.validate_json(content)
        except ValidationError as exc:
            raise DecodeError(f"invalid mime-types response: {exc}") from exc
