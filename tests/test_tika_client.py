from __future__ import annotations

import json

import httpx
import pytest

from adapters.tika_client import TikaClient
from conftest import BASE_URL, mock_client
from core.domain.errors import ClientError, DecodeError, RequestError, TransportError
from core.domain.models import DetectorNode, ParserNode, Translator

pytestmark = pytest.mark.anyio


class Recorder:
    """MockTransport handler that records requests and replies with one body."""

    def __init__(self, body: str | bytes = "", status: int = 200) -> None:
        self.body = body
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, content=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


async def test_call_error_status_carries_code_and_body():
    client = mock_client(Recorder("java.lang.NullPointerException at Parser", status=500))

    with pytest.raises(ClientError) as excinfo:
        await client.call(None, "GET", "/version")

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "java.lang.NullPointerException at Parser"
    assert "500" in str(excinfo.value)
    assert "NullPointerException" in str(excinfo.value)


@pytest.mark.parametrize("status", [300, 404, 422, 503])
async def test_call_rejects_any_status_outside_2xx(status):
    client = mock_client(Recorder("nope", status=status))

    with pytest.raises(ClientError) as excinfo:
        await client.call(None, "GET", "/version")

    assert excinfo.value.status_code == status


async def test_call_accepts_every_2xx():
    client = mock_client(Recorder(b"created", status=201))

    assert await client.call(None, "GET", "/version") == b"created"


async def test_call_sends_method_path_headers_and_body():
    handler = Recorder("ok")
    client = mock_client(handler)

    await client.call(b"payload", "PUT", "/tika", {"X-Test": "1"})

    request = handler.last
    assert request.method == "PUT"
    assert str(request.url) == f"{BASE_URL}/tika"
    assert request.headers["X-Test"] == "1"
    assert request.content == b"payload"


@pytest.mark.parametrize("method", ["", "bad method", "GET\n"])
async def test_invalid_method_is_a_request_error(method):
    client = mock_client(Recorder())

    with pytest.raises(RequestError):
        await client.call(None, method, "/version")


async def test_missing_base_url_is_a_request_error():
    client = TikaClient("", httpx.AsyncClient(transport=httpx.MockTransport(Recorder())))

    with pytest.raises(RequestError, match="no server URL"):
        await client.version()


async def test_connection_failure_is_a_transport_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = mock_client(refuse)

    with pytest.raises(TransportError, match="connection refused"):
        await client.version()


async def test_unsendable_header_is_a_request_error():
    def reject_header(request: httpx.Request) -> httpx.Response:
        raise httpx.LocalProtocolError("Illegal header value b'a\\nb'", request=request)

    client = mock_client(reject_header)

    with pytest.raises(RequestError, match="Illegal header value"):
        await client.call(None, "GET", "/version", {"X-Test": "a\nb"})


@pytest.mark.parametrize(
    ("method", "path", "call"),
    [
        ("PUT", "/tika", lambda c: c.parse(b"doc")),
        ("PUT", "/meta", lambda c: c.meta(b"doc")),
        ("PUT", "/meta/Content-Type", lambda c: c.meta_field(b"doc", "Content-Type")),
        ("PUT", "/detect/stream", lambda c: c.detect(b"doc")),
        ("PUT", "/language/stream", lambda c: c.language(b"doc")),
        ("PUT", "/language/string", lambda c: c.language_string("bonjour")),
        (
            "POST",
            "/translate/all/org.apache.tika.language.translate.Lingo24Translator/es/en",
            lambda c: c.translate(b"hola", Translator.LINGO24, "es", "en"),
        ),
        ("GET", "/version", lambda c: c.version()),
    ],
)
async def test_text_endpoints(method, path, call):
    handler = Recorder("test value")
    client = mock_client(handler)

    assert await call(client) == "test value"
    assert handler.last.method == method
    assert handler.last.url.path == path


async def test_translate_accepts_a_class_name():
    handler = Recorder("hello")
    client = mock_client(handler)

    await client.translate(b"hola", "com.example.MyTranslator", "es", "en")

    assert handler.last.url.path == "/translate/all/com.example.MyTranslator/es/en"


async def test_language_string_sends_the_text():
    handler = Recorder("fr")
    client = mock_client(handler)

    await client.language_string("bonjour le monde")

    assert handler.last.content == "bonjour le monde".encode("utf-8")


async def test_parse_streams_a_file(tmp_path):
    path = tmp_path / "doc.txt"
    data = b"x" * (200 * 1024)
    path.write_bytes(data)
    handler = Recorder("parsed")
    client = mock_client(handler)

    with path.open("rb") as fh:
        assert await client.parse(fh) == "parsed"

    assert handler.last.content == data


async def test_meta_recursive_normalizes():
    body = json.dumps([{"X-TIKA:content": "a", "k": ["v1", "v2"]}, {"X-TIKA:content": "b"}])
    handler = Recorder(body)
    client = mock_client(handler)

    docs = await client.meta_recursive(b"doc")

    assert handler.last.url.path == "/rmeta/text"
    assert docs == [{"X-TIKA:content": ["a"], "k": ["v1", "v2"]}, {"X-TIKA:content": ["b"]}]


@pytest.mark.parametrize(
    ("response", "want"),
    [
        ('[{"X-TIKA:content":"test 1"}]', ["test 1"]),
        ('[{"X-TIKA:content":"test 1"},{"X-TIKA:content":"test 2"}]', ["test 1", "test 2"]),
        ('[{"other_key":"other_value"},{"X-TIKA:content":"test"}]', ["test"]),
    ],
)
async def test_parse_recursive(response, want):
    client = mock_client(Recorder(response))

    assert await client.parse_recursive(b"doc") == want


async def test_meta_recursive_bad_field_type():
    client = mock_client(Recorder('[{"other_key":{"test": "fail"}}]'))

    with pytest.raises(DecodeError) as excinfo:
        await client.meta_recursive(b"doc")

    assert excinfo.value.field == "other_key"


async def test_parse_recursive_propagates_status_errors():
    client = mock_client(Recorder("", status=500))

    with pytest.raises(ClientError):
        await client.parse_recursive(b"doc")


async def test_parsers_tree():
    body = json.dumps(
        {
            "name": "TestParser",
            "composite": True,
            "children": [
                {"name": "TestSubParser1", "decorated": True, "supportedTypes": ["test-type"]},
                {
                    "name": "TestSubParser2",
                    "children": [{"name": "Leaf", "supportedTypes": ["test-type-two"]}],
                },
            ],
        }
    )
    handler = Recorder(body)
    client = mock_client(handler)

    root = await client.parsers()

    assert handler.last.url.path == "/parsers/details"
    assert handler.last.headers["Accept"] == "application/json"
    assert root.name == "TestParser"
    assert root.composite is True
    assert root.decorated is False
    first, second = root.children
    assert first.decorated is True
    assert first.supported_types == ["test-type"]
    assert first.children == []
    assert second.children[0].supported_types == ["test-type-two"]
    assert [p.name for p in root.walk()] == ["TestParser", "TestSubParser1", "TestSubParser2", "Leaf"]


async def test_parsers_minimal_node_gets_defaults():
    client = mock_client(Recorder('{"name":"TestParser"}'))

    assert await client.parsers() == ParserNode(name="TestParser")


@pytest.mark.parametrize("body", ['[{"name":"TestParser"}]', "{", '{"name": 3}'])
async def test_parsers_rejects_invalid_json(body):
    client = mock_client(Recorder(body))

    with pytest.raises(DecodeError):
        await client.parsers()


async def test_detectors_tree():
    body = json.dumps(
        {
            "name": "DefaultDetector",
            "composite": True,
            "children": [{"name": "MimeTypes"}, {"name": "ZipContainerDetector"}],
        }
    )
    handler = Recorder(body)
    client = mock_client(handler)

    root = await client.detectors()

    assert handler.last.url.path == "/detectors"
    assert isinstance(root, DetectorNode)
    assert [d.name for d in root.children] == ["MimeTypes", "ZipContainerDetector"]
    assert root.children[0].composite is False
    assert [d.name for d in root.walk()] == ["DefaultDetector", "MimeTypes", "ZipContainerDetector"]


async def test_detectors_rejects_top_level_array():
    client = mock_client(Recorder("[]"))

    with pytest.raises(DecodeError):
        await client.detectors()


async def test_mime_types():
    body = json.dumps(
        {
            "empty-mime": {},
            "super-alias": {"alias": ["alias1", "alias2"], "supertype": "super-mime"},
        }
    )
    handler = Recorder(body)
    client = mock_client(handler)

    registry = await client.mime_types()

    assert handler.last.url.path == "/mime-types"
    assert registry["empty-mime"].alias == []
    assert registry["empty-mime"].supertype == ""
    assert registry["super-alias"].alias == ["alias1", "alias2"]
    assert registry["super-alias"].supertype == "super-mime"


async def test_mime_types_rejects_malformed_json():
    client = mock_client(Recorder('{"super-alias":{}'))

    with pytest.raises(DecodeError):
        await client.mime_types()


async def test_client_closes_only_its_own_http_client():
    http = httpx.AsyncClient(transport=httpx.MockTransport(Recorder("1.0")))

    async with TikaClient(BASE_URL, http) as client:
        await client.version()

    assert not http.is_closed
    await http.aclose()
