# =============================================================================
# portico/middleware/body_parser.py - Request Body Parsing
# =============================================================================
# Parses JSON, XML and URL-encoded bodies up front so hooks and handlers can
# read a plain dict from request.state.body. The raw bytes are replayed to the
# rest of the pipeline, so FastAPI body parameters keep working.
#
# Multipart and unknown content types are left untouched (body = {}).
# =============================================================================

import json
from typing import Any
from urllib.parse import parse_qsl
from xml.parsers.expat import ExpatError

import xmltodict
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from portico.exceptions import BadRequestError, PayloadTooLargeError

# Body size caps, in bytes
JSON_LIMIT = 10_000 * 1024
XML_LIMIT = 10_000 * 1024
URLENCODED_LIMIT = 100 * 1024


def multi_dict(pairs: list[tuple[str, str]]) -> dict[str, Any]:
    """
    Collapse key/value pairs into a dict; a repeated key becomes a list.

    Example:
        multi_dict([("a", "1"), ("a", "2"), ("b", "3")])
        # -> {"a": ["1", "2"], "b": "3"}
    """
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def _media_type(headers: Headers) -> str:
    return headers.get("content-type", "").split(";")[0].strip().lower()


def _kind(media_type: str) -> str | None:
    """Which parser handles a media type, if any."""
    if media_type == "application/json" or media_type.endswith("+json"):
        return "json"
    if media_type in ("application/xml", "text/xml") or media_type.endswith("+xml"):
        return "xml"
    if media_type == "application/x-www-form-urlencoded":
        return "urlencoded"
    return None


LIMITS = {
    "json": JSON_LIMIT,
    "xml": XML_LIMIT,
    "urlencoded": URLENCODED_LIMIT,
}


def parse_json(raw: bytes) -> Any:
    """Strict JSON: only objects and arrays are accepted at the top level."""
    try:
        body = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BadRequestError(f"Invalid JSON body: {e}") from e
    if not isinstance(body, (dict, list)):
        raise BadRequestError("JSON body must be an object or an array")
    return body


def parse_xml(raw: bytes) -> Any:
    """
    XML to dict via xmltodict.

    Text is whitespace-normalized; a single child element stays a plain
    value rather than being wrapped in a list.
    """
    try:
        return xmltodict.parse(raw, strip_whitespace=True)
    except ExpatError as e:
        raise BadRequestError(f"Invalid XML body: {e}") from e


def parse_urlencoded(raw: bytes) -> dict[str, Any]:
    """Flat ``a=1&b=2`` parsing; nested ``a[b]=1`` keys are not expanded."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequestError(f"Invalid URL-encoded body: {e}") from e
    return multi_dict(parse_qsl(text, keep_blank_values=True))


PARSERS = {
    "json": parse_json,
    "xml": parse_xml,
    "urlencoded": parse_urlencoded,
}


class BodyParserMiddleware:
    """
    ASGI middleware filling ``request.state.body``.

    Raises:
        PayloadTooLargeError: Body exceeds the limit for its content type
        BadRequestError: Body cannot be parsed
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["body"] = {}

        headers = Headers(scope=scope)
        kind = _kind(_media_type(headers))
        if kind is None:
            await self.app(scope, receive, send)
            return

        limit = LIMITS[kind]
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise PayloadTooLargeError(limit)

        raw = await self._read_body(receive, limit)
        if raw:
            state["body"] = PARSERS[kind](raw)

        await self.app(scope, self._replay(raw, receive), send)

    @staticmethod
    async def _read_body(receive: Receive, limit: int) -> bytes:
        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > limit:
                raise PayloadTooLargeError(limit)
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    @staticmethod
    def _replay(raw: bytes, receive: Receive) -> Receive:
        """A receive callable that yields the buffered body once, then defers."""
        sent = False

        async def replay() -> Message:
            nonlocal sent
            if sent:
                return await receive()
            sent = True
            return {"type": "http.request", "body": raw, "more_body": False}

        return replay
