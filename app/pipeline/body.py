# =============================================================================
# app/pipeline/body.py - Request Body Decoder
# =============================================================================
# Reads and decodes JSON and URL-encoded bodies before any handler sees
# them. The decoded value lands in request.state.body and the raw bytes
# are replayed to the route group, so handlers may use either.
#
# Anything else (no body, multipart, octet-stream, ...) is left untouched.
# =============================================================================

import json
import logging
import re
from functools import partial
from typing import Any, Optional
from urllib.parse import parse_qsl

from starlette.types import Message, Receive

from app.exceptions import (
    PayloadError,
    PayloadTooLargeError,
    TooManyParametersError,
    UnsupportedCharsetError,
)
from app.pipeline.context import RequestContext
from app.pipeline.results import CONTINUE, StageResult

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"

DEFAULT_PARAMETER_LIMIT = 1000
MAX_NESTING_DEPTH = 5

BRACKET_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def parse_content_type(header: Optional[str]) -> tuple[str, dict[str, str]]:
    """
    Split a Content-Type header into media type and parameters.

    Example: 'application/json; charset="UTF-8"'
        -> ("application/json", {"charset": "utf-8"})
    """
    if not header:
        return "", {}
    media_type, *raw_params = header.split(";")
    params = {}
    for raw in raw_params:
        name, sep, value = raw.partition("=")
        if sep:
            params[name.strip().lower()] = value.strip().strip('"').lower()
    return media_type.strip().lower(), params


def is_json_type(media_type: str) -> bool:
    return media_type == JSON_TYPE or (
        media_type.startswith("application/") and media_type.endswith("+json")
    )


def decode_json(body: bytes, charset: str) -> Any:
    """Decode a JSON body. Only objects and arrays are accepted at the top level."""
    if not charset.startswith("utf-"):
        raise UnsupportedCharsetError(charset)
    try:
        text = body.decode("utf-8-sig" if charset in ("utf-8", "utf8") else charset)
    except LookupError:
        raise UnsupportedCharsetError(charset)
    except UnicodeDecodeError as e:
        raise PayloadError(f"Malformed JSON body: {e.reason}")

    stripped = text.strip()
    if not stripped:
        return {}
    if stripped[0] not in "{[":
        raise PayloadError("Malformed JSON body: expected an object or an array")
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Malformed JSON body: {e.msg} at position {e.pos}")


def split_key(key: str) -> list[str]:
    """
    Split a bracketed form key into its path.

    Example: 'user[address][city]' -> ['user', 'address', 'city'];
    'tags[]' -> ['tags', '']. Keys without a leading name or a closed
    bracket stay whole. Past MAX_NESTING_DEPTH levels the rest of the key is
    kept as one literal segment.
    """
    head = key.split("[", 1)[0]
    if not head or head == key:
        return [key]

    segments = [head]
    remainder = key[len(head):]
    while remainder and len(segments) <= MAX_NESTING_DEPTH:
        match = BRACKET_SEGMENT.match(remainder)
        if match is None:
            break
        segments.append(match.group(1))
        remainder = remainder[match.end():]

    if len(segments) == 1:
        return [key]
    if remainder:
        segments.append(remainder)
    return segments


def _add_value(target: dict[str, Any], key: str, value: Any) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def _insert(form: dict[str, Any], key: str, value: str) -> None:
    segments = split_key(key)
    append = len(segments) > 1 and segments[-1] == ""
    if append:
        segments = segments[:-1]

    *parents, last = segments
    target = form
    for segment in parents:
        child = target.setdefault(segment, {})
        if not isinstance(child, dict):
            # A plain value already sits on the path
            _add_value(form, key, value)
            return
        target = child

    if append and last not in target:
        target[last] = [value]
    else:
        _add_value(target, last, value)


def decode_form(body: bytes, charset: str, parameter_limit: int = DEFAULT_PARAMETER_LIMIT) -> dict[str, Any]:
    """
    Decode a URL-encoded body.

    Repeated keys collect into a list; single keys map to their string value.
    Bracketed keys nest: 'user[name]=Ada' gives {'user': {'name': 'Ada'}}
    and 'tags[]=a' gives {'tags': ['a']}.
    """
    try:
        text = body.decode(charset)
    except LookupError:
        raise UnsupportedCharsetError(charset)
    except UnicodeDecodeError as e:
        raise PayloadError(f"Malformed form body: {e.reason}")

    try:
        pairs = parse_qsl(text, keep_blank_values=True, max_num_fields=parameter_limit)
    except ValueError:
        raise TooManyParametersError(parameter_limit)

    form: dict[str, Any] = {}
    for key, value in pairs:
        _insert(form, key, value)
    return form


class BodyDecoder:
    """
    Pipeline stage that reads and decodes request bodies.

    Args:
        limit: Maximum body size in bytes
        parameter_limit: Maximum number of URL-encoded fields
    """

    def __init__(self, limit: int, parameter_limit: int = DEFAULT_PARAMETER_LIMIT):
        self.limit = limit
        self.parameter_limit = parameter_limit

    async def __call__(self, ctx: RequestContext) -> StageResult:
        headers = ctx.request.headers
        if "content-length" not in headers and "transfer-encoding" not in headers:
            return CONTINUE

        media_type, params = parse_content_type(headers.get("content-type"))
        charset = params.get("charset", "utf-8")
        if is_json_type(media_type):
            decode = partial(decode_json, charset=charset)
        elif media_type == FORM_TYPE:
            decode = partial(decode_form, charset=charset, parameter_limit=self.parameter_limit)
        else:
            return CONTINUE

        self._check_declared_length(headers.get("content-length"))

        body = await self._read(ctx.receive)
        ctx.raw_body = body
        ctx.receive = _replay(body, ctx.receive)
        ctx.body = decode(body)
        ctx.scope.setdefault("state", {})["body"] = ctx.body

        logger.debug(f"Decoded {len(body)} byte {media_type} body for {ctx.request.path}")
        return CONTINUE

    def _check_declared_length(self, value: Optional[str]) -> None:
        if value is None:
            return
        try:
            length = int(value)
        except ValueError:
            raise PayloadError("Invalid Content-Length header")
        if length > self.limit:
            raise PayloadTooLargeError(self.limit, length)

    async def _read(self, receive: Receive) -> bytes:
        chunks = []
        received = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                raise PayloadError("request aborted")
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.limit:
                raise PayloadTooLargeError(self.limit, received)
            chunks.append(chunk)
            if not message.get("more_body", False):
                return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Build a receive channel that yields `body` once, then defers to `receive`."""
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay
