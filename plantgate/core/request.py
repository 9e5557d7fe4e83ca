"""
PlantGate Request Object
========================

Normalizes raw HTTP input into one accessor surface.

The body is read from the ASGI channel once and parsed exactly once at
construction, chosen by Content-Type:

- application/json                   -> mapping (invalid JSON -> {})
- application/x-www-form-urlencoded  -> flat mapping
- multipart/form-data                -> fields, plus uploaded files
- anything else                      -> raw body parsed as urlencoded

PUT, PATCH and DELETE bodies that produced nothing are parsed again as
urlencoded.

Input precedence:
- ``get_data`` reads the body only; an empty string counts as absent
- ``input`` looks at path params, then query, then body
- ``all`` merges body, then query, then path params (params win)

Example:
    request = await Request.from_scope(scope, receive)

    username = request.get_data("username")
    page = request.input("page", 1)
    errors = request.validate({"username": "required", "password": "required"})
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Coroutine,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import parse_qs

import orjson

from plantgate.validation.validator import RuleSpec, validate

if TYPE_CHECKING:
    from plantgate.orm.connection import Database


# Checked in order; the peer address is the last resort
CLIENT_IP_HEADERS = (
    "client-ip",
    "x-forwarded-for",
    "x-forwarded",
    "x-cluster-client-ip",
    "forwarded-for",
    "forwarded",
)

BODY_OVERRIDE_METHODS = ("PUT", "PATCH", "DELETE")


@dataclass
class UploadedFile:
    """
    Represents an uploaded file from multipart form data.

    Attributes:
        filename: Original filename
        content_type: MIME type
        size: File size in bytes
        content: File content as bytes
    """
    filename: str
    content_type: str
    size: int
    content: bytes

    def read(self) -> bytes:
        return self.content

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)


@dataclass
class QueryParams:
    """
    Query string parameters with type coercion.

    Supports:
    - Single values: ?name=value -> params.get("name") = "value"
    - Multiple values: ?tag=a&tag=b -> params.get_list("tag") = ["a", "b"]
    - Type conversion: params.get_int("page", 1)
    """
    _data: Dict[str, List[str]] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get single value (first if multiple)."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> List[str]:
        return self._data.get(key, [])

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def to_dict(self) -> Dict[str, Union[str, List[str]]]:
        """Convert to dictionary (single values unwrapped)."""
        return {k: v[0] if len(v) == 1 else v for k, v in self._data.items()}


class Headers:
    """
    Case-insensitive HTTP headers container.

    Repeated headers are joined with ", ".

    Example:
        headers["Content-Type"]  # application/json
        headers["content-type"]  # application/json (same)
        headers.get("X-Custom", "default")
    """

    def __init__(self, raw_headers: Union[Iterable[Tuple[Any, Any]], Mapping[str, str], None] = None) -> None:
        self._headers: Dict[str, str] = {}

        if raw_headers is None:
            return

        items = raw_headers.items() if isinstance(raw_headers, Mapping) else raw_headers

        for key, value in items:
            if isinstance(key, bytes):
                key = key.decode("latin-1")
            if isinstance(value, bytes):
                value = value.decode("latin-1")
            key = key.lower()
            if key in self._headers:
                self._headers[key] = f"{self._headers[key]}, {value}"
            else:
                self._headers[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._headers.get(key.lower(), default)

    def __getitem__(self, key: str) -> str:
        return self._headers[key.lower()]

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._headers

    def items(self) -> List[tuple]:
        return list(self._headers.items())

    def to_dict(self) -> Dict[str, str]:
        return self._headers.copy()


def parse_urlencoded(raw: Union[bytes, str]) -> Dict[str, Any]:
    """Parse a urlencoded string into a flat mapping (repeated keys become lists)."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    parsed = parse_qs(raw, keep_blank_values=True)
    return {k: v[0] if len(v) == 1 else v for k, v in parsed.items()}


def parse_json(raw: bytes) -> Dict[str, Any]:
    """Parse a JSON object; anything else yields an empty mapping."""
    if not raw:
        return {}
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def parse_multipart(body: bytes, content_type: str) -> Tuple[Dict[str, Any], Dict[str, UploadedFile]]:
    """Split a multipart body into form fields and uploaded files."""
    boundary_match = re.search(r'boundary="?([^";\s]+)"?', content_type)
    if not boundary_match:
        return {}, {}

    boundary = boundary_match.group(1).encode()

    form_data: Dict[str, Any] = {}
    files: Dict[str, UploadedFile] = {}

    for part in body.split(b"--" + boundary)[1:-1]:
        if not part.strip() or part.strip() == b"--":
            continue

        try:
            headers_end = part.index(b"\r\n\r\n")
        except ValueError:
            continue

        headers_raw = part[:headers_end].decode("utf-8", errors="replace")
        content = part[headers_end + 4:]
        if content.endswith(b"\r\n"):
            content = content[:-2]

        name_match = re.search(r'name="([^"]*)"', headers_raw)
        filename_match = re.search(r'filename="([^"]*)"', headers_raw)
        content_type_match = re.search(r"Content-Type:\s*([^\r\n]+)", headers_raw, re.I)

        if not name_match:
            continue

        field_name = name_match.group(1)

        if filename_match:
            files[field_name] = UploadedFile(
                filename=filename_match.group(1),
                content_type=content_type_match.group(1).strip() if content_type_match else "application/octet-stream",
                size=len(content),
                content=content,
            )
        else:
            form_data[field_name] = content.decode("utf-8", errors="replace")

    return form_data, files


async def read_body(receive: Callable[[], Coroutine[Any, Any, Dict[str, Any]]]) -> bytes:
    """Drain the ASGI receive channel."""
    chunks: List[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.request":
            body = message.get("body", b"")
            if body:
                chunks.append(body)
            if not message.get("more_body", False):
                break
        elif message["type"] == "http.disconnect":
            raise ConnectionError("Client disconnected")
    return b"".join(chunks)


def _valid_ip(candidate: str) -> bool:
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return True


class Request:
    """
    HTTP request with body parsed once at construction.

    Example:
        request = Request(
            method="POST",
            path="/api/v1/auth/login",
            headers={"Content-Type": "application/json"},
            body=b'{"username": "alice", "password": "secret"}',
        )
        request.get_data("username")  # "alice"
    """

    __slots__ = (
        "method",
        "transport_method",
        "uri",
        "path",
        "query_string",
        "query",
        "headers",
        "cookies",
        "params",
        "data",
        "files",
        "raw_body",
        "content_type",
        "client",
        "scheme",
        "server",
        "state",
        "route",
        "db",
        "_user",
        "_accepts",
        "_client_ip",
    )

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        query_string: Union[bytes, str] = b"",
        headers: Union[Iterable[Tuple[Any, Any]], Mapping[str, str], None] = None,
        body: bytes = b"",
        client: Optional[Tuple[str, int]] = None,
        scheme: str = "http",
        server: Optional[Tuple[str, Optional[int]]] = None,
    ) -> None:
        """
        Build a request from already-read transport data.

        Args:
            method: Transport HTTP method
            path: Raw path, may still carry a query string
            query_string: Raw query string
            headers: Header pairs or mapping
            body: Raw body bytes
            client: Peer (host, port)
            scheme: "http" or "https"
            server: Local (host, port)
        """
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")

        path, _, inline_query = path.partition("?")
        if inline_query and not query_string:
            query_string = inline_query

        self.transport_method = method.upper()
        self.uri = f"{path}?{query_string}" if query_string else path
        self.path = path or "/"
        self.query_string = query_string
        self.query = QueryParams(_data=parse_qs(query_string, keep_blank_values=True))
        self.headers = Headers(headers)
        self.content_type = self.headers.get("content-type", "") or ""
        self.client = client
        self.scheme = scheme
        self.server = server
        self.raw_body = body

        self.cookies: Dict[str, str] = {}
        cookie_header = self.headers.get("cookie", "")
        if cookie_header:
            cookie = SimpleCookie()
            try:
                cookie.load(cookie_header)
            except CookieError:
                pass
            self.cookies = {key: morsel.value for key, morsel in cookie.items()}

        self.files: Dict[str, UploadedFile] = {}
        self.data: Dict[str, Any] = self._parse_body()
        self.method = self._resolve_method()

        self.params: Dict[str, Any] = {}
        self.state: Dict[str, Any] = {}
        self.route: Any = None
        self.db: Optional["Database"] = None
        self._user: Any = None
        self._accepts: Optional[List[str]] = None
        self._client_ip: Optional[str] = None

    @classmethod
    async def from_scope(
        cls,
        scope: Dict[str, Any],
        receive: Callable[[], Coroutine[Any, Any, Dict[str, Any]]],
    ) -> "Request":
        """Create Request from ASGI scope, reading the whole body."""
        body = await read_body(receive)
        return cls(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            query_string=scope.get("query_string", b""),
            headers=scope.get("headers", []),
            body=body,
            client=scope.get("client"),
            scheme=scope.get("scheme", "http"),
            server=scope.get("server"),
        )

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _parse_body(self) -> Dict[str, Any]:
        content_type = self.content_type.lower()

        if "application/json" in content_type:
            data = parse_json(self.raw_body)
        elif "application/x-www-form-urlencoded" in content_type:
            data = parse_urlencoded(self.raw_body)
        elif "multipart/form-data" in content_type:
            data, self.files = parse_multipart(self.raw_body, self.content_type)
        else:
            data = parse_urlencoded(self.raw_body)

        if not data and self.transport_method in BODY_OVERRIDE_METHODS:
            data = parse_urlencoded(self.raw_body)

        return data

    def _resolve_method(self) -> str:
        if self.transport_method != "POST":
            return self.transport_method

        override = self.data.get("_method") or self.headers.get("x-http-method-override")
        if override:
            return str(override).upper()
        return self.transport_method

    # -------------------------------------------------------------------------
    # Input access
    # -------------------------------------------------------------------------

    def get_data(self, name: Optional[str] = None, default: Any = None) -> Any:
        """
        Read body data.

        An empty string is treated as absent and yields ``default``.

        Args:
            name: Body key; the whole body mapping when omitted
            default: Value for missing or empty keys
        """
        if name is None:
            return self.data

        value = self.data.get(name)
        if value is None or value == "":
            return default
        return value

    def set_data(self, name: str, value: Any) -> "Request":
        self.data[name] = value
        return self

    def get_query(self, name: str, default: Any = None) -> Any:
        return self.query.get(name, default)

    def get_param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def set_params(self, params: Dict[str, Any]) -> "Request":
        self.params = dict(params)
        return self

    def input(self, name: str, default: Any = None) -> Any:
        """Look a value up in path params, then query, then body."""
        if self.params.get(name) is not None:
            return self.params[name]
        if self.query.get(name) is not None:
            return self.query.get(name)
        if self.data.get(name) is not None:
            return self.data[name]
        return default

    def all(self) -> Dict[str, Any]:
        """Merged input: body, overridden by query, overridden by path params."""
        return {**self.data, **self.query.to_dict(), **self.params}

    def only(self, keys: Iterable[str]) -> Dict[str, Any]:
        merged = self.all()
        return {key: merged[key] for key in keys if merged.get(key) is not None}

    def exclude(self, keys: Iterable[str]) -> Dict[str, Any]:
        skip = set(keys)
        return {key: value for key, value in self.all().items() if key not in skip}

    def has(self, name: str) -> bool:
        return self.input(name) is not None

    def has_all(self, names: Iterable[str]) -> bool:
        return all(self.has(name) for name in names)

    def has_any(self, names: Iterable[str]) -> bool:
        return any(self.has(name) for name in names)

    def has_file(self, name: str) -> bool:
        return name in self.files

    def validate(self, rules: Dict[str, RuleSpec]) -> Dict[str, List[str]]:
        """Validate merged input; returns field -> messages, empty when valid."""
        return validate(self.all(), rules)

    # -------------------------------------------------------------------------
    # Credentials and principal
    # -------------------------------------------------------------------------

    def basic_auth(self) -> Optional[Dict[str, str]]:
        header = self.headers.get("authorization", "")
        if not header.startswith("Basic "):
            return None

        try:
            credentials = base64.b64decode(header[6:], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None

        if ":" not in credentials:
            return None

        username, password = credentials.split(":", 1)
        return {"username": username, "password": password}

    def set_user(self, user: Any) -> "Request":
        self._user = user
        return self

    @property
    def user(self) -> Any:
        """Principal set by auth middleware; read-only for handlers."""
        return self._user

    # -------------------------------------------------------------------------
    # Transport facts
    # -------------------------------------------------------------------------

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "") or ""

    @property
    def client_ip(self) -> str:
        """First valid address among proxy headers, then the peer; 0.0.0.0 otherwise."""
        if self._client_ip is None:
            candidates = [self.headers.get(name) for name in CLIENT_IP_HEADERS]
            candidates.append(self.client[0] if self.client else None)

            self._client_ip = "0.0.0.0"
            for raw in candidates:
                if not raw:
                    continue
                ip = raw.split(",")[0].strip()
                if _valid_ip(ip):
                    self._client_ip = ip
                    break

        return self._client_ip

    @property
    def accept_types(self) -> List[str]:
        """Accept header media types, highest quality first."""
        if self._accepts is None:
            header = self.headers.get("accept")
            if not header:
                self._accepts = ["*/*"]
            else:
                weighted: Dict[str, float] = {}
                for entry in header.split(","):
                    media_type, *options = [p.strip() for p in entry.split(";")]
                    quality = 1.0
                    for option in options:
                        if option.startswith("q="):
                            try:
                                quality = float(option[2:])
                            except ValueError:
                                quality = 0.0
                    weighted[media_type] = quality
                self._accepts = sorted(weighted, key=lambda t: weighted[t], reverse=True)
        return self._accepts

    def accepts(self, content_type: str) -> bool:
        accepted = self.accept_types
        if "*/*" in accepted or content_type in accepted:
            return True
        return content_type.split("/")[0] + "/*" in accepted

    def wants_json(self) -> bool:
        if not self.accepts("application/json"):
            return False
        if not self.accepts("text/html"):
            return True
        accepted = self.accept_types
        if "application/json" in accepted and "text/html" in accepted:
            return accepted.index("application/json") < accepted.index("text/html")
        return "application/json" in accepted

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
