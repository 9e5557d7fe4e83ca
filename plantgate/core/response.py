"""
PlantGate Response Object
=========================

A mutable HTTP response that accumulates status, headers and content
and is sent over ASGI exactly once.

Helpers such as ``success`` or ``not_found`` only set status and an
envelope; they never send:

    {"status_code": 200, "message": "Success", "data": {...}}
    {"status_code": 422, "message": "Validation failed", "errors": {...}}

Example:
    response = Response()
    response.set_header("X-Request-Id", "abc")
    return response.success({"user": user}, "User found")
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from email.utils import format_datetime
from http import HTTPStatus
from typing import (
    Any,
    Callable,
    Coroutine,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
)

import orjson


HTTP_STATUS_PHRASES = {s.value: s.phrase for s in HTTPStatus}

DEFAULT_CONTENT_TYPE = "text/html; charset=UTF-8"
JSON_CONTENT_TYPE = "application/json"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(obj: Any) -> bytes:
    return orjson.dumps(obj, default=_json_default, option=orjson.OPT_NON_STR_KEYS)


@dataclass
class Cookie:
    """HTTP Cookie with all standard attributes."""
    name: str
    value: str
    max_age: Optional[int] = None
    expires: Optional[str] = None
    path: str = "/"
    domain: Optional[str] = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "Lax"

    def to_header(self) -> str:
        """Generate Set-Cookie header value."""
        parts = [f"{self.name}={self.value}"]

        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.expires:
            parts.append(f"Expires={self.expires}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")

        return "; ".join(parts)


class Response:
    """
    HTTP response under construction.

    Headers are case-insensitive. ``set_header`` replaces by default;
    ``replace=False`` adds another value under the same name.

    Attributes:
        status_code: HTTP status
        content: str, bytes, or a structure rendered as JSON
        sent: True once ``send`` has run
        expose_errors: Include per-field errors in validation envelopes
    """

    def __init__(
        self,
        content: Any = "",
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        content_type: Optional[str] = None,
        expose_errors: bool = False,
    ) -> None:
        self.status_code = status_code
        self.content: Any = content
        self.sent = False
        self.expose_errors = expose_errors
        self._headers: Dict[str, Tuple[str, List[str]]] = {}
        self._cookies: List[Cookie] = []

        self.set_header("Content-Type", content_type or DEFAULT_CONTENT_TYPE)
        if headers:
            self.set_headers(headers)

    # -------------------------------------------------------------------------
    # Status and headers
    # -------------------------------------------------------------------------

    def set_status_code(self, status_code: int) -> "Response":
        self.status_code = int(status_code)
        return self

    def set_header(self, name: str, value: Any, replace: bool = True) -> "Response":
        key = name.lower()
        if replace or key not in self._headers:
            self._headers[key] = (name, [str(value)])
        else:
            self._headers[key][1].append(str(value))
        return self

    def set_headers(self, headers: Mapping[str, Any], replace: bool = True) -> "Response":
        for name, value in headers.items():
            self.set_header(name, value, replace)
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        entry = self._headers.get(name.lower())
        if entry is None:
            return default
        return ", ".join(entry[1])

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def remove_header(self, name: str) -> "Response":
        self._headers.pop(name.lower(), None)
        return self

    @property
    def headers(self) -> Dict[str, str]:
        """Snapshot of headers, values of repeated headers joined."""
        return {name: ", ".join(values) for name, values in self._headers.values()}

    def set_content_type(self, content_type: str) -> "Response":
        return self.set_header("Content-Type", content_type)

    def get_content_type(self) -> Optional[str]:
        return self.get_header("Content-Type")

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def set_content(self, content: Any) -> "Response":
        self.content = content
        return self

    @property
    def data(self) -> Optional[Dict[str, Any]]:
        """The structured envelope, when the content is one."""
        return self.content if isinstance(self.content, dict) else None

    def render(self) -> bytes:
        content = self.content
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode("utf-8")
        return json_dumps(content)

    # -------------------------------------------------------------------------
    # Cookies
    # -------------------------------------------------------------------------

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: Optional[int] = None,
        expires: Optional[str] = None,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "Lax",
    ) -> "Response":
        self._cookies.append(Cookie(
            name=name,
            value=value,
            max_age=max_age,
            expires=expires,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        ))
        return self

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def _get_headers(self, body: bytes) -> List[Tuple[bytes, bytes]]:
        """Get headers as list of tuples for ASGI."""
        headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, values in self._headers.values()
            for value in values
            if name.lower() != "content-length"
        ]
        headers.append((b"content-length", str(len(body)).encode("latin-1")))

        for cookie in self._cookies:
            headers.append((b"set-cookie", cookie.to_header().encode("latin-1")))

        return headers

    async def send(
        self,
        send: Callable[[Dict[str, Any]], Coroutine[Any, Any, None]],
    ) -> None:
        """Emit status and headers, then the body. Call once."""
        body = b"" if self.status_code in (204, 304) else self.render()

        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._get_headers(body),
        })
        await send({
            "type": "http.response.body",
            "body": body,
        })

        self.sent = True

    # -------------------------------------------------------------------------
    # Envelope builders
    # -------------------------------------------------------------------------

    def json(self, data: Any, status_code: Optional[int] = None, headers: Optional[Mapping[str, Any]] = None) -> "Response":
        self.set_content_type(JSON_CONTENT_TYPE)
        if status_code is not None:
            self.set_status_code(status_code)
        if headers:
            self.set_headers(headers)
        return self.set_content(data)

    def success(self, data: Any = None, message: str = "Success", status_code: int = 200) -> "Response":
        envelope: Dict[str, Any] = {"status_code": status_code, "message": message}
        if data is not None:
            envelope["data"] = data
        return self.json(envelope, status_code)

    def error(self, message: str = "Error", status_code: int = 400, errors: Any = None) -> "Response":
        envelope: Dict[str, Any] = {"status_code": status_code, "message": message}
        if errors is not None:
            envelope["errors"] = errors
        return self.json(envelope, status_code)

    def validation_error(self, errors: Dict[str, List[str]], message: str = "Validation failed") -> "Response":
        if self.expose_errors:
            return self.error(message, 422, errors)
        return self.error(message, 422)

    def bad_request(self, message: str = "Bad Request") -> "Response":
        return self.error(message, 400)

    def unauthorized(self, message: str = "Unauthorized") -> "Response":
        return self.error(message, 401)

    def forbidden(self, message: str = "Forbidden") -> "Response":
        return self.error(message, 403)

    def not_found(self, message: str = "Resource not found") -> "Response":
        return self.error(message, 404)

    def method_not_allowed(self, message: str = "Method Not Allowed", allowed: Optional[Iterable[str]] = None) -> "Response":
        if allowed is not None:
            self.set_header("Allow", ", ".join(allowed))
        return self.error(message, 405)

    def server_error(self, message: str = "Internal Server Error") -> "Response":
        return self.error(message, 500)

    def created(self, data: Any = None, message: str = "Resource created successfully") -> "Response":
        return self.success(data, message, 200)

    def no_content(self) -> "Response":
        return self.set_status_code(204).set_content("")

    def redirect(self, url: str, status_code: int = 302) -> "Response":
        self.set_header("Location", url)
        return self.set_status_code(status_code).set_content("")

    def paginate(
        self,
        items: List[Any],
        total: int,
        per_page: int,
        current_page: int,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "Response":
        last_page = max(1, -(-total // per_page)) if per_page > 0 else 1
        return self.json({
            "data": items,
            "meta": {
                "current_page": current_page,
                "last_page": last_page,
                "per_page": per_page,
                "total": total,
                **(meta or {}),
            },
        }, 200)

    # -------------------------------------------------------------------------
    # CORS and caching
    # -------------------------------------------------------------------------

    def enable_cors(
        self,
        origin: str = "*",
        methods: Iterable[str] = ("GET", "POST", "PUT", "DELETE", "OPTIONS"),
        headers: Iterable[str] = ("Content-Type", "Authorization"),
        max_age: int = 86400,
        credentials: bool = False,
    ) -> "Response":
        self.set_header("Access-Control-Allow-Origin", origin)
        if credentials:
            self.set_header("Access-Control-Allow-Credentials", "true")

        methods = list(methods)
        if methods:
            self.set_header("Access-Control-Allow-Methods", ", ".join(methods))

        headers = list(headers)
        if headers:
            self.set_header("Access-Control-Allow-Headers", ", ".join(headers))

        if max_age > 0:
            self.set_header("Access-Control-Max-Age", max_age)
        return self

    def preflight(self, **cors: Any) -> "Response":
        """CORS headers plus an empty 204."""
        return self.enable_cors(**cors).no_content()

    def set_cache(self, max_age: int = 0, public: bool = True, must_revalidate: bool = True) -> "Response":
        cache_control = "public" if public else "private"
        cache_control += f", max-age={max_age}" if max_age > 0 else ", no-cache, no-store"
        if must_revalidate:
            cache_control += ", must-revalidate"

        self.set_header("Cache-Control", cache_control)
        if max_age > 0:
            self.set_header("Expires", _http_date(time.time() + max_age))
        else:
            self.set_header("Expires", "0")
        return self

    def no_cache(self) -> "Response":
        return self.set_cache(0, public=False, must_revalidate=True)

    @property
    def status_phrase(self) -> str:
        return HTTP_STATUS_PHRASES.get(self.status_code, "Unknown")

    def __repr__(self) -> str:
        return f"<Response {self.status_code} {self.status_phrase}>"


def _http_date(epoch: float) -> str:
    return format_datetime(datetime.fromtimestamp(epoch, tz=timezone.utc), usegmt=True)
