"""
Authenticated HTTP transport for the MAAS API.

Signs every request with OAuth 1.0 PLAINTEXT credentials taken from a MAAS
API key, and reports non-2xx responses as ServerError so callers can
classify them by status code.
"""

import http.client
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid

from maas_client.core.errors import NotValidError, ServerError, TransportError

logger = logging.getLogger(__name__)

# A 503 carrying Retry-After is retried this many times.
NUMBER_OF_RETRIES = 4


def ensure_trailing_slash(path: str) -> str:
    """Return path with exactly one trailing slash appended if missing."""
    if path.endswith("/"):
        return path
    return path + "/"


def api_url(base_url: str, api_version: str) -> str:
    """Build the versioned API root, e.g. http://host/MAAS/api/2.0/."""
    return f"{ensure_trailing_slash(base_url)}api/{api_version}/"


# =============================================================================
# URL Parameters
# =============================================================================


class URLParams:
    """
    Ordered, multi-valued request parameters.

    The ``maybe_*`` helpers skip empty values so that unset optional
    arguments are not sent at all.
    """

    def __init__(self, values: list[tuple[str, str]] | None = None):
        self.values: list[tuple[str, str]] = list(values or [])

    def add(self, name: str, value: str) -> None:
        self.values.append((name, value))

    def maybe_add(self, name: str, value: str | None) -> None:
        if value:
            self.add(name, value)

    def maybe_add_many(self, name: str, values: list[str] | None) -> None:
        for value in values or []:
            self.maybe_add(name, value)

    def maybe_add_int(self, name: str, value: int | None) -> None:
        if value:
            self.add(name, str(value))

    def maybe_add_bool(self, name: str, value: bool | None) -> None:
        if value:
            self.add(name, "true")

    def get_all(self, name: str) -> list[str]:
        return [v for k, v in self.values if k == name]

    def encode(self) -> str:
        return urllib.parse.urlencode(self.values)

    @classmethod
    def from_query(cls, query: str) -> "URLParams":
        """Decode an encoded query string, keeping repeated keys."""
        return cls(urllib.parse.parse_qsl(query, keep_blank_values=True))

    def copy(self) -> "URLParams":
        return URLParams(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, URLParams):
            return NotImplemented
        return self.values == other.values

    def __repr__(self) -> str:
        return f"URLParams({self.values!r})"


# =============================================================================
# Credentials
# =============================================================================


class Credentials:
    """OAuth credentials parsed from a "consumer:token:secret" API key."""

    def __init__(self, api_key: str):
        parts = (api_key or "").split(":")
        if len(parts) != 3 or not all(parts):
            raise NotValidError(
                'invalid API key; expected "<consumer key>:<token key>:<token secret>"',
            )
        self.consumer_key, self.token_key, self.token_secret = parts

    def authorization_header(self) -> str:
        """Build a PLAINTEXT OAuth header. The consumer secret is always empty."""
        params = [
            ("realm", ""),
            ("oauth_consumer_key", self.consumer_key),
            ("oauth_token", self.token_key),
            ("oauth_signature_method", "PLAINTEXT"),
            ("oauth_signature", "&" + urllib.parse.quote(self.token_secret, safe="")),
            ("oauth_timestamp", str(int(time.time()))),
            ("oauth_nonce", uuid.uuid4().hex),
            ("oauth_version", "1.0"),
        ]
        return "OAuth " + ", ".join(f'{k}="{v}"' for k, v in params)


# =============================================================================
# Transport
# =============================================================================


class Transport:
    """
    Low-level signed HTTP client bound to one API version.

    Handles:
    - OAuth signing from the API key
    - GET/POST/DELETE with the "op" sub-operation convention
    - Form and multipart encoding of parameters and files
    - Retrying 503 responses that carry Retry-After
    """

    def __init__(self, base_url: str, api_key: str, api_version: str, timeout: float | None = None):
        """
        Initialize the transport.

        Args:
            base_url: Controller URL, e.g. http://localhost:5240/MAAS
            api_key: MAAS API key "consumer:token:secret"
            api_version: Version path segment, e.g. "2.0"
            timeout: Optional socket timeout in seconds

        Raises:
            NotValidError: If the API key is malformed or the URL is not http(s)

        """
        scheme = urllib.parse.urlsplit(base_url or "").scheme
        if scheme not in ("http", "https"):
            raise NotValidError(f"invalid base URL {base_url!r}")
        self.credentials = Credentials(api_key)
        self.api_url = api_url(base_url, api_version)
        self.timeout = timeout

    def _build_url(self, path: str, params: URLParams | None = None) -> str:
        url = self.api_url + urllib.parse.quote(path.lstrip("/"))
        if params:
            url = f"{url}?{params.encode()}"
        return url

    def _dispatch(self, method: str, url: str, body: bytes | None = None, content_type: str | None = None) -> bytes:
        headers = {"Accept": "application/json"}
        if content_type:
            headers["Content-Type"] = content_type

        retries = 0
        while True:
            # Signed per attempt so the nonce is never reused.
            headers["Authorization"] = self.credentials.authorization_header()
            req = urllib.request.Request(url, data=body, headers=headers, method=method)
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as response:
                    return response.read()
            except urllib.error.HTTPError as e:
                body_text = e.read().decode("utf-8", errors="replace")
                retry_after = e.headers.get("Retry-After") if e.headers else None
                if e.code == 503 and retry_after and retries < NUMBER_OF_RETRIES:
                    retries += 1
                    delay = _parse_retry_after(retry_after)
                    logger.debug("%s %s: 503, retrying in %ss (%d/%d)", method, url, delay, retries, NUMBER_OF_RETRIES)
                    time.sleep(delay)
                    continue
                raise ServerError(e.code, body_text, dict(e.headers or {})) from e
            except urllib.error.URLError as e:
                raise TransportError(f"Connection error: {e.reason}") from e
            except TimeoutError as e:
                raise TransportError(f"Request timed out after {self.timeout} seconds") from e
            except (OSError, http.client.HTTPException) as e:
                raise TransportError(f"Connection error: {e}") from e

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, op: str = "", params: URLParams | None = None) -> bytes:
        """Make a GET request, adding op to the query when given."""
        query = params.copy() if params else URLParams()
        if op:
            query.add("op", op)
        return self._dispatch("GET", self._build_url(path, query))

    def post(
        self,
        path: str,
        op: str,
        params: URLParams | None = None,
        files: dict[str, bytes] | None = None,
    ) -> bytes:
        """Make a POST request. The op goes in the query, params in the body."""
        url = self._build_url(path, URLParams([("op", op)]) if op else None)
        params = params or URLParams()
        if files:
            body, content_type = encode_multipart(params, files)
        else:
            body = params.encode().encode("utf-8")
            content_type = "application/x-www-form-urlencoded"
        return self._dispatch("POST", url, body, content_type)

    def delete(self, path: str) -> None:
        """Make a DELETE request."""
        self._dispatch("DELETE", self._build_url(path))


def _parse_retry_after(value: str) -> float:
    try:
        return max(float(value), 0.0)
    except ValueError:
        return 1.0


def encode_multipart(params: URLParams, files: dict[str, bytes]) -> tuple[bytes, str]:
    """Encode params and files as multipart/form-data."""
    boundary = uuid.uuid4().hex
    lines: list[bytes] = []
    for name, value in params.values:
        lines.append(f"--{boundary}".encode())
        lines.append(f'Content-Disposition: form-data; name="{name}"'.encode())
        lines.append(b"")
        lines.append(value.encode("utf-8"))
    for name, content in files.items():
        lines.append(f"--{boundary}".encode())
        lines.append(f'Content-Disposition: form-data; name="{name}"; filename="{name}"'.encode())
        lines.append(b"Content-Type: application/octet-stream")
        lines.append(b"")
        lines.append(content)
    lines.append(f"--{boundary}--".encode())
    lines.append(b"")
    return b"\r\n".join(lines), f"multipart/form-data; boundary={boundary}"
