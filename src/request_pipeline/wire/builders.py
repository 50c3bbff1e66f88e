"""
Request builders.

Request is a plain request relative to the configured base URL.
PostRequest additionally encodes a model as the JSON body.
"""

from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from request_pipeline.config import get_config
from request_pipeline.convert.serialization import JSONSerializer, default_serializer
from request_pipeline.errors import ConfigurationError, ConversionError
from request_pipeline.wire.models import RequestOptions, Requestable, WireRequest


def join_url(base_url: str, path: str) -> str:
    """
    Append path to base_url.

    Absolute URLs in path are returned unchanged.

    Raises:
        ConfigurationError: If base_url has no scheme or host
    """
    if urlparse(path).scheme:
        return path

    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"Invalid base URL: {base_url!r}")

    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class Request(Requestable):
    """
    A request with no body.

    Args:
        path: Path relative to the base URL (or an absolute URL)
        method: HTTP method (default: GET)
        base_url: Base URL (default: configured base_url)
        headers: Extra headers
        options: Per-request options
    """

    def __init__(
        self,
        path: str,
        method: str = "GET",
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        options: Optional[RequestOptions] = None,
    ):
        self.path = path
        self.method = method
        self.base_url = base_url
        self.headers = dict(headers or {})
        self._options = options

    def options(self) -> Optional[RequestOptions]:
        return self._options

    def _url(self) -> str:
        return join_url(self.base_url or get_config().base_url, self.path)

    def build(self) -> WireRequest:
        return WireRequest(method=self.method, url=self._url(), headers=self.headers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.path!r}, method={self.method!r})"


class PostRequest(Request):
    """
    A request whose body is an encoded model.

    Args:
        path: Path relative to the base URL (or an absolute URL)
        model: pydantic model (or JSON-compatible value) to send
        method: HTTP method (default: POST)
        serializer: Serializer to use (default: configured casing)
        base_url: Base URL (default: configured base_url)
        headers: Extra headers
        options: Per-request options
    """

    def __init__(
        self,
        path: str,
        model: Any,
        method: str = "POST",
        serializer: Optional[JSONSerializer] = None,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        options: Optional[RequestOptions] = None,
    ):
        super().__init__(
            path, method=method, base_url=base_url, headers=headers, options=options
        )
        self.model = model
        self.serializer = serializer

    def build(self) -> WireRequest:
        """
        Build the request with the encoded model as body.

        Raises:
            ConversionError: If the model cannot be encoded. The request is
                not sent in that case.
        """
        serializer = self.serializer or default_serializer()
        try:
            body = serializer.encode(self.model)
        except (TypeError, ValueError) as e:
            raise ConversionError("Post request model encoding failed", cause=e)

        headers: Dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self.headers)

        return WireRequest(method=self.method, url=self._url(), headers=headers, body=body)
