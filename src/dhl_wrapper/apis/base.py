from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .. import __version__
from ..models import DhlModel
from ..utils import format_query_value

logger = logging.getLogger(__name__)

API_KEY_HEADER = "DHL-API-Key"


class DhlApiError(RuntimeError):
    """Base class for every error raised while talking to a DHL API."""


class NetworkError(DhlApiError):
    """Raised when the HTTP round trip itself fails (timeout, DNS, refused)."""


class UpstreamError(DhlApiError):
    """Raised for a non-2xx answer from a DHL endpoint.

    DHL reports errors as problem JSON ({"status", "title", "detail"}); when the
    body has that shape the fields are exposed, otherwise only status and body.
    """

    def __init__(
        self,
        status: int,
        body: Optional[str] = None,
        *,
        title: Optional[str] = None,
        detail: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        self.status = status
        self.body = body
        self.title = title
        self.detail = detail
        self.url = url
        parts = [f"HTTP {status}"]
        if title:
            parts.append(title)
        if detail:
            parts.append(detail)
        elif body and not title:
            parts.append(body[:200])
        super().__init__(": ".join(parts))

    @classmethod
    def from_response(cls, response: httpx.Response) -> "UpstreamError":
        body = response.text or None
        title: Optional[str] = None
        detail: Optional[str] = None
        # Problem JSON is not always labelled as JSON
        if body:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                title = _text_or_none(payload.get("title") or payload.get("error"))
                detail = _text_or_none(
                    payload.get("detail")
                    or payload.get("message")
                    or payload.get("description")
                )
        return cls(
            response.status_code,
            body,
            title=title,
            detail=detail,
            url=str(response.request.url),
        )


class DeserializationError(DhlApiError):
    """Raised when a 2xx body cannot be parsed into the expected response model."""


class InvalidInputError(DhlApiError, ValueError):
    """Raised for request values, modes or keys that cannot be sent."""


class MissingCredentialsError(InvalidInputError):
    """Raised when required API credentials are not configured."""


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ApiMode(str, Enum):
    """Which DHL environment a client talks to."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: Union["ApiMode", str]) -> "ApiMode":
        """Accept sandbox/test and production/prod (case-insensitive)."""
        if isinstance(value, ApiMode):
            return value
        v = (value or "").strip().lower()
        if v in ("sandbox", "test"):
            return cls.SANDBOX
        if v in ("production", "prod"):
            return cls.PRODUCTION
        raise InvalidInputError(
            f"Unknown API mode {value!r}; expected 'sandbox' or 'production'."
        )


class ApiRequest(DhlModel):
    """
    One DHL operation: a frozen set of parameters for a single GET call.

    Subclasses declare the path template, which fields fill the path, and the
    response model. Every other non-None field becomes a query parameter under
    its camelCase name, in declaration order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: ClassVar[str] = "GET"
    path: ClassVar[str] = ""
    path_fields: ClassVar[Tuple[str, ...]] = ()
    response_model: ClassVar[Type[BaseModel]]

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid {type(self).__name__}: {exc}") from exc

    def build_path(self) -> str:
        values = {
            name: quote(str(getattr(self, name)), safe="") for name in self.path_fields
        }
        return self.path.format(**values)

    def query_params(self) -> Dict[str, str]:
        data = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude=set(self.path_fields),
        )
        return {key: format_query_value(value) for key, value in data.items()}

    def parse_response(self, content: Union[str, bytes]) -> BaseModel:
        """Deserialize a 2xx body into this request's response model."""
        try:
            return self.response_model.model_validate_json(content)
        except ValidationError as exc:
            raise DeserializationError(
                f"Could not parse {self.response_model.__name__} "
                f"from {type(self).__name__} response: {exc}"
            ) from exc


class ApiBase:
    """
    Client for one DHL API family.

    Holds immutable configuration only (base URL by mode, API key, timeout), so
    a single instance can serve any number of concurrent send calls. Each send
    performs exactly one GET; there are no retries and no caching.
    """

    # Machine-readable family key (e.g., "location-finder"). Override in subclass.
    api_name: ClassVar[str] = "unknown"

    base_urls: ClassVar[Mapping[ApiMode, str]] = {}

    # Requests this family accepts.
    request_type: ClassVar[Type[ApiRequest]] = ApiRequest

    # Environment variables consulted by from_env(), in order.
    api_key_env: ClassVar[Tuple[str, ...]] = ("DHL_API_KEY",)

    default_timeout: ClassVar[float] = 20.0
    user_agent: ClassVar[str] = f"dhl-wrapper/{__version__}"

    def __init__(
        self,
        api_key: str,
        mode: Union[ApiMode, str] = ApiMode.PRODUCTION,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise InvalidInputError("api_key must be a non-empty string.")
        self._api_key = api_key.strip()
        self._mode = ApiMode.parse(mode)
        self._timeout = self.default_timeout if timeout is None else float(timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mode={self._mode.value!r}, base_url={self.base_url!r})"

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def mode(self) -> ApiMode:
        return self._mode

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def base_url(self) -> str:
        return self.base_urls[self._mode]

    # --- Construction from environment ---
    @classmethod
    def from_env(
        cls,
        *,
        mode: Union[ApiMode, str, None] = None,
        timeout: Optional[float] = None,
    ):
        """Build a client from environment variables.

        The API key comes from the family variable (e.g. SHIPMENT_TRACKING_API_KEY)
        or DHL_API_KEY; the mode from DHL_API_MODE or DHL_SERVER, default production.
        """
        api_key = cls.ensure_credential(*cls.api_key_env)
        mode = (
            mode
            or os.getenv("DHL_API_MODE")
            or os.getenv("DHL_SERVER")
            or ApiMode.PRODUCTION
        )
        return cls(api_key, mode, timeout=timeout)

    @staticmethod
    def ensure_credential(*env_vars: str) -> str:
        """Fetch the first configured credential or raise a helpful error."""
        for env_var in env_vars:
            val = os.getenv(env_var)
            if val and val.strip():
                return val
        raise MissingCredentialsError(
            f"{' or '.join(env_vars)} is not set. Add it to your environment or .env file."
        )

    # --- Request building ---
    def build_headers(self, *, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            API_KEY_HEADER: self._api_key,
        }
        if extra:
            headers.update(extra)
        return headers

    def _check_request(self, request: ApiRequest) -> None:
        if not isinstance(request, self.request_type):
            raise InvalidInputError(
                f"{type(self).__name__} cannot send {type(request).__name__}."
            )

    def _endpoint(self, request: ApiRequest) -> str:
        return self.base_url.rstrip("/") + request.build_path()

    def build_url(self, request: ApiRequest) -> str:
        """Full URL (base + path + query string) the request will be sent to."""
        self._check_request(request)
        return str(httpx.URL(self._endpoint(request), params=request.query_params()))

    # --- Dispatch ---
    def send(
        self, request: ApiRequest, *, client: Optional[httpx.Client] = None
    ) -> BaseModel:
        """Send one request and return an instance of its response_model."""
        self._check_request(request)
        url = self._endpoint(request)
        params = request.query_params()
        headers = self.build_headers()
        logger.debug("%s %s params=%s", request.method, url, params)
        try:
            if client is None:
                with httpx.Client(timeout=self._timeout) as c:
                    response = c.request(request.method, url, params=params, headers=headers)
            else:
                response = client.request(request.method, url, params=params, headers=headers)
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %r", request.method, url, exc)
            raise NetworkError(f"{request.method} {url} failed: {exc}") from exc
        return self._handle_response(request, response)

    async def send_async(
        self, request: ApiRequest, *, client: Optional[httpx.AsyncClient] = None
    ) -> BaseModel:
        """Async version of send(); cancellation is whatever the HTTP client does."""
        self._check_request(request)
        url = self._endpoint(request)
        params = request.query_params()
        headers = self.build_headers()
        logger.debug("%s %s params=%s", request.method, url, params)
        try:
            if client is None:
                async with httpx.AsyncClient(timeout=self._timeout) as ac:
                    response = await ac.request(
                        request.method, url, params=params, headers=headers
                    )
            else:
                response = await client.request(
                    request.method, url, params=params, headers=headers
                )
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %r", request.method, url, exc)
            raise NetworkError(f"{request.method} {url} failed: {exc}") from exc
        return self._handle_response(request, response)

    def _handle_response(self, request: ApiRequest, response: httpx.Response) -> BaseModel:
        logger.debug(
            "%s %s -> %s", request.method, response.request.url, response.status_code
        )
        if not response.is_success:
            raise UpstreamError.from_response(response)
        return request.parse_response(response.content)

