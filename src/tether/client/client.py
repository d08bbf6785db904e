"""Engine-side client for the ResourceProvider service.

Failures are classified from the wire error envelope and the transport
exception, never from message text:

- TransientRPCError: the call did not take effect and may succeed later
- IndeterminateStateError: a mutating call may or may not have been applied
- PermanentRPCError: the provider rejected the call
- MissingConfigKeysError / NotConfiguredError: configuration preconditions

Only calls that are safe to repeat are retried.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

import httpx
import pydantic
import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tether.config import Settings, get_settings
from tether.core.errors import (
    IndeterminateStateError,
    MissingConfigKeysError,
    NotConfiguredError,
    PermanentRPCError,
    ProviderUnavailableError,
    StatusCode,
    TransientRPCError,
)
from tether.protocol.messages import (
    CheckRequest,
    CheckResponse,
    ConfigureRequest,
    CreateRequest,
    CreateResponse,
    DeleteRequest,
    DiffRequest,
    DiffResponse,
    Empty,
    InvokeRequest,
    InvokeResponse,
    Message,
    PluginInfo,
    ReadRequest,
    ReadResponse,
    UpdateRequest,
    UpdateResponse,
)

logger = structlog.get_logger()

R = TypeVar("R", bound=Message)

# Calls whose repetition cannot change the backing system beyond one call.
RETRYABLE_METHODS = frozenset({"GetPluginInfo", "Check", "Diff", "Read", "Delete"})
MUTATING_METHODS = frozenset({"Create", "Update", "Delete"})

TRANSIENT_STATUS = (408, 429, 502, 503, 504)
# Gateway failures may arrive after the provider already acted.
AMBIGUOUS_STATUS = (502, 504)

_STATUS_CODES = {
    400: StatusCode.INVALID_ARGUMENT,
    404: StatusCode.NOT_FOUND,
    412: StatusCode.FAILED_PRECONDITION,
    503: StatusCode.UNAVAILABLE,
}


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in TRANSIENT_STATUS


class ResourceProviderClient:
    """Async client for one provider service."""

    def __init__(
        self,
        base_url: str = "",
        *,
        rpc_prefix: str = "/tether.ResourceProvider",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_min: float = 1.0,
        backoff_max: float = 30.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_prefix = rpc_prefix.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout
        )
        self._breaker = CircuitBreaker(
            failure_threshold=circuit_failure_threshold,
            recovery_timeout=circuit_recovery_timeout,
            expected_exception=TransientRPCError,
            name=f"tether-provider:{base_url or 'in-process'}",
        )
        self._guarded_send = self._breaker(self._send_with_retry)

    @classmethod
    def from_settings(
        cls, base_url: str, settings: Settings | None = None, **kwargs: Any
    ) -> "ResourceProviderClient":
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "rpc_prefix": settings.rpc_prefix,
            "timeout": settings.rpc_timeout,
            "max_retries": settings.rpc_max_retries,
            "backoff_min": settings.rpc_backoff_min,
            "backoff_max": settings.rpc_backoff_max,
            "circuit_failure_threshold": settings.circuit_failure_threshold,
            "circuit_recovery_timeout": settings.circuit_recovery_timeout,
        }
        options.update(kwargs)
        return cls(base_url, **options)

    @property
    def circuit_open(self) -> bool:
        return self._breaker.opened

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResourceProviderClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def configure(self, variables: Mapping[str, str]) -> None:
        await self.call("Configure", ConfigureRequest(variables=dict(variables)), Empty)

    async def invoke(self, tok: str, args: Mapping[str, Any] | None = None) -> InvokeResponse:
        return await self.call("Invoke", InvokeRequest(tok=tok, args=args), InvokeResponse)

    async def check(
        self, urn: str, olds: Mapping[str, Any] | None, news: Mapping[str, Any] | None
    ) -> CheckResponse:
        return await self.call("Check", CheckRequest(urn=urn, olds=olds, news=news), CheckResponse)

    async def diff(
        self,
        resource_id: str,
        urn: str,
        olds: Mapping[str, Any] | None,
        news: Mapping[str, Any] | None,
    ) -> DiffResponse:
        request = DiffRequest(id=resource_id, urn=urn, olds=olds, news=news)
        return await self.call("Diff", request, DiffResponse)

    async def create(self, urn: str, properties: Mapping[str, Any] | None) -> CreateResponse:
        request = CreateRequest(urn=urn, properties=properties)
        return await self.call("Create", request, CreateResponse)

    async def read(
        self, resource_id: str, urn: str, properties: Mapping[str, Any] | None = None
    ) -> ReadResponse:
        request = ReadRequest(id=resource_id, urn=urn, properties=properties)
        return await self.call("Read", request, ReadResponse)

    async def update(
        self,
        resource_id: str,
        urn: str,
        olds: Mapping[str, Any] | None,
        news: Mapping[str, Any] | None,
    ) -> UpdateResponse:
        request = UpdateRequest(id=resource_id, urn=urn, olds=olds, news=news)
        return await self.call("Update", request, UpdateResponse)

    async def delete(
        self, resource_id: str, urn: str, properties: Mapping[str, Any] | None = None
    ) -> None:
        request = DeleteRequest(id=resource_id, urn=urn, properties=properties)
        await self.call("Delete", request, Empty)

    async def get_plugin_info(self) -> PluginInfo:
        return await self.call("GetPluginInfo", None, PluginInfo)

    async def call(self, method: str, request: Message | None, response_cls: type[R]) -> R:
        """Issue one RPC and decode its response message."""
        payload = request.to_wire() if request is not None else {}
        try:
            data = await self._guarded_send(method, payload)
        except CircuitBreakerError as exc:
            raise ProviderUnavailableError(
                f"{method} not attempted: provider circuit is open", method=method
            ) from exc

        try:
            return response_cls.model_validate(data)
        except pydantic.ValidationError as exc:
            logger.error("rpc_malformed_response", method=method, error=str(exc))
            raise PermanentRPCError(
                f"{method} returned a malformed response", method=method
            ) from exc

    async def _send_with_retry(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        if method not in RETRYABLE_METHODS:
            return await self._send(method, payload)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransientRPCError),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._backoff_min, max=self._backoff_max),
            reraise=True,
        ):
            with attempt:
                data = await self._send(method, payload)
        return data

    async def _send(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        path = f"{self._rpc_prefix}/{method}"
        try:
            response = await self._client.post(path, json=payload, timeout=self._timeout)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as exc:
            logger.warning("rpc_connect_error", method=method, error=str(exc))
            raise TransientRPCError(
                f"{method}: provider unreachable: {exc}", method=method
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("rpc_network_error", method=method, error=str(exc))
            if method in MUTATING_METHODS:
                raise IndeterminateStateError(
                    f"{method} outcome unknown: {exc}", method=method
                ) from exc
            raise TransientRPCError(f"{method}: {exc}", method=method) from exc

        if response.is_success:
            return response.json() if response.content else {}
        raise self._error_from_response(method, response)

    def _error_from_response(self, method: str, response: httpx.Response) -> Exception:
        envelope = _decode_envelope(response)
        message = envelope.get("message") or f"HTTP {response.status_code}"
        details = envelope.get("details") or []
        code = _status_code(envelope.get("code"), response.status_code)

        if code is StatusCode.FAILED_PRECONDITION:
            for detail in details:
                if not isinstance(detail, dict):
                    continue
                if detail.get("@type") == "ConfigureErrorMissingKeys":
                    return MissingConfigKeysError(detail.get("missingKeys", []), message)
                if detail.get("@type") == "ProviderNotConfigured":
                    return NotConfiguredError(message)

        if code is StatusCode.UNAVAILABLE or is_retryable_status(response.status_code):
            logger.warning(
                "rpc_retryable_error", method=method, status=response.status_code, code=code
            )
            if method in MUTATING_METHODS and response.status_code in AMBIGUOUS_STATUS:
                return IndeterminateStateError(
                    f"{method} outcome unknown: {message}", method=method, code=code
                )
            return TransientRPCError(f"{method}: {message}", method=method, code=code)

        logger.error(
            "rpc_permanent_error", method=method, status=response.status_code, code=code
        )
        return PermanentRPCError(f"{method}: {message}", method=method, code=code)


def _decode_envelope(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _status_code(value: Any, http_status: int) -> StatusCode:
    try:
        return StatusCode(value)
    except ValueError:
        return _STATUS_CODES.get(http_status, StatusCode.INTERNAL)


__all__ = [
    "MUTATING_METHODS",
    "RETRYABLE_METHODS",
    "ResourceProviderClient",
    "is_retryable_status",
]
