from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import TransportError
from .tracing import TRACE_HEADER, TraceContext

logger = logging.getLogger(__name__)

ResponseHook = Callable[[requests.Response], None]


@dataclass
class LastOperation:
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class HttpClient:
    config: ClientConfig
    trace: TraceContext | None = None
    session: requests.Session | None = None
    after_response: ResponseHook | None = None
    last_operation: LastOperation | None = None
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.trace is None:
            self.trace = TraceContext()
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.config.max_connections,
                pool_maxsize=self.config.max_connections,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        retry_mutation: bool = False,
        operation: str = "unknown",
        raw: bool = False,
    ) -> Any:
        """Send one API request, retrying idempotent calls on transport errors and 5xx.

        ``retry_mutation`` opts a non-GET call into retries; only use it for
        endpoints that deduplicate on a client-supplied key.
        """
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        request_headers[TRACE_HEADER] = self.trace.ensure()

        normalized_method = method.upper()
        url = self._build_url(path)
        can_retry = normalized_method in {"GET", "HEAD"} or retry_mutation
        attempts = self.config.retries + 1 if can_retry else 1

        started = time.monotonic()
        response: requests.Response | None = None
        for attempt in range(attempts):
            try:
                response = self.session.request(
                    method=normalized_method,
                    url=url,
                    headers=request_headers,
                    json=json_body,
                    params=params,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if attempt >= attempts - 1:
                    self._record_operation(operation, started, "transport_error")
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc),
                        details={"type": type(exc).__name__},
                        trace_id=self.trace.trace_id,
                        status_code=0,
                        raw_payload=None,
                    ) from exc
                logger.debug("Transport error on %s %s, retrying", normalized_method, path)
            else:
                if response.status_code < 500 or attempt >= attempts - 1:
                    break
            self.sleep(self.config.retry_backoff_seconds * (2**attempt))

        if self.after_response:
            self.after_response(response)
        self.trace.update_from_headers(response.headers)
        if response.ok:
            self._record_operation(operation, started, "success")
            if raw:
                return response
            if not response.content:
                return None
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}
        if not isinstance(payload, dict):
            payload = {"message": json.dumps(payload)}
        self.trace.update_from_payload(payload)
        self._record_operation(operation, started, "error")
        raise map_error(response.status_code, payload, self.trace.trace_id)

    def _record_operation(self, operation: str, started: float, result: str) -> None:
        self.last_operation = LastOperation(
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=self.trace.trace_id if self.trace else None,
        )
