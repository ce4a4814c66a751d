"""
Shared requests plumbing for the HTTP collaborators.

One ``requests.Session`` per client, JSON in and out, and every failure mapped
to a ``ServiceError`` subclass. Nothing is retried.
"""
from typing import Any, Dict, Optional, Type

import requests

from backend_ops.exceptions import ServiceError
from backend_ops.monitoring.logger import get_logger

logger = get_logger(__name__)


def _error_details(response: requests.Response) -> tuple:
    """(message, code) from a JSON error body, falling back to the raw text."""
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or "").strip()[:300], None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error_description") or body.get("error") or body.get("msg")
        code = body.get("code") or body.get("error_code")
        return str(message or body)[:300], (str(code) if code is not None else None)
    return str(body)[:300], None


class ServiceClient:
    """Base class: base URL, default headers, timeout, error mapping."""

    error_class: Type[ServiceError] = ServiceError
    service_name = "service"

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and return the decoded JSON body (None for empty bodies).

        Raises:
            ServiceError subclass: transport failure or non-2xx response
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise self.error_class(f"{self.service_name} unreachable at {self.base_url}: {e}") from e

        if not response.ok:
            message, code = _error_details(response)
            logger.debug(
                "SERVICE_REQUEST_FAILED",
                service=self.service_name,
                method=method,
                path=path,
                status=response.status_code,
                code=code,
            )
            raise self.error_class(
                f"{self.service_name} {method} {path} failed ({response.status_code}): {message}",
                status_code=response.status_code,
                code=code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise self.error_class(f"{self.service_name} returned a non-JSON body for {path}") from e

    def _request_object(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        """Like ``_request`` but the body must be a JSON object (empty body -> {})."""
        body = self._request(method, path, **kwargs)
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise self.error_class(
                f"{self.service_name} returned {type(body).__name__} for {path}, expected a JSON object"
            )
        return body

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
