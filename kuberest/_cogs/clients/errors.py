"""
API errors.

The underlying client library (now, ``aiohttp``) can be replaced in the future.
We cannot rely on embedding its exceptions all over the code of the callers.
Hence, we have our own hierarchy of exceptions for the API errors.

Low-level errors, such as the network connectivity issues, SSL/HTTPS issues,
timeouts, etc, are escalated from the client library as is, since they are
related not to the domain of the API, but rather to the networking.

The original errors of the client library are chained as the causes of our own
specialised errors -- for better explainability of errors in the stack traces.

Some selected reasons of API errors are made into their own classes,
so that they could be intercepted and handled by the callers.
All other reasons are raised as the base error class and are indistinguishable
from each other (except via the exception's fields).

Unlike the underlying client library's errors, the API errors contain more
information about the reasons -- as provided by the API in its response bodies
(``Status`` objects), not guessed only by HTTP statuses alone.

An in-progress status of an asynchronous operation is not an error.
"""
from typing import Any

import aiohttp

from kuberest._cogs.structs import bodies


class APIError(Exception):

    def __init__(
            self,
            payload: bodies.RawStatus | None,
            *,
            status: int,
    ) -> None:
        message = payload.get('message') if payload else None
        super().__init__(message, payload)
        self._status = status
        self._payload = payload

    @property
    def status(self) -> int:
        return self._status

    @property
    def code(self) -> int | None:
        return self._payload.get('code') if self._payload else None

    @property
    def reason(self) -> str | None:
        return self._payload.get('reason') if self._payload else None

    @property
    def message(self) -> str | None:
        return self._payload.get('message') if self._payload else None

    @property
    def details(self) -> bodies.RawStatusDetails | None:
        return self._payload.get('details') if self._payload else None


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


class APIServerError(APIError):
    pass


def check_response(
        response: aiohttp.ClientResponse,
        payload: Any,
) -> None:
    """
    Check for specialised API errors, and raise with extended information.

    The response's body must be already read and decoded by the caller:
    the codec is the caller's choice, not ours.

    Besides the HTTP-level errors, a successful HTTP status with a failed
    ``Status`` object in the body is also an error.
    """
    failed = response.status >= 400 or bodies.is_failure(payload)
    if not failed:
        return

    # Better be safe: who knows which sensitive information can be dumped unless kind==Status.
    status: bodies.RawStatus | None = payload if bodies.is_status(payload) else None

    # For 2xx responses with a failed status, the status's own code is more precise.
    code = response.status
    if code < 400 and status is not None and isinstance(status.get('code'), int):
        code = status['code']

    cls = (
        APIUnauthorizedError if code == 401 else
        APIForbiddenError if code == 403 else
        APINotFoundError if code == 404 else
        APIConflictError if code == 409 else
        APIServerError if code >= 500 else
        APIError
    )

    # Raise the package-specific error while keeping the original error in scope.
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(status, status=code) from e
    raise cls(status, status=code)
