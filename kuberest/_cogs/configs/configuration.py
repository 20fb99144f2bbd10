"""
All configuration flags, options, settings to fine-tune the client.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

The settings are the defaults for the whole process or for a group of clients.
The per-client and per-request values (e.g. ``client.poll_period`` or
``request.timeout(...)``) are initialised from them and override them.

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
"""
import dataclasses
from collections.abc import Iterable


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: float | None = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout (in seconds) for all requests without their own timeout.

    The request-level timeout, if set via ``request.timeout(...)``
    or ``client.timeout``, always takes precedence over this one.
    """

    connect_timeout: float | None = None
    """
    A timeout (in seconds) for establishing the connection to the server.
    """

    error_backoffs: Iterable[float] = (1, 1, 2, 4)
    """
    Backoffs (in seconds) for retrying the failed requests.

    Only the network-level errors and the server-side (5xx) errors are retried.
    The client-side (4xx) errors are escalated immediately.

    The number of retries is the number of backoffs; after the last one,
    the error is escalated to the caller as is. An empty sequence disables
    the retries. Infinite generators are supported, but not recommended.
    """


@dataclasses.dataclass
class PollingSettings:

    period: float = 2.0
    """
    How long (in seconds) to wait between the polls of an operation.

    The new clients take it as their ``poll_period``.
    Zero disables the polling: the in-progress status is returned as is.
    """

    sync: bool = False
    """
    Should the new clients ask the server to finish the actions synchronously?

    In the synchronous mode, the server is asked to hold the response until
    the action is done (``?sync=true``); if it still reports the action
    as in-progress, that status is returned to the caller without polling.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    polling: PollingSettings = dataclasses.field(default_factory=PollingSettings)
