"""
Per-call request builders and the completion-polling protocol.

A request is built fluently, and then executed once::

    result = await (client.get()
                    .namespace('default')
                    .resource('pods')
                    .selector_param('labelSelector', {'app': 'web'})
                    .timeout(10)
                    .do())

The server can accept an action but not finish it by the time it responds.
In that case, it responds with a ``Status`` object with ``status: Working``
and with the name of a server-side operation in its details. Unless the request
is synchronous, its poller is asked whether and how to check that operation
again. The poller returns a new request (usually a single GET of the operation)
and a flag whether to continue. The cycle is repeated with the new request
until the server reports anything but an in-progress status, or until
the poller declines to continue -- in which case the last in-progress status
is returned to the caller as the result (it is not an error).

The polls are strictly sequential: there is at most one request in flight
for every original call, and no background tasks are spawned.
"""
import asyncio
import collections.abc
import contextlib
import dataclasses
import itertools
import urllib.parse
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import aiohttp

from kuberest._cogs.clients import errors
from kuberest._cogs.configs import configuration
from kuberest._cogs.helpers import typedefs
from kuberest._cogs.structs import bodies, codecs
from kuberest._core.actions import loggers

# A poller decides, by the operation name, whether and how to poll it again.
PollFn = Callable[[str], Awaitable[tuple['Request | None', bool]]]

# Either a ready-to-use selector string, or the labels to be matched exactly.
Selector = str | Mapping[str, str]


@dataclasses.dataclass(frozen=True)
class Result:
    """
    The outcome of an executed request: the last response in the polling chain.
    """
    raw: bytes
    body: Any
    status_code: int
    created: bool = False

    @property
    def working(self) -> bool:
        """ Whether the action is still in progress on the server. """
        return bodies.is_working(self.body)

    @property
    def operation(self) -> str | None:
        """ The name of the in-progress operation, if any. """
        return bodies.get_operation_name(self.body)


class Request:
    """
    A builder of a single logical call, including all its polls.

    All the configuring methods return the same builder for chaining.
    The builder is consumed by :meth:`do`, and cannot be executed twice.
    """

    def __init__(
            self,
            session: aiohttp.ClientSession | None,
            verb: str,
            base_url: str,
            codec: codecs.Codec,
            namespace_in_query: bool = False,
            preserve_resource_case: bool = False,
            *,
            settings: configuration.ClientSettings | None = None,
            logger: typedefs.Logger | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._verb = verb
        self._base_url = base_url
        self._codec = codec
        self._namespace_in_query = namespace_in_query
        self._preserve_resource_case = preserve_resource_case
        self._settings = settings if settings is not None else configuration.ClientSettings()
        self._logger = logger if logger is not None else loggers.logger

        self._prefix: list[str] = []
        self._suffix: list[str] = []
        self._namespace: str | None = None
        self._resource: str | None = None
        self._name: str | None = None
        self._params: list[tuple[str, str]] = []
        self._body: bytes | None = None
        self._timeout: float | None = None
        self._sync: bool = False
        self._poller: PollFn | None = None
        self._consumed = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self._verb} {self.url}>'

    #
    # Read-only views of the configured values.
    #

    @property
    def method(self) -> str:
        return self._verb

    @property
    def payload(self) -> bytes | None:
        return self._body

    @property
    def request_timeout(self) -> float | None:
        return self._timeout

    @property
    def synchronous(self) -> bool:
        return self._sync

    @property
    def active_poller(self) -> PollFn | None:
        return self._poller

    @property
    def url(self) -> str:
        """
        The final URL as it will be requested (regardless of the current verb).

        Non-legacy URLs put the namespace into the path, lower-case the resource::

            <base>/<prefix>/namespaces/<namespace>/<resource>/<name>/<suffix>?<params>

        Legacy URLs put the namespace into the query, preserve the resource's case::

            <base>/<prefix>/<Resource>/<name>/<suffix>?namespace=<namespace>&<params>
        """
        resource = self._resource
        if resource is not None and not self._preserve_resource_case:
            resource = resource.lower()

        namespaced_in_path = bool(self._namespace) and not self._namespace_in_query
        parts: list[str | None] = [
            *self._prefix,
            'namespaces' if namespaced_in_path else None,
            self._namespace if namespaced_in_path else None,
            resource,
            self._name,
            *self._suffix,
        ]

        query: list[tuple[str, str]] = list(self._params)
        if self._namespace and self._namespace_in_query:
            query.append(('namespace', self._namespace))

        # The sync mode and its timeout are rendered here, so that they can be set in any order.
        if self._sync:
            query.append(('sync', 'true'))
            if self._timeout:
                query.append(('timeout', format_duration(self._timeout)))

        # The base URL is normalised by the client: it always ends with a slash, and has no query.
        path = '/'.join(urllib.parse.quote(part.strip('/')) for part in parts if part)
        qs = urllib.parse.urlencode(sorted(query, key=lambda kv: kv[0]), encoding='utf-8')
        return self._base_url + path + ('?' if qs else '') + qs

    #
    # Chainable configuration.
    #

    def prefix(self, *segments: str) -> 'Request':
        """ Add path segments before the namespace/resource/name part. """
        self._prefix.extend(segments)
        return self

    def suffix(self, *segments: str) -> 'Request':
        """ Add path segments after the namespace/resource/name part. """
        self._suffix.extend(segments)
        return self

    def namespace(self, namespace: str | None) -> 'Request':
        if self._namespace is not None:
            raise ValueError(f"Namespace is already set: {self._namespace!r}")
        self._namespace = namespace or None
        return self

    def resource(self, resource: str) -> 'Request':
        if self._resource is not None:
            raise ValueError(f"Resource is already set: {self._resource!r}")
        self._resource = resource
        return self

    def name(self, name: str) -> 'Request':
        if not name:
            raise ValueError("Resource name cannot be empty.")
        if self._name is not None:
            raise ValueError(f"Resource name is already set: {self._name!r}")
        self._name = name
        return self

    def param(self, key: str, value: str) -> 'Request':
        self._params.append((key, value))
        return self

    def selector_param(self, key: str, selector: Selector | None) -> 'Request':
        """
        Add a label selector as a query parameter; empty selectors add nothing.
        """
        if isinstance(selector, collections.abc.Mapping):
            selector = ','.join(f'{label}={value}' for label, value in sorted(selector.items()))
        if selector:
            self._params.append((key, selector))
        return self

    def body(self, obj: bytes | str | Mapping[str, Any]) -> 'Request':
        match obj:
            case bytes():
                self._body = obj
            case str():
                self._body = obj.encode('utf-8')
            case collections.abc.Mapping():
                self._body = self._codec.encode(obj)
            case _:
                raise TypeError(f"Unsupported body type: {type(obj)!r}")
        return self

    def timeout(self, timeout: float | None) -> 'Request':
        self._timeout = timeout or None
        return self

    def sync(self, sync: bool) -> 'Request':
        self._sync = bool(sync)
        return self

    def poller(self, poller: PollFn | None) -> 'Request':
        self._poller = poller
        return self

    def no_poll(self) -> 'Request':
        return self.poller(None)

    #
    # Execution.
    #

    async def do(self) -> Result:
        """
        Perform the request, and poll for its completion if needed.

        API errors of any request in the polling chain are escalated as is.
        """
        self._consume()
        request = self
        while True:
            result = await request._perform()
            next_request = await request._next_poll(result)
            if next_request is None:
                return result
            next_request._consume()
            request = next_request

    def _consume(self) -> None:
        if self._consumed:
            raise RuntimeError(f"The request is already executed: {self!r}")
        self._consumed = True

    async def _next_poll(self, result: Result) -> 'Request | None':
        if self._sync or self._poller is None:
            return None
        name = result.operation
        if name is None:
            return None
        next_request, proceed = await self._poller(name)
        return next_request if proceed else None

    async def _perform(self) -> Result:
        url = self.url
        headers = {'Content-Type': self._codec.content_type} if self._body is not None else {}

        # The request-level timeout always wins over the settings' default one.
        timeout = aiohttp.ClientTimeout(
            total=self._timeout or self._settings.networking.request_timeout,
            sock_connect=self._settings.networking.connect_timeout,
        )

        backoffs = self._settings.networking.error_backoffs
        backoffs = backoffs if isinstance(backoffs, collections.abc.Iterable) else [backoffs]
        count = len(backoffs) + 1 if isinstance(backoffs, collections.abc.Sized) else None
        backoff: float | None
        async with contextlib.AsyncExitStack() as stack:
            session = self._session
            if session is None:
                session = await stack.enter_async_context(aiohttp.ClientSession())

            for retry, backoff in enumerate(itertools.chain(backoffs, [None]), start=1):
                idx = f"#{retry}/{count}" if count is not None else f"#{retry}"
                what = f"{self._verb.upper()} {url}"
                try:
                    if retry > 1:
                        self._logger.debug(f"Request attempt {idx}: {what}")

                    async with session.request(
                        method=self._verb,
                        url=url,
                        data=self._body,
                        headers=headers,
                        timeout=timeout,
                    ) as response:
                        raw = await response.read()
                        payload = self._decode(response, raw)
                        errors.check_response(response, payload)

                except (aiohttp.ClientConnectionError, errors.APIServerError, asyncio.TimeoutError) as e:
                    if backoff is None:  # i.e. the last or the only attempt.
                        self._logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                        raise
                    else:
                        self._logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
                        await asyncio.sleep(backoff)
                else:
                    if retry > 1:
                        self._logger.debug(f"Request attempt {idx} succeeded: {what}")
                    return Result(
                        raw=raw,
                        body=payload,
                        status_code=response.status,
                        created=response.status == 201,
                    )

        raise RuntimeError("Broken retryable routine.")  # impossible, but needed for type-checking.

    def _decode(self, response: aiohttp.ClientResponse, raw: bytes) -> Any:
        # Error pages of proxies and load balancers are often not in the API's encoding.
        # They are reported by their HTTP statuses then. Undecodable successes are escalated.
        try:
            return self._codec.decode(raw)
        except ValueError:
            if response.status >= 400:
                return None
            raise


def format_duration(seconds: float) -> str:
    """
    Render the duration as understood by the API servers (Go-style: ``10s``, ``1500ms``).

    Sub-millisecond durations are rounded up to ``1ms``: zero means "no timeout" to the servers.
    """
    if seconds == int(seconds):
        return f'{int(seconds)}s'
    return f'{max(1, round(seconds * 1000))}ms'
