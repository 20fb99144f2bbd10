"""
The entry point for the verb-based requests to the API server.

The client only holds the connection-level configuration, and produces
the pre-configured request builders (see :mod:`requesting`) for every call.
It performs no network activity on its own, and never inspects the results
or the errors of the requests: those belong to the callers.

Example::

    async with aiohttp.ClientSession() as session:
        client = kuberest.RESTClient('https://localhost:6443/api', 'v1', session=session)
        result = await client.get().namespace('default').resource('pods').name('web-0').do()
        pod = result.body
"""
import asyncio
import urllib.parse

import aiohttp

from kuberest._cogs.clients import requesting
from kuberest._cogs.configs import configuration
from kuberest._cogs.helpers import typedefs
from kuberest._cogs.structs import codecs
from kuberest._core.actions import loggers

# A fixed collection of the server-side asynchronous operations.
OPERATIONS = 'operations'


class RESTClient:
    """
    Impose common API conventions on a set of resource paths.

    The base URL is expected to point to an HTTP or HTTPS path that is the parent
    of one or more resources. The server should return a decodable API resource
    object, or a ``Status`` object with the information about the failure,
    or about the operation still in progress.

    All the public attributes can be changed after the construction, but only
    before the concurrent calls begin: the in-flight calls read them when
    their requests are built, and for polling.
    """

    legacy_behavior: bool
    """
    Whether the URLs should encode the namespace as a query param, and preserve
    the resource case -- for supporting the older API conventions.
    Newer clients should leave this false.
    """

    codec: codecs.Codec
    """ The encoding & decoding scheme of the requests' and responses' bodies. """

    session: aiohttp.ClientSession | None
    """ The transport. If not set, every request uses a temporary session of its own. """

    poller: requesting.PollFn | None
    """ The polling behaviour for the requests. If not set, :meth:`default_poll` is used. """

    sync: bool
    """ Whether the server is asked to finish the actions before responding. """

    poll_period: float
    """ The delay (in seconds) between the polls in :meth:`default_poll`; 0 disables it. """

    timeout: float | None
    """ The timeout (in seconds) for every request, unless set per request. """

    def __init__(
            self,
            base_url: str,
            api_version: str,
            codec: codecs.Codec | None = None,
            legacy_behavior: bool = False,
            *,
            session: aiohttp.ClientSession | None = None,
            settings: configuration.ClientSettings | None = None,
            logger: typedefs.Logger | None = None,
    ) -> None:
        super().__init__()
        self._base_url = normalize_base_url(base_url)
        self._api_version = api_version

        self.settings = settings if settings is not None else configuration.ClientSettings()
        self.logger = logger if logger is not None else loggers.logger
        self.codec = codec if codec is not None else codecs.JSONCodec()
        self.legacy_behavior = legacy_behavior
        self.session = session
        self.poller = None

        # Make asynchronous requests by default, and poll frequently for their completion.
        self.sync = self.settings.polling.sync
        self.poll_period = self.settings.polling.period
        self.timeout = None

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self._base_url} {self._api_version}>'

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def api_version(self) -> str:
        """ The API version this client is expected to use. """
        return self._api_version

    def verb(self, verb: str) -> requesting.Request:
        """
        Begin a request with a verb (GET, POST, PUT, DELETE).
        """
        poller = self.poller if self.poller is not None else self.default_poll
        return (
            requesting.Request(
                self.session,
                verb,
                self._base_url,
                self.codec,
                namespace_in_query=self.legacy_behavior,
                preserve_resource_case=self.legacy_behavior,
                settings=self.settings,
                logger=self.logger,
            )
            .poller(poller)
            .sync(self.sync)
            .timeout(self.timeout)
        )

    def post(self) -> requesting.Request:
        return self.verb('POST')

    def put(self) -> requesting.Request:
        return self.verb('PUT')

    def get(self) -> requesting.Request:
        return self.verb('GET')

    def delete(self) -> requesting.Request:
        return self.verb('DELETE')

    def operation(self, name: str) -> requesting.Request:
        """
        Begin a single check of an operation: it never waits or polls on its own.
        """
        return self.get().resource(OPERATIONS).name(name).sync(False).no_poll()

    async def default_poll(self, name: str) -> tuple[requesting.Request | None, bool]:
        """
        Wait for the poll period, and then check the operation again.

        The returned request polls with this same method, so the chain goes on
        until the server reports the operation as finished. If the poll period
        is zero, the polling is disabled, and the chain stops immediately.
        """
        if not self.poll_period:
            return None, False
        logger = loggers.OperationLogger(self.logger, name=name)
        logger.info(f"Waiting for completion of operation {name}")
        await asyncio.sleep(self.poll_period)
        return self.operation(name).poller(self.default_poll), True


def normalize_base_url(url: str) -> str:
    """
    Ensure the base URL ends with a slash, and has no query or fragment.

    The URLs of the requests are built by appending the sub-paths to it,
    so there must be no ambiguity of the separators.
    """
    parsed = urllib.parse.urlsplit(url)  # raises ValueError on some malformed URLs.
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Malformed base URL, a scheme and a host are required: {url!r}")
    path = parsed.path if parsed.path.endswith('/') else parsed.path + '/'
    return urllib.parse.urlunsplit((parsed.scheme, parsed.netloc, path, '', ''))
