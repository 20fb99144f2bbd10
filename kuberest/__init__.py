"""
The main module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from kuberest._cogs.clients.auth import (
    ConnectionInfo,
    make_session,
)
from kuberest._cogs.clients.errors import (
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
    APIServerError,
)
from kuberest._cogs.clients.requesting import (
    PollFn,
    Request,
    Result,
    Selector,
)
from kuberest._cogs.clients.restclient import (
    RESTClient,
)
from kuberest._cogs.configs.configuration import (
    ClientSettings,
    NetworkingSettings,
    PollingSettings,
)
from kuberest._cogs.helpers.typedefs import (
    Logger,
)
from kuberest._cogs.helpers.versions import (
    version as __version__,
)
from kuberest._cogs.structs.bodies import (
    RawStatus,
    RawStatusCause,
    RawStatusDetails,
)
from kuberest._cogs.structs.codecs import (
    Codec,
    JSONCodec,
)
from kuberest._core.actions.loggers import (
    LogFormat,
    configure,
)

__all__ = [
    'ConnectionInfo',
    'make_session',
    'APIError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIConflictError',
    'APIServerError',
    'PollFn',
    'Request',
    'Result',
    'Selector',
    'RESTClient',
    'ClientSettings',
    'NetworkingSettings',
    'PollingSettings',
    'Logger',
    '__version__',
    'RawStatus',
    'RawStatusCause',
    'RawStatusDetails',
    'Codec',
    'JSONCodec',
    'LogFormat',
    'configure',
]
