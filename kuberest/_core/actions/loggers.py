"""
Logging of the client's activities: formatters, adapters, and configuration.

The client logs only the advisory information: e.g. the polls of operations,
and the retries of the failed requests. The logs never affect the control flow.

The messages about specific API objects (e.g. operations being polled)
carry a reference to those objects in their records. The references are
rendered as the messages' prefixes in text logs (``[ns/name] message``),
and as a separate field in JSON logs (``{"object": {...}, ...}``).
"""
import copy
import enum
import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, TextIO

from pythonjsonlogger.core import RESERVED_ATTRS
from pythonjsonlogger.json import JsonFormatter

from kuberest._cogs.helpers import typedefs

logger = logging.getLogger('kuberest.clients')

# A key for object references in JSON logs, as seen by the log parsers.
DEFAULT_JSON_REFKEY = 'object'


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # not used for formatting, only for detection


class ObjectFormatter(logging.Formatter):
    pass


class ObjectTextFormatter(ObjectFormatter, logging.Formatter):
    pass


class ObjectJsonFormatter(ObjectFormatter, JsonFormatter):
    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        # Avoid type checking, as the args are not in the parent consructor.
        reserved_attrs = set(kwargs.pop('reserved_attrs', RESERVED_ATTRS))
        reserved_attrs |= {'api_ref'}
        kwargs |= dict(reserved_attrs=reserved_attrs)
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, Any],
            record: logging.LogRecord,
            message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self._refkey and hasattr(record, 'api_ref'):
            log_record[self._refkey] = getattr(record, 'api_ref')

        if 'severity' not in log_record:
            log_record['severity'] = (
                "debug" if record.levelno <= logging.DEBUG else
                "info" if record.levelno <= logging.INFO else
                "warn" if record.levelno <= logging.WARNING else
                "error" if record.levelno <= logging.ERROR else
                "fatal")


class ObjectPrefixingMixin(ObjectFormatter):
    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, 'api_ref'):
            ref = getattr(record, 'api_ref')
            parts = [ref.get('namespace'), ref.get('resource'), ref.get('name')]
            prefix = '[' + '/'.join(part for part in parts if part) + ']'
            record = copy.copy(record)  # shallow
            record.msg = f"{prefix} {record.msg}"
        return super().format(record)


class ObjectPrefixingTextFormatter(ObjectPrefixingMixin, ObjectTextFormatter):
    pass


class ObjectPrefixingJsonFormatter(ObjectPrefixingMixin, ObjectJsonFormatter):
    pass


class ObjectLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the API object identifiers for formatting.

    Only the identifiers are carried, not the objects themselves:
    the same structure as the URL parts used to address the objects.
    """

    def __init__(
            self,
            base: typedefs.Logger | None = None,
            *,
            resource: str,
            name: str | None = None,
            namespace: str | None = None,
    ) -> None:
        super().__init__(base if base is not None else logger, dict(
            api_ref=dict(
                resource=resource,
                namespace=namespace,
                name=name,
            ),
        ))

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # Native logging overwrites the message's extra with the adapter's extra.
        # We merge them, so that both message's & adapter's extras are available.
        kwargs["extra"] = dict(self.extra or {}) | kwargs.get('extra', {})
        return msg, kwargs


class OperationLogger(ObjectLogger):
    """ The same as :class:`ObjectLogger`, but for the server-side operations. """

    def __init__(self, base: typedefs.Logger | None = None, *, name: str) -> None:
        super().__init__(base, resource='operations', name=name)


# Used to identify and remove our own handlers on re-configuration (e.g. in CLI tests).
if TYPE_CHECKING:
    class _OwnStreamHandler(logging.StreamHandler[TextIO]):
        pass
else:
    class _OwnStreamHandler(logging.StreamHandler):
        pass


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> None:
    log_level = 'DEBUG' if debug or verbose else 'WARNING' if quiet else 'INFO'
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey)
    handler = _OwnStreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers[:] = [h for h in root.handlers if not isinstance(h, _OwnStreamHandler)]
    root.addHandler(handler)
    root.setLevel(log_level)

    # Prevent the low-level logging unless in the debug mode. Keep only the client's messages.
    # For no-propagation loggers, add a dummy null handler to prevent printing the messages.
    for name in ['asyncio', 'aiohttp']:
        lowlevel = logging.getLogger(name)
        lowlevel.propagate = bool(debug)
        if not debug:
            lowlevel.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> ObjectFormatter:
    log_prefix = log_prefix if log_prefix is not None else bool(log_format is not LogFormat.JSON)
    match log_format:
        case LogFormat.JSON:
            if log_prefix:
                return ObjectPrefixingJsonFormatter(refkey=log_refkey)
            else:
                return ObjectJsonFormatter(refkey=log_refkey)
        case LogFormat():
            if log_prefix:
                return ObjectPrefixingTextFormatter(log_format.value)
            else:
                return ObjectTextFormatter(log_format.value)
        case str():
            if log_prefix:
                return ObjectPrefixingTextFormatter(log_format)
            else:
                return ObjectTextFormatter(log_format)
        case _:
            raise ValueError(f"Unsupported log format: {log_format!r}")
