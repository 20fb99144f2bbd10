"""
The structures coming from the API server, as far as the client needs them.

The client does not define the schema of the API objects: they are passed
to the callers as decoded by the codec (usually, plain dicts). The only kind
that the client interprets itself is ``Status``: it carries the reasons of
failures, and also the references to the in-progress asynchronous operations.

For strict type-checking, the status is detailed to the per-field level
(``TypedDict`` instead of just ``Mapping[Any, Any]``). The servers can send
arbitrary fields at runtime, which are not declared here.
"""
import collections.abc
from collections.abc import Collection, Mapping
from typing import Any

from typing_extensions import Literal, TypedDict, TypeGuard

# A status of an action that is accepted by the server but is not finished yet.
STATUS_WORKING = 'Working'
STATUS_SUCCESS = 'Success'
STATUS_FAILURE = 'Failure'


class RawStatusCause(TypedDict, total=False):
    field: str
    reason: str
    message: str


class RawStatusDetails(TypedDict, total=False):
    name: str
    id: str  # the legacy key of the operation's name.
    uid: str
    retryAfterSeconds: int
    kind: str
    group: str
    causes: Collection[RawStatusCause]


class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure", "Working"]
    reason: str
    message: str
    details: RawStatusDetails


def is_status(payload: Any) -> TypeGuard[RawStatus]:
    """
    Check if the decoded payload is a ``Status`` object, not a regular resource.
    """
    return isinstance(payload, collections.abc.Mapping) and payload.get('kind') == 'Status'


def is_working(payload: Any) -> bool:
    """
    Check if the decoded payload reports an action still running on the server.
    """
    return is_status(payload) and payload.get('status') == STATUS_WORKING


def is_failure(payload: Any) -> bool:
    return is_status(payload) and payload.get('status') == STATUS_FAILURE


def get_operation_name(payload: Any) -> str | None:
    """
    Extract the operation's name from an in-progress status, if it is there.

    Older API versions refer to the operation by ``details.id``,
    newer ones by ``details.name``. An empty name is the same as none.
    """
    if not is_working(payload):
        return None
    details: Mapping[str, Any] = payload.get('details') or {}
    name = details.get('name') or details.get('id')
    return str(name) if name else None
