"""
Encoding and decoding schemes between the wire payloads and the objects.

The client treats the codec as an opaque dependency: it only passes it
to the requests, which encode the bodies and decode the responses with it.
Any object with the same shape as :class:`Codec` can be used.
"""
import json
from typing import Any

from typing_extensions import Protocol


class Codec(Protocol):

    @property
    def content_type(self) -> str: ...

    def encode(self, obj: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class JSONCodec:
    """
    The default codec: JSON in UTF-8, as spoken by Kubernetes-like API servers.
    """

    content_type = 'application/json'

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'

    def encode(self, obj: Any) -> bytes:
        return json.dumps(obj, separators=(',', ':')).encode('utf-8')

    def decode(self, data: bytes) -> Any:
        # No-content responses (e.g. of some deletions) have nothing to decode.
        if not data.strip():
            return None
        return json.loads(data.decode('utf-8'))
