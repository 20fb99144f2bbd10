"""
Transport handles (sessions) prepared from the connection credentials.

The client itself accepts any ready-to-use ``aiohttp.ClientSession``
(or none, in which case a plain temporary session is used per request).
This module is a convenience for the callers and for the CLI: it builds
a session with the TLS and authentication settings of a single endpoint.
"""
import base64
import contextlib
import dataclasses
import os
import ssl
import tempfile

import aiohttp

from kuberest._cogs.helpers import versions


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.
    """
    server: str  # e.g. "https://localhost:443/api"
    ca_path: str | None = None
    ca_data: bytes | None = None
    insecure: bool | None = None
    username: str | None = None
    password: str | None = None
    scheme: str | None = None  # RFC-7235/5.1: e.g. Bearer, Basic, Digest, etc.
    token: str | None = None
    certificate_path: str | None = None
    certificate_data: bytes | None = None
    private_key_path: str | None = None
    private_key_data: bytes | None = None


def make_session(info: ConnectionInfo) -> aiohttp.ClientSession:
    """
    Build a session for an endpoint: SSL, client certificates, tokens, basic auth.

    The session must be closed by the caller (``async with session: ...``).
    """

    # Some SSL data are not accepted directly, so we have to use temp files.
    # Do not even create temporary files if there is no need. It can be a readonly filesystem.
    with contextlib.ExitStack() as stack:

        cert_path: str | bytes | os.PathLike[str] | os.PathLike[bytes] | None
        if info.certificate_path:
            cert_path = info.certificate_path
        elif info.certificate_data:
            cert_file = stack.enter_context(tempfile.NamedTemporaryFile(buffering=0))
            cert_file.write(decode_to_pem(info.certificate_data).encode('ascii'))
            cert_path = cert_file.name
        else:
            cert_path = None

        pkey_path: str | bytes | os.PathLike[str] | os.PathLike[bytes] | None
        if info.private_key_path:
            pkey_path = info.private_key_path
        elif info.private_key_data:
            pkey_file = stack.enter_context(tempfile.NamedTemporaryFile(buffering=0))
            pkey_file.write(decode_to_pem(info.private_key_data).encode('ascii'))
            pkey_path = pkey_file.name
        else:
            pkey_path = None

        # The SSL part (both client certificate auth and CA verification).
        context = ssl.create_default_context(
            purpose=ssl.Purpose.SERVER_AUTH,
            cafile=info.ca_path,
            cadata=decode_to_pem(info.ca_data) if info.ca_data is not None else None,
        )
        if cert_path and pkey_path:
            context.load_cert_chain(certfile=cert_path, keyfile=pkey_path)

    if info.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    # The token auth part.
    headers: dict[str, str] = {}
    if info.scheme and info.token:
        headers['Authorization'] = f'{info.scheme} {info.token}'
    elif info.scheme:
        headers['Authorization'] = f'{info.scheme}'
    elif info.token:
        headers['Authorization'] = f'Bearer {info.token}'

    # The basic auth part, only if there is no token auth.
    if 'Authorization' not in headers and info.username and info.password:
        headers['Authorization'] = aiohttp.BasicAuth(info.username, info.password).encode()

    # It is a good practice to self-identify a bit.
    headers['User-Agent'] = f'kuberest/{versions.version or "unknown"}'

    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(
            limit=0,
            ssl=context,
        ),
        headers=headers,
    )


def decode_to_pem(data: str | bytes) -> str:
    match data:
        case str() if data.startswith('-----BEGIN '):
            return data
        case bytes() if data.startswith(b'-----BEGIN '):
            return data.decode('ascii')
        case _:
            return base64.b64decode(data).decode('ascii')
