import dataclasses
import json
import logging
import re
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp.web
import aresponses as aresponses_lib
import pytest

from kuberest import ClientSettings, RESTClient


def pytest_configure(config):
    config.addinivalue_line('markers', "legacy: use the legacy URL conventions in the client.")


@pytest.fixture()
def settings():
    settings = ClientSettings()
    settings.networking.error_backoffs = []  # prevent retries in the API tests.
    return settings


#
# Mocks for the API server. Reasons:
# 1. We test the client, so the server should be simulated and assumed to be functional.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
async def aresponses():
    """
    The fake API server: the same as of ``aresponses``, but bound to the test's own loop.
    """
    async with aresponses_lib.ResponsesMockServer() as server:
        yield server


@pytest.fixture()
async def session(aresponses):
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture()
def client(request, hostname, session, settings):
    legacy = request.node.get_closest_marker('legacy') is not None
    return RESTClient(f'http://{hostname}/api', 'v1', legacy_behavior=legacy,
                      session=session, settings=settings)


@dataclasses.dataclass(frozen=True)
class SeenRequest:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    data: Any


@pytest.fixture()
def resp_mocker(aresponses):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which return a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effects).

    The difference from passing the responses directly to `aresponses.add`
    is that it is possible to assert on whether the response was handled
    by that callback at all (i.e. HTTP URL & method matched), and with what
    request's content: those are remembered in the mock's ``seen`` list.

    Sample usage::

        def test_me(resp_mocker, aresponses):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
            assert callback.seen[0].query == {}
    """
    def resp_maker(*args, **kwargs):
        actual_response = MagicMock(*args, **kwargs)
        seen: list[SeenRequest] = []

        async def resp_mock_effect(request):
            # The request's content can be read inside of the handler only. We preserve
            # the data into a separate list, so that they could be asserted later.
            raw = await request.read()
            try:
                data = json.loads(raw) if raw else None
            except json.JSONDecodeError:
                data = raw.decode('utf-8')
            seen.append(SeenRequest(
                method=request.method,
                path=request.path,
                query=dict(request.query),
                headers=dict(request.headers),
                data=data,
            ))

            # Get a response/error as it was intended (via return_value/side_effect).
            return actual_response()

        mock = AsyncMock(side_effect=resp_mock_effect)
        mock.seen = seen
        return mock
    return resp_maker


def working_status(name: str, key: str = 'name') -> aiohttp.web.Response:
    """ An in-progress status of an asynchronous operation, as the servers report it. """
    return aiohttp.web.json_response({
        'apiVersion': 'v1',
        'kind': 'Status',
        'status': 'Working',
        'reason': 'Working',
        'details': {key: name},
    }, status=202)


@pytest.fixture()
def working():
    return working_status


#
# Helpers for the logging checks.
#

@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn


@pytest.fixture()
def debug_logs(caplog):
    with caplog.at_level(logging.DEBUG):
        yield caplog
