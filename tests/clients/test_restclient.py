import asyncio

import pytest

from kuberest import ClientSettings, JSONCodec, RESTClient, Request


@pytest.mark.parametrize('url, expected', [
    ('http://host', 'http://host/'),
    ('http://host/', 'http://host/'),
    ('http://host/api', 'http://host/api/'),
    ('http://host/api/', 'http://host/api/'),
    ('https://host:6443/apis/example.com/v1', 'https://host:6443/apis/example.com/v1/'),
])
def test_base_url_ends_with_exactly_one_slash(url, expected):
    client = RESTClient(url, 'v1')
    assert client.base_url == expected
    assert not client.base_url.endswith('//')


@pytest.mark.parametrize('url', [
    'http://host/api?watch=true',
    'http://host/api#fragment',
    'http://host/api?watch=true#fragment',
    'http://host/api/?',
    'http://host/api/#',
])
def test_base_url_has_no_query_and_no_fragment(url):
    client = RESTClient(url, 'v1')
    assert client.base_url == 'http://host/api/'


def test_base_url_normalization_is_idempotent():
    client1 = RESTClient('http://host/api', 'v1')
    client2 = RESTClient(client1.base_url, 'v1')
    assert client2.base_url == client1.base_url == 'http://host/api/'


@pytest.mark.parametrize('url', [
    '',
    'host/api',
    '/api',
    'http://',
    'http://[::1/api',
])
def test_malformed_base_url_fails_fast(url):
    with pytest.raises(ValueError):
        RESTClient(url, 'v1')


def test_api_version_is_kept_as_given():
    client = RESTClient('http://host/api', 'v1beta1')
    client.legacy_behavior = True
    client.sync = True
    client.poll_period = 0
    client.timeout = 10
    assert client.api_version == 'v1beta1'


def test_api_version_and_base_url_are_read_only():
    client = RESTClient('http://host/api', 'v1')
    with pytest.raises(AttributeError):
        client.api_version = 'v2'
    with pytest.raises(AttributeError):
        client.base_url = 'http://other/'


def test_defaults():
    client = RESTClient('http://host/api', 'v1')
    assert client.sync is False
    assert client.poll_period == 2.0
    assert client.timeout is None
    assert client.poller is None
    assert client.session is None
    assert client.legacy_behavior is False
    assert isinstance(client.codec, JSONCodec)


def test_defaults_from_settings():
    settings = ClientSettings()
    settings.polling.period = 0.5
    settings.polling.sync = True
    client = RESTClient('http://host/api', 'v1', settings=settings)
    assert client.poll_period == 0.5
    assert client.sync is True


def test_codec_and_legacy_flag_from_arguments():
    codec = JSONCodec()
    client = RESTClient('http://host/api', 'v1', codec, True)
    assert client.codec is codec
    assert client.legacy_behavior is True


@pytest.mark.parametrize('method, verb', [
    ('get', 'GET'),
    ('post', 'POST'),
    ('put', 'PUT'),
    ('delete', 'DELETE'),
])
def test_shortcuts_are_verbs(method, verb):
    client = RESTClient('http://host/api', 'v1')
    request = getattr(client, method)()
    assert isinstance(request, Request)
    assert request.method == verb
    assert request.url == 'http://host/api/'


def test_verb_is_passed_as_is():
    client = RESTClient('http://host/api', 'v1')
    request = client.verb('PATCH')
    assert request.method == 'PATCH'


def test_verb_carries_the_client_configuration():
    client = RESTClient('http://host/api', 'v1')
    client.sync = True
    client.timeout = 10
    request = client.verb('GET')
    assert request.synchronous is True
    assert request.request_timeout == 10
    assert request.active_poller == client.default_poll


def test_verb_carries_the_custom_poller():
    async def poller(name):
        return None, False

    client = RESTClient('http://host/api', 'v1')
    client.poller = poller
    request = client.get()
    assert request.active_poller is poller


def test_verbs_produce_independent_requests():
    client = RESTClient('http://host/api', 'v1')
    request1 = client.verb('GET')
    request2 = client.verb('GET')
    assert request1 is not request2

    request1.timeout(123).sync(True).resource('pods').name('pod1').param('a', 'b')
    assert request2.request_timeout is None
    assert request2.synchronous is False
    assert request2.url == 'http://host/api/'


def test_verbs_do_not_modify_the_client():
    client = RESTClient('http://host/api', 'v1')
    client.get().timeout(123).sync(True).no_poll()
    assert client.timeout is None
    assert client.sync is False
    assert client.poller is None


def test_operation_is_a_single_nonpolling_get():
    client = RESTClient('http://host/api', 'v1')
    client.sync = True  # must be overridden
    request = client.operation('op1')
    assert request.method == 'GET'
    assert request.url == 'http://host/api/operations/op1'
    assert request.synchronous is False
    assert request.active_poller is None


@pytest.mark.legacy
def test_operation_url_in_legacy_mode():
    client = RESTClient('http://host/api', 'v1beta1', legacy_behavior=True)
    request = client.operation('op1')
    assert request.url == 'http://host/api/operations/op1'


@pytest.mark.looptime
async def test_default_poll_is_disabled_with_zero_period(looptime):
    client = RESTClient('http://host/api', 'v1')
    client.poll_period = 0
    request, proceed = await client.default_poll('op1')
    assert request is None
    assert proceed is False
    assert looptime == 0


@pytest.mark.looptime
async def test_default_poll_waits_and_continues(looptime):
    client = RESTClient('http://host/api', 'v1')
    client.poll_period = 1.5
    request, proceed = await client.default_poll('op1')
    assert looptime == 1.5
    assert proceed is True
    assert request is not None
    assert request.method == 'GET'
    assert request.url == 'http://host/api/operations/op1'
    assert request.synchronous is False
    assert request.active_poller == client.default_poll


@pytest.mark.looptime
async def test_default_poll_uses_the_default_period(looptime):
    client = RESTClient('http://host/api', 'v1')
    request, proceed = await client.default_poll('op1')
    assert looptime == 2
    assert proceed is True


@pytest.mark.looptime
async def test_default_poll_is_cancellable(looptime):
    client = RESTClient('http://host/api', 'v1')
    client.poll_period = 10
    task = asyncio.create_task(client.default_poll('op1'))
    await asyncio.sleep(3)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert looptime == 3


@pytest.mark.looptime
async def test_default_poll_logs_the_operation(caplog, assert_logs):
    client = RESTClient('http://host/api', 'v1')
    with caplog.at_level('INFO'):
        await client.default_poll('op1')
    assert_logs([r"Waiting for completion of operation op1"])
    assert caplog.records[-1].api_ref == {'resource': 'operations', 'namespace': None, 'name': 'op1'}


async def test_default_poll_logs_nothing_when_disabled(caplog):
    client = RESTClient('http://host/api', 'v1')
    client.poll_period = 0
    with caplog.at_level('DEBUG'):
        await client.default_poll('op1')
    assert not caplog.messages
