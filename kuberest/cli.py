import asyncio
import dataclasses
import functools
from collections.abc import Callable
from typing import Any, TextIO

import click
import yaml

from kuberest._cogs.clients import auth, errors, requesting, restclient
from kuberest._cogs.helpers import versions
from kuberest._core.actions import loggers

# A function to build a request with a ready-to-use client, which is known only inside the loop.
RequestBuilder = Callable[[restclient.RESTClient], requesting.Request]


@dataclasses.dataclass()
class CLIControls:
    """ The connection & client options, as given to the main group. """
    server: str | None = None
    api_version: str = 'v1'
    legacy: bool = False
    sync: bool | None = None
    poll_period: float | None = None
    timeout: float | None = None
    token: str | None = None
    insecure: bool = False


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: bool | None = False,
                log_refkey: str | None = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


pass_controls = click.make_pass_decorator(CLIControls, ensure=True)


@click.version_option(versions.version or 'unknown', prog_name='kuberest')
@click.group(name='kuberest', context_settings=dict(
    auto_envvar_prefix='KUBEREST',
))
@click.option('-s', '--server', type=str)
@click.option('--api-version', type=str, default='v1', show_default=True)
@click.option('--legacy', is_flag=True, help="Use the legacy URL conventions.")
@click.option('--sync/--async', 'sync', default=None)
@click.option('--poll-period', type=float)
@click.option('--timeout', type=float)
@click.option('--token', type=str)
@click.option('--insecure', is_flag=True)
@click.pass_context
def main(
        ctx: click.Context,
        server: str | None,
        api_version: str,
        legacy: bool,
        sync: bool | None,
        poll_period: float | None,
        timeout: float | None,
        token: str | None,
        insecure: bool,
) -> None:
    ctx.obj = CLIControls(
        server=server,
        api_version=api_version,
        legacy=legacy,
        sync=sync,
        poll_period=poll_period,
        timeout=timeout,
        token=token,
        insecure=insecure,
    )


@main.command()
@logging_options
@click.option('-n', '--namespace', type=str)
@click.option('-l', '--selector', type=str)
@click.argument('resource')
@click.argument('name', required=False)
@pass_controls
def get(
        __controls: CLIControls,
        resource: str,
        name: str | None,
        namespace: str | None,
        selector: str | None,
) -> None:
    """ Read an object, or list the objects of a resource. """
    def build(client: restclient.RESTClient) -> requesting.Request:
        request = client.get().namespace(namespace).resource(resource)
        request = request.name(name) if name else request
        return request.selector_param('labelSelector', selector)
    _run(__controls, build)


@main.command()
@logging_options
@click.option('-n', '--namespace', type=str)
@click.option('-f', '--filename', type=click.File('r'), required=True)
@click.argument('resource')
@pass_controls
def create(
        __controls: CLIControls,
        resource: str,
        namespace: str | None,
        filename: TextIO,
) -> None:
    """ Create an object from a YAML/JSON file (POST). """
    body = _load_body(filename)
    _run(__controls, lambda client: client.post().namespace(namespace).resource(resource).body(body))


@main.command()
@logging_options
@click.option('-n', '--namespace', type=str)
@click.option('-f', '--filename', type=click.File('r'), required=True)
@click.argument('resource')
@click.argument('name')
@pass_controls
def replace(
        __controls: CLIControls,
        resource: str,
        name: str,
        namespace: str | None,
        filename: TextIO,
) -> None:
    """ Replace an object with a YAML/JSON file (PUT). """
    body = _load_body(filename)
    _run(__controls, lambda client: client.put().namespace(namespace).resource(resource).name(name).body(body))


@main.command()
@logging_options
@click.option('-n', '--namespace', type=str)
@click.argument('resource')
@click.argument('name')
@pass_controls
def delete(
        __controls: CLIControls,
        resource: str,
        name: str,
        namespace: str | None,
) -> None:
    """ Delete an object. """
    _run(__controls, lambda client: client.delete().namespace(namespace).resource(resource).name(name))


@main.command()
@logging_options
@click.argument('name')
@pass_controls
def operation(
        __controls: CLIControls,
        name: str,
) -> None:
    """ Check the status of an operation once, without waiting. """
    _run(__controls, lambda client: client.operation(name))


async def execute(controls: CLIControls, build: RequestBuilder) -> requesting.Result:
    """ Connect to the server, and perform a request in a client configured from CLI options. """
    if controls.server is None:
        raise click.UsageError("The server is not specified.")
    info = auth.ConnectionInfo(server=controls.server, token=controls.token, insecure=controls.insecure)
    async with auth.make_session(info) as session:
        client = restclient.RESTClient(
            controls.server,
            controls.api_version,
            legacy_behavior=controls.legacy,
            session=session,
        )
        if controls.sync is not None:
            client.sync = controls.sync
        if controls.poll_period is not None:
            client.poll_period = controls.poll_period
        if controls.timeout is not None:
            client.timeout = controls.timeout
        return await build(client).do()


def _run(controls: CLIControls, build: RequestBuilder) -> None:
    try:
        result = asyncio.run(execute(controls, build))
    except errors.APIError as e:
        raise click.ClickException(f"API error {e.status}: {e.message or e.reason or 'no details'}")
    if result.working:
        loggers.logger.warning(f"Operation {result.operation} is still in progress.")
    click.echo(yaml.safe_dump(result.body, sort_keys=False), nl=False)


def _load_body(file: TextIO) -> Any:
    body = yaml.safe_load(file)
    if not isinstance(body, dict):
        raise click.BadParameter("The file must contain a single object (a mapping).")
    return body
