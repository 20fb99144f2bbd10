import functools
import logging

import click.testing
import pytest

from kuberest._cogs.clients.requesting import Result
from kuberest._core.actions.loggers import ObjectFormatter
from kuberest.cli import main


@pytest.fixture(autouse=True)
def _clear_own_handlers():
    # The CLI configures the root logger for the runner's streams, which are closed afterwards.
    logger = logging.getLogger()
    original_handlers = logger.handlers[:]
    original_level = logger.level
    yield
    logger.handlers[:] = [
        handler for handler in original_handlers
        if not isinstance(handler.formatter, ObjectFormatter)
    ]
    logger.setLevel(original_level)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def result():
    return Result(raw=b'{"kind": "Pod"}', body={'kind': 'Pod', 'metadata': {'name': 'pod1'}}, status_code=200)


@pytest.fixture()
def execute(mocker, result):
    return mocker.patch('kuberest.cli.execute', return_value=result)
