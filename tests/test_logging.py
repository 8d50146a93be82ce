"""Tests for CLI logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from pyrebuild.cli.app import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    package_level = logging.getLogger("pyrebuild").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("pyrebuild").setLevel(package_level)


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({}, logging.WARNING),
        ({"verbose": True}, logging.INFO),
        ({"debug": True}, logging.DEBUG),
        ({"verbose": True, "debug": True}, logging.DEBUG),
        ({"level": "error"}, logging.ERROR),
        ({"debug": True, "level": "INFO"}, logging.INFO),
        ({"level": "nonsense"}, logging.WARNING),
    ],
)
def test_setup_logging_levels(kwargs, expected):
    setup_logging(**kwargs)
    assert logging.getLogger("pyrebuild").level == expected
    assert logging.getLogger().level == expected


def test_setup_logging_uses_rich_handler():
    setup_logging()
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], RichHandler)


def test_resolution_logged_at_info(tmp_path, caplog, make_flake):
    from pyrebuild.flake import RawReference, ReferenceResolver, ResolverConfig
    from pyrebuild.system.host import fixed_hostname_provider

    make_flake(tmp_path)
    resolver = ReferenceResolver(
        ResolverConfig(default_dir=tmp_path, host_provider=fixed_hostname_provider("h"))
    )
    with caplog.at_level(logging.INFO, logger="pyrebuild"):
        resolver.resolve(RawReference())
    assert "Resolved flake reference" in caplog.text
