import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(__file__))

import fakebus
import kbus


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """ Point the configuration at an empty directory, so a developer's
        own settings never leak into a test.
    """

    monkeypatch.delenv('KBUS_TIMEOUT', raising=False)
    monkeypatch.delenv('KBUS_BYTEORDER', raising=False)
    monkeypatch.setenv('KBUS_HOME', str(tmp_path))

    previous = kbus.config.directory.found
    kbus.config.directory(str(tmp_path))

    yield tmp_path

    kbus.config.directory.found = previous
    kbus.config.reset()


@pytest.fixture
def peer_pair():
    """ A started :class:`kbus.Connection` on one end of an in-memory
        transport pair, and the raw transport at the other end.
    """

    local, remote = fakebus.pair()
    remote.open()

    connection = kbus.Connection(local, timeout=2.0)
    connection.start()

    yield connection, remote

    connection.close()
    remote.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
