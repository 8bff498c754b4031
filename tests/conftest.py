from __future__ import annotations

import pytest

from rfs.client import RfsClient
from rfs.config import ServerConfig
from rfs.constants import LOCK_GLOBAL, LOCK_PER_PATH
from rfs.server import FileServer


@pytest.fixture(params=[LOCK_GLOBAL, LOCK_PER_PATH])
def server(request, tmp_path):
    config = ServerConfig(root=str(tmp_path / "root"), port=0, lock_mode=request.param)
    srv = FileServer(config)
    srv.start()
    yield srv
    srv.shutdown()


@pytest.fixture
def root(server):
    return server.store.root


@pytest.fixture
def client(server):
    host, port = server.address
    return RfsClient(host, port)

