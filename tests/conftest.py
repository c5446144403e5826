import logging
import os
import socket
import sys

import pytest
import yaml

# Ensure project root is importable (so `import helloci` and `main.py` work without installing)
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _restore_logging():
    """serve() reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def project_root():
    return _project_root


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from helloci.app import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def occupied_port():
    """A port with a live listener on 127.0.0.1 for the duration of the test."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    s.listen(1)
    try:
        yield s.getsockname()[1]
    finally:
        s.close()


@pytest.fixture
def descriptor_data():
    return {
        "name": "hello",
        "replicas": 3,
        "image": "hello-ci:latest",
        "containerPort": 3000,
        "service": {"exposedPort": 80, "routing": "NodeExposed"},
    }


@pytest.fixture
def write_yaml(tmp_path):
    def _write(data, name="descriptor.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return str(path)

    return _write
