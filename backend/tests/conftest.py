import base64
import os

os.environ.setdefault("PACKAGE_ID", "0xpkg")
os.environ.setdefault("REGISTRY_ID", "0xregistry")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SPONSOR_PRIVATE_KEY", base64.b64encode(bytes(range(32))).decode())

import pytest

from fakes import FakeRpc


@pytest.fixture
def rpc():
    return FakeRpc()
