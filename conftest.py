# Ensure tests import the package from this checkout first, whether or not it
# has been installed into the environment.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from auth_proxy.models import ProxyConfig  # noqa: E402

TEST_UPSTREAM_BASE = "http://internal-app:8080"


@pytest.fixture
def proxy_config():
    """ProxyConfig pointing at a fake upstream with the joe/secret credential."""
    return ProxyConfig(
        username="joe",
        password="secret",
        upstream_base=TEST_UPSTREAM_BASE,
    )
