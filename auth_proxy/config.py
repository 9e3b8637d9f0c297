import logging
import os
from typing import Mapping, Optional

from auth_proxy.errors import ConfigurationError
from auth_proxy.models import ProxyConfig
from auth_proxy.vars import CLIENT_ADDRESS_HEADER

logger = logging.getLogger("uvicorn.error")

USERNAME_ENV = "USERNAME"
PASSWORD_ENV = "PASSWORD"
PROXY_BASE_ENV = "PROXY_BASE"

REQUIRED_ENV = (USERNAME_ENV, PASSWORD_ENV, PROXY_BASE_ENV)


def load_proxy_config(environ: Optional[Mapping[str, str]] = None) -> ProxyConfig:
    """
    Build the immutable ProxyConfig from the environment.

    All three required variables must be present; an empty value counts as
    present. The upstream base loses a trailing slash so that joining it with
    a request-target (which always starts with "/") does not double it.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_ENV if name not in env]
    if missing:
        raise ConfigurationError(missing)

    config = ProxyConfig(
        username=env[USERNAME_ENV],
        password=env[PASSWORD_ENV],
        upstream_base=env[PROXY_BASE_ENV].rstrip("/"),
        client_address_header=env.get("CLIENT_ADDRESS_HEADER", CLIENT_ADDRESS_HEADER),
    )
    logger.info(
        f"Proxying to {config.upstream_base or '<request-target>'} as user "
        f"{config.username!r}"
    )
    return config
