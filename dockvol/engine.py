"""
engine.py
Docker engine access:
- Build a DockerClient from Config (host, optional TLS with client certs)
- Probe the API version once and turn it into EngineCapabilities
- engine_call(): translate SDK/transport failures into EngineError
"""

from __future__ import annotations
import logging, os
from contextlib import contextmanager
from typing import Tuple

import docker
import docker.errors
import docker.tls

from .types import Config, EngineCapabilities
from .errors import EngineError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "unix:///var/run/docker.sock"


@contextmanager
def engine_call(what: str):
    """Re-raise docker SDK and transport errors as EngineError('<what>: <reason>')."""
    try:
        yield
    except (docker.errors.DockerException, OSError) as e:
        raise EngineError(f"{what}: {e}") from e


def normalize_host(host: str | None) -> str:
    """Accept bare socket paths ("/var/run/docker.sock") as well as URLs."""
    if not host:
        return DEFAULT_HOST
    if host.startswith("/"):
        return "unix://" + host
    return host


def tls_config(cfg: Config):
    if not (cfg.tls or cfg.tls_verify):
        return None
    client_cert = None
    if os.path.exists(cfg.tls_cert) or os.path.exists(cfg.tls_key):
        client_cert = (cfg.tls_cert, cfg.tls_key)
    with engine_call("Couldn't load TLS configuration"):
        return docker.tls.TLSConfig(
            client_cert=client_cert,
            ca_cert=cfg.tls_ca_cert if cfg.tls_verify else None,
            verify=cfg.tls_verify,
        )


def connect(cfg: Config) -> docker.DockerClient:
    base_url = normalize_host(cfg.host)
    logger.debug(f"connecting to docker engine at {base_url}")
    with engine_call(f"Cannot connect to docker engine at {base_url}"):
        return docker.DockerClient(base_url=base_url, tls=tls_config(cfg) or False)


def parse_api_version(s: str) -> Tuple[int, ...]:
    parts = []
    for p in str(s).strip().split("."):
        if not p.isdigit():
            break
        parts.append(int(p))
    if not parts:
        raise EngineError(f"Unrecognized engine API version: {s!r}")
    return tuple(parts)


def probe_capabilities(client, docker_root: str) -> EngineCapabilities:
    with engine_call("Error getting docker daemon version"):
        info = client.version()
    api = parse_api_version(info.get("ApiVersion", ""))
    caps = EngineCapabilities(api_version=api, docker_root=docker_root)
    logger.debug(
        f"engine API {'.'.join(map(str, api))}, volumes root {caps.volumes_root}"
    )
    return caps
