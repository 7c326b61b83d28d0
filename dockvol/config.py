"""
config.py
Load configuration from TOML (Python 3.11+ tomllib) and the DOCKER_* environment.
Search order:
  1) explicit --config path
  2) adjacent DEFAULT_CONFIG_PATH (bundle root / 'dockvol.toml')
  3) /etc/dockvol.toml
  4) built-in defaults when none of the above exist
Precedence: defaults < file < environment < CLI flags (applied in cli.py).
"""

from __future__ import annotations
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from .types import Config
from .bundle import DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH
from .errors import ConfigError

TRUTHY = {"1", "true", "yes", "on"}


def _gv(d: Dict[str, Any], path: list[str], default=None):
    cur = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _load_toml(path: Path) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRUTHY


def find_config(path_arg: str | None) -> Optional[Path]:
    """Pick the best config path based on CLI arg and availability."""
    if path_arg:
        # User explicitly specified a config - it must exist
        p = Path(path_arg)
        if not p.exists():
            raise FileNotFoundError(f"Specified config file does not exist: {path_arg}")
        return p

    for candidate in (DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH):
        p = Path(candidate)
        if p.exists():
            return p
    return None


def default_cert_path(env: Mapping[str, str]) -> Path:
    cert_path = env.get("DOCKER_CERT_PATH")
    if cert_path:
        return Path(cert_path)
    return Path(env.get("HOME", str(Path.home()))) / ".docker"


def load_config(path: Optional[Path], env: Optional[Mapping[str, str]] = None) -> Config:
    env = os.environ if env is None else env
    try:
        cfg = _load_toml(path) if path else {}
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid configuration file {path}: {e}") from e

    def gv(keys, default=None):
        return _gv(cfg, keys, default)

    certs = default_cert_path(env)
    host = gv(["engine", "host"])
    tls = bool(gv(["engine", "tls"], False))
    tls_verify = bool(gv(["engine", "tls_verify"], False))

    # DOCKER_* variables win over the file, like the docker CLI itself
    if env.get("DOCKER_HOST"):
        host = env["DOCKER_HOST"]
    if env.get("DOCKER_TLS"):
        tls = _env_flag(env["DOCKER_TLS"])
    if env.get("DOCKER_TLS_VERIFY"):
        tls_verify = _env_flag(env["DOCKER_TLS_VERIFY"])

    return Config(
        host=host,
        tls=tls,
        tls_verify=tls_verify,
        tls_ca_cert=str(gv(["engine", "tls_ca_cert"], certs / "ca.pem")),
        tls_cert=str(gv(["engine", "tls_cert"], certs / "cert.pem")),
        tls_key=str(gv(["engine", "tls_key"], certs / "key.pem")),
        docker_root=gv(["engine", "docker_root"], "/var/lib/docker"),
        shim_image=gv(["shim", "image"], "busybox:latest"),
        pause=bool(gv(["export", "pause"], False)),
        log_level=gv(["runtime", "log_level"], "INFO"),
    )
