"""
orchestrator.py
Command flows behind the CLI. Each opens one engine session:
  connect -> probe API version -> discover volumes (registry)
then runs list / inspect / rm / export / import and returns an exit status.
Single-target commands raise DockvolError; batch rm reports and continues.
"""

from __future__ import annotations
import logging, shutil, sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional

from .types import Config, EngineCapabilities, Volume
from .engine import connect, probe_capabilities
from .shim import ComputeShim
from .registry import VolumeRegistry
from .discover import collect_volumes, print_plan
from .transfer import export_volume, import_volume, remove_volume
from .errors import DockvolError, ResolutionError
from .util import to_json

logger = logging.getLogger(__name__)


@dataclass
class Session:
    client: object
    shim: ComputeShim
    caps: EngineCapabilities

    def discover(self) -> VolumeRegistry:
        return collect_volumes(self.client, self.shim, self.caps)


@contextmanager
def engine_session(cfg: Config, client=None) -> Iterator[Session]:
    owned = client is None
    if owned:
        client = connect(cfg)
    try:
        caps = probe_capabilities(client, cfg.docker_root)
        yield Session(client, ComputeShim(client, cfg.shim_image), caps)
    finally:
        if owned:
            client.close()


def find_volume(registry: VolumeRegistry, token: str) -> Volume:
    v = registry.find(token)
    if v is None:
        raise ResolutionError(f"Could not find volume: {token}")
    return v


def volume_list(cfg: Config, quiet: bool = False, client=None) -> int:
    with engine_session(cfg, client) as s:
        print_plan(s.discover(), quiet=quiet)
    return 0


def volume_inspect(cfg: Config, token: str, client=None) -> int:
    with engine_session(cfg, client) as s:
        v = find_volume(s.discover(), token)
    print(to_json(v.to_dict()))
    return 0


def volume_rm(cfg: Config, tokens: List[str], client=None) -> int:
    failed = 0
    with engine_session(cfg, client) as s:
        registry = s.discover()
        for token in tokens:
            try:
                v = remove_volume(registry, s.shim, s.caps, token)
            except DockvolError as e:
                print(f"❌ Error: {e}", file=sys.stderr)
                failed += 1
                continue
            logger.debug(f"removed {v.host_path}")
            print(f"Successfully removed volume: {token}")
    return 1 if failed else 0


def volume_export(
    cfg: Config, token: str, pause: bool = False, out: Optional[BinaryIO] = None, client=None
) -> int:
    out = out or sys.stdout.buffer
    with engine_session(cfg, client) as s:
        v = find_volume(s.discover(), token)
        with export_volume(s.client, s.shim, v, s.caps, pause=pause) as stream:
            shutil.copyfileobj(stream, out)
    out.flush()
    return 0


def volume_import(
    cfg: Config,
    container: str,
    mount_path: Optional[str] = None,
    src: Optional[BinaryIO] = None,
    client=None,
) -> int:
    src = src or sys.stdin.buffer
    with engine_session(cfg, client) as s:
        dest = import_volume(s.client, s.shim, s.caps, src, container, mount_path)
    logger.info(f"imported volume data into {container}:{dest.destination}")
    return 0
