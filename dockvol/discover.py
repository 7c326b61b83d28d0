"""
discover.py
Volume discovery pipeline:
- Container-derived: every container's mounts (modern "Mounts" list or legacy
  "Volumes"/"VolumesRW" maps), merged by volume id
- Disk-derived: directories under the engine's volumes root, listed through
  the compute shim, added as orphans when no container references them
- print_plan-style table for `list`
"""

from __future__ import annotations
import logging
import posixpath
from typing import Any, Dict, List, Optional
from .types import DATA_DIR_NAME, EngineCapabilities, Mount, Volume
from .registry import VolumeRegistry
from .archiver import ROOT_MOUNT, list_dirs_cmd, parse_dir_listing
from .engine import engine_call
from .shim import ComputeShim
from .util import path_digest, truncate_id

logger = logging.getLogger(__name__)


def _is_under(path: str, root: str) -> bool:
    root = root.rstrip("/") + "/"
    return path.startswith(root)


def container_mounts(attrs: Dict[str, Any], caps: EngineCapabilities) -> List[Mount]:
    """Mounts from container inspect data, whichever API generation produced it."""
    mounts: List[Mount] = []
    if attrs.get("Mounts"):
        for m in attrs["Mounts"]:
            mtype = (m.get("Type") or "").lower()
            source = m.get("Source") or ""
            if not source:
                continue
            if not mtype:
                # API 1.20 omits Type; named volumes carry a Name
                mtype = "volume" if m.get("Name") else "bind"
            if mtype not in ("volume", "bind"):
                continue
            mounts.append(
                Mount(
                    destination=m.get("Destination", ""),
                    source=source,
                    rw=bool(m.get("RW", True)),
                    type=mtype,
                    name=m.get("Name") if mtype == "volume" else None,
                )
            )
        return mounts

    rw_map = attrs.get("VolumesRW") or {}
    for dest, source in (attrs.get("Volumes") or {}).items():
        if not source:
            continue
        managed = _is_under(source, caps.volumes_root)
        mounts.append(
            Mount(
                destination=dest,
                source=source,
                rw=bool(rw_map.get(dest, True)),
                type="volume" if managed else "bind",
            )
        )
    return mounts


def derive_volume_id(host_path: str, is_bind: bool, explicit: Optional[str] = None) -> str:
    """
    Explicit id first; bind mounts hash their host path; managed volumes use
    the last path segment, or the parent's name when that segment is `_data`.
    """
    if explicit:
        return explicit
    if is_bind:
        return path_digest(host_path)
    path = host_path.rstrip("/")
    base = posixpath.basename(path)
    if base == DATA_DIR_NAME:
        base = posixpath.basename(posixpath.dirname(path))
    return base


def display_host_path(host_path: str, is_bind: bool, caps: EngineCapabilities) -> str:
    if caps.trims_data_suffix and not is_bind and host_path.rstrip("/").endswith("/" + DATA_DIR_NAME):
        return posixpath.dirname(host_path.rstrip("/"))
    return host_path


def data_path(v: Volume, caps: EngineCapabilities) -> str:
    """Where the volume's content actually lives (host_path may be trimmed)."""
    if v.mount is not None:
        return v.mount.source
    if caps.trims_data_suffix and not v.is_bind_mount:
        return posixpath.join(v.host_path, DATA_DIR_NAME)
    return v.host_path


def volume_from_mount(mount: Mount, caps: EngineCapabilities) -> Volume:
    return Volume(
        id=derive_volume_id(mount.source, mount.is_bind, mount.name),
        host_path=display_host_path(mount.source, mount.is_bind, caps),
        is_bind_mount=mount.is_bind,
        is_read_write=mount.rw,
        vol_path=mount.destination,
        mount=mount,
    )


def container_name(attrs: Dict[str, Any]) -> str:
    return (attrs.get("Name") or "").lstrip("/")


def add_container_volumes(
    registry: VolumeRegistry, attrs: Dict[str, Any], caps: EngineCapabilities
) -> None:
    cid = attrs.get("Id", "")
    cname = container_name(attrs)
    for mount in container_mounts(attrs, caps):
        v = volume_from_mount(mount, caps)
        existing = registry.get(v.id)
        if existing is not None:
            v = existing
        v.add_reference(f"{cname}:{mount.destination}", cid)
        registry.add(v)


def list_volume_dirs(shim: ComputeShim, caps: EngineCapabilities) -> List[str]:
    with shim.one_shot(list_dirs_cmd(), binds={caps.volumes_root: ROOT_MOUNT}, read_only=(caps.volumes_root,)) as res:
        res.check(f"listing {caps.volumes_root}")
        return parse_dir_listing(res.output)


def add_orphan_volumes(registry: VolumeRegistry, entries: List[str], caps: EngineCapabilities) -> int:
    root = caps.volumes_root.rstrip("/")
    added = 0
    for d in entries:
        host_path = posixpath.join(root, d)
        if host_path.rstrip("/") == root:
            continue
        v = Volume(
            id=derive_volume_id(host_path, False),
            host_path=host_path,
            is_bind_mount=False,
            is_read_write=True,
        )
        if v.id in registry:
            continue
        registry.add(v)
        added += 1
    return added


def collect_volumes(client, shim: ComputeShim, caps: EngineCapabilities) -> VolumeRegistry:
    """Build a fresh registry from container mounts plus on-disk volume dirs."""
    registry = VolumeRegistry()
    with engine_call("error fetching containers"):
        containers = client.containers.list(all=True, ignore_removed=True)
    for c in containers:
        add_container_volumes(registry, c.attrs, caps)
    logger.debug(f"{len(registry)} volume(s) referenced by {len(containers)} container(s)")

    orphans = add_orphan_volumes(registry, list_volume_dirs(shim, caps), caps)
    logger.debug(f"{orphans} orphan volume(s) found under {caps.volumes_root}")
    return registry


def print_plan(registry: VolumeRegistry, quiet: bool = False) -> None:
    """Human-readable table for `list`, or bare ids with --quiet."""
    if quiet:
        for v in registry:
            print(v.id)
        return
    rows = [(truncate_id(v.id), ", ".join(v.names), v.host_path) for v in registry]
    name_w = max([len("NAMES")] + [len(r[1]) for r in rows])
    print(f"{'ID':<12}   {'NAMES':<{name_w}}   PATH")
    for vid, names, path in rows:
        print(f"{vid:<12}   {names:<{name_w}}   {path}")
