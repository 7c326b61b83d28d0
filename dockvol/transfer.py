"""
transfer.py
Volume export/import and on-disk removal, all driven through the compute shim.

Export: (optionally pause users) -> one-shot container stages data + recipe +
manifest into /volume.tar -> copy it out (tar of a tar) -> unwrap the outer
layer in a scoped temp dir -> hand the inner tar to the caller.

Import: build a throwaway image from the export stream -> find the destination
mount (explicit path, or the manifest's vol_path) -> run the image with the
destination bind-mounted -> remove the image.
"""

from __future__ import annotations
import io, logging, posixpath, shutil, tarfile, tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional

import docker.errors

from .types import EngineCapabilities, Mount, Volume
from .archiver import (
    EXPORT_ARCHIVE,
    MANIFEST_NAME,
    MANIFEST_PATH,
    VOLUME_MOUNT,
    build_export_cmd,
    build_remove_cmd,
    decode_manifest,
    sh,
)
from .discover import container_mounts, data_path
from .engine import engine_call
from .errors import EngineError, ResolutionError, VolumeInUseError, ProtocolError
from .registry import VolumeRegistry
from .shim import ComputeShim
from .util import truncate_id

logger = logging.getLogger(__name__)


def _unpause(client, cid: str) -> None:
    try:
        client.containers.get(cid).unpause()
        logger.info(f"unpaused container {truncate_id(cid)}")
    except docker.errors.DockerException as e:
        logger.warning(f"could not unpause container {truncate_id(cid)}: {e}")


@contextmanager
def paused(client, container_ids: Iterable[str]) -> Iterator[List[str]]:
    """Pause running containers for the duration of the block; always unpause."""
    done: List[str] = []
    try:
        for cid in container_ids:
            if cid in done:
                continue
            try:
                with engine_call(f"could not pause container {truncate_id(cid)}"):
                    c = client.containers.get(cid)
                    if c.status != "running":
                        logger.debug(f"container {truncate_id(cid)} is {c.status}, not pausing")
                        continue
                    c.pause()
            except EngineError as e:
                logger.warning(str(e))
                continue
            done.append(cid)
            logger.info(f"paused container {truncate_id(cid)}")
        yield done
    finally:
        for cid in done:
            _unpause(client, cid)


def _find_member(tf: tarfile.TarFile, name: str) -> tarfile.TarInfo:
    for m in tf.getmembers():
        if posixpath.basename(m.name.rstrip("/")) == name and m.isfile():
            return m
    raise ProtocolError(f"archive does not contain {name}")


def unwrap_archive(outer: Path, dest_dir: Path, name: str) -> Path:
    """Extract the single file `name` from the outer (transport) tar."""
    target = dest_dir / name
    try:
        with tarfile.open(outer, mode="r:") as tf:
            src = tf.extractfile(_find_member(tf, name))
            with open(target, "wb") as f:
                shutil.copyfileobj(src, f)
    except tarfile.TarError as e:
        raise ProtocolError(f"Could not untar archive: {e}") from e
    return target


@contextmanager
def export_volume(
    client, shim: ComputeShim, v: Volume, caps: EngineCapabilities, pause: bool = False
) -> Iterator[BinaryIO]:
    """Yield a readable stream of the export tar; temp files go away on exit."""
    source = data_path(v, caps)
    with tempfile.TemporaryDirectory(prefix="dockvol-export-") as tmp:
        outer = Path(tmp) / "outer.tar"
        with paused(client, v.containers if pause else []):
            with shim.one_shot(
                build_export_cmd(v, shim.image), binds={source: VOLUME_MOUNT}, read_only=(source,)
            ) as res:
                res.check(f"Could not create export archive for {v.id}")
                with open(outer, "wb") as f:
                    for chunk in shim.copy_path(res.container_id, EXPORT_ARCHIVE):
                        f.write(chunk)
        inner = unwrap_archive(outer, Path(tmp), posixpath.basename(EXPORT_ARCHIVE))
        logger.debug(f"export archive for {v.id}: {inner.stat().st_size} bytes")
        with open(inner, "rb") as stream:
            yield stream


def build_import_image(client, context: BinaryIO) -> str:
    with engine_call("Could not create import image"):
        image, _ = client.images.build(
            fileobj=context, custom_context=True, rm=True, forcerm=True
        )
    logger.debug(f"built import image {truncate_id(image.id)}")
    return image.id


def remove_image(client, image_id: str) -> None:
    try:
        client.images.remove(image_id, force=True)
        logger.debug(f"removed image {truncate_id(image_id)}")
    except docker.errors.ImageNotFound:
        pass
    except docker.errors.DockerException as e:
        logger.warning(f"could not remove image {truncate_id(image_id)}: {e}")


def read_manifest(shim: ComputeShim, image_id: str) -> Volume:
    """Copy the manifest out of a stopped container made from the import image."""
    with shim.one_shot(sh("true"), image=image_id, pull=False) as res:
        res.check("Could not extract volume config")
        raw = b"".join(shim.copy_path(res.container_id, MANIFEST_PATH))
    try:
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tf:
            return decode_manifest(tf.extractfile(_find_member(tf, MANIFEST_NAME)).read())
    except tarfile.TarError as e:
        raise ProtocolError(f"Could not untar volume config: {e}") from e


def match_mount(mounts: List[Mount], vol_path: str) -> Optional[Mount]:
    want = vol_path.rstrip("/") or "/"
    for m in mounts:
        if (m.destination.rstrip("/") or "/") == want:
            return m
    return None


def resolve_container(client, token: str):
    try:
        with engine_call(f"Could not find container to import to: {token}"):
            return client.containers.get(token)
    except EngineError as e:
        if isinstance(e.__cause__, docker.errors.NotFound):
            raise ResolutionError(f"Could not find container to import to: {token}") from e
        raise


def import_volume(
    client,
    shim: ComputeShim,
    caps: EngineCapabilities,
    context: BinaryIO,
    container_token: str,
    mount_path: Optional[str] = None,
) -> Mount:
    """Replay an export stream into a mount of `container_token`; return that mount."""
    container = resolve_container(client, container_token)
    mounts = container_mounts(container.attrs, caps)
    image_id = build_import_image(client, context)
    try:
        if mount_path:
            dest = match_mount(mounts, mount_path)
            if dest is None:
                raise ResolutionError(f"Did not find a volume matching the path: {mount_path}")
        else:
            vol_path = read_manifest(shim, image_id).vol_path
            if not vol_path:
                # orphan exports carry no mount path
                raise ResolutionError(
                    "Exported volume has no recorded mount path; pass the mount path explicitly"
                )
            dest = match_mount(mounts, vol_path)
            if dest is None:
                raise ResolutionError(f"Did not find a volume matching the path: {vol_path}")

        logger.info(f"importing into {container_token}:{dest.destination} ({dest.source})")
        with shim.one_shot(None, image=image_id, binds={dest.source: VOLUME_MOUNT}, pull=False) as res:
            res.check("Could not import data")
        return dest
    finally:
        remove_image(client, image_id)


def remove_volume(
    registry: VolumeRegistry, shim: ComputeShim, caps: EngineCapabilities, token: str
) -> Volume:
    v = registry.find(token)
    if v is None:
        raise ResolutionError(f"Could not find volume: {token}")
    if not registry.can_remove(v):
        raise VolumeInUseError(token, list(v.containers))
    binds, cmd = build_remove_cmd(v, caps)
    with shim.one_shot(cmd, binds=binds) as res:
        res.check(f"Could not remove volume {v.host_path}")
    return v
