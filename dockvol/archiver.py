"""
archiver.py
Shell recipes executed by the compute shim, and the export manifest codec.
- list the engine's volumes root
- package a volume + build recipe + manifest into /volume.tar
- delete a volume directory (and its legacy config dir)
Note: these run under busybox sh, so only busybox applet flags are used.
"""

from __future__ import annotations
import json
import posixpath
import shlex
from typing import Dict, List, Tuple
from .types import EngineCapabilities, Volume
from .errors import ProtocolError, ResolutionError

ROOT_MOUNT = "/.docker_root"
VOLUME_MOUNT = "/.dockervolume"
LEGACY_CONFIG_MOUNT = "/.dockervolume2"
WORK_DIR = "/volumeData"
EXPORT_ARCHIVE = "/volume.tar"
DATA_DIR = "/.volData"
MANIFEST_NAME = ".dockvol.json"
MANIFEST_PATH = f"{DATA_DIR}/{MANIFEST_NAME}"


def export_recipe(base_image: str = "busybox:latest") -> str:
    """
    Build recipe shipped inside every export. Building it bakes the data into
    an image; running that image with the target bind-mounted replays the data.
    """
    return (
        f"FROM {base_image}\n"
        f"ADD data {DATA_DIR}\n"
        f"ADD {MANIFEST_NAME} {MANIFEST_PATH}\n"
        f'CMD ["/bin/sh", "-c", "rm -f {MANIFEST_PATH} && cp -a {DATA_DIR}/. {VOLUME_MOUNT}/"]\n'
    )


def sh(script: str) -> List[str]:
    return ["/bin/sh", "-c", script]


def list_dirs_cmd() -> List[str]:
    return sh(f"ls -1p {ROOT_MOUNT}/")


def parse_dir_listing(output: str) -> List[str]:
    """Directory entries only (`ls -p` marks them with a trailing slash)."""
    out = []
    for line in output.splitlines():
        line = line.strip()
        if line.endswith("/") and line != "/":
            out.append(line.rstrip("/"))
    return out


def encode_manifest(v: Volume) -> str:
    return json.dumps(v.to_dict(), indent="\t")


def decode_manifest(raw: bytes) -> Volume:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Could not read volume manifest: {e}") from e
    if not isinstance(data, dict) or "vol_path" not in data:
        raise ProtocolError("Volume manifest has no vol_path")
    return Volume.from_dict(data)


def build_export_cmd(v: Volume, base_image: str = "busybox:latest") -> List[str]:
    """
    Copy the bind-mounted volume into WORK_DIR/data, drop the recipe and the
    manifest next to it, and tar the whole directory into EXPORT_ARCHIVE.
    busybox tar cannot append, so everything is staged first.
    `base_image` becomes the FROM line, so imports build on the same image.
    """
    steps = [
        f"mkdir -p {WORK_DIR}",
        f"cp -a {VOLUME_MOUNT} {WORK_DIR}/data",
        f"printf '%s' {shlex.quote(export_recipe(base_image))} > {WORK_DIR}/Dockerfile",
        f"printf '%s\\n' {shlex.quote(encode_manifest(v))} > {WORK_DIR}/{MANIFEST_NAME}",
        f"cd {WORK_DIR}",
        f"tar -cf {EXPORT_ARCHIVE} .",
    ]
    return sh(" && ".join(steps))


def build_remove_cmd(v: Volume, caps: EngineCapabilities) -> Tuple[Dict[str, str], List[str]]:
    """Return (binds, command) that delete the volume's directory on the host."""
    parent = posixpath.dirname(v.host_path.rstrip("/"))
    base = posixpath.basename(v.host_path.rstrip("/"))
    if not base or base in (".", ".."):
        raise ResolutionError(f"Refusing to remove volume at {v.host_path!r}")
    binds = {parent: VOLUME_MOUNT}
    script = f"rm -rf {VOLUME_MOUNT}/{shlex.quote(base)}"
    if caps.legacy_layout and not v.is_bind_mount:
        # pre-1.19 engines keep per-volume config under <root>/volumes/<id>
        binds[caps.legacy_config_root] = LEGACY_CONFIG_MOUNT
        script += f" && rm -rf {LEGACY_CONFIG_MOUNT}/{shlex.quote(base)}"
    return binds, sh(script)
