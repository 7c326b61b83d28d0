"""
types.py
Dataclasses used across modules: Config, EngineCapabilities, Mount, Volume.

These are intentionally lightweight, serializable, and stable for logging.
"""
from __future__ import annotations
import posixpath
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

DATA_DIR_NAME = "_data"


@dataclass
class Config:
    # engine
    host: Optional[str]
    tls: bool
    tls_verify: bool
    tls_ca_cert: str
    tls_cert: str
    tls_key: str
    docker_root: str
    # shim
    shim_image: str
    # export
    pause: bool
    # runtime
    log_level: str


@dataclass(frozen=True)
class EngineCapabilities:
    """What the connected engine looks like on disk, probed once per run."""

    api_version: Tuple[int, ...]
    docker_root: str = "/var/lib/docker"

    @property
    def legacy_layout(self) -> bool:
        # vfs/dir/<id> before API 1.19, volumes/<name>/_data from then on
        return self.api_version < (1, 19)

    @property
    def trims_data_suffix(self) -> bool:
        return not self.legacy_layout

    @property
    def volumes_root(self) -> str:
        if self.legacy_layout:
            return posixpath.join(self.docker_root, "vfs", "dir")
        return posixpath.join(self.docker_root, "volumes")

    @property
    def legacy_config_root(self) -> str:
        return posixpath.join(self.docker_root, "volumes")


@dataclass
class Mount:
    destination: str
    source: str
    rw: bool = True
    type: str = "volume"
    name: Optional[str] = None

    @property
    def is_bind(self) -> bool:
        return self.type == "bind"


@dataclass
class Volume:
    id: str
    host_path: str
    is_bind_mount: bool = False
    is_read_write: bool = True
    vol_path: str = ""
    names: List[str] = field(default_factory=list)
    containers: List[str] = field(default_factory=list)
    mount: Optional[Mount] = None

    def add_reference(self, name: str, container_id: str) -> None:
        if name not in self.names:
            self.names.append(name)
        if container_id not in self.containers:
            self.containers.append(container_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "host_path": self.host_path,
            "vol_path": self.vol_path,
            "is_bind_mount": self.is_bind_mount,
            "is_read_write": self.is_read_write,
            "names": list(self.names),
            "containers": list(self.containers),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Volume":
        return cls(
            id=d.get("id", ""),
            host_path=d.get("host_path", ""),
            is_bind_mount=bool(d.get("is_bind_mount", False)),
            is_read_write=bool(d.get("is_read_write", True)),
            vol_path=d.get("vol_path", ""),
            names=list(d.get("names") or []),
            containers=list(d.get("containers") or []),
        )
