"""
shim.py
Compute shim: run one filesystem command inside an ephemeral container.

The tool may not see the engine's data root, so every privileged file
operation (list, delete, copy out) is delegated to a throwaway container
with the relevant host path bind-mounted. The container is removed on every
exit path; a non-zero exit code is reported separately from engine failures.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

import docker.errors

from .engine import engine_call
from .errors import CommandFailedError, ProtocolError
from .util import truncate_id

logger = logging.getLogger(__name__)

Command = Union[str, List[str], None]


@dataclass
class OneShot:
    container_id: str
    status_code: int
    output: str
    errors: str = ""

    def check(self, what: str) -> "OneShot":
        if self.status_code != 0:
            raise CommandFailedError(what, self.status_code, self.errors or self.output)
        return self


def bind_specs(
    binds: Optional[Dict[str, str]] = None,
    named_volumes: Optional[Dict[str, str]] = None,
    read_only: Tuple[str, ...] = (),
) -> List[str]:
    """host-path -> container-path (and volume-name -> path) as docker bind strings."""
    specs = []
    for host, target in (binds or {}).items():
        mode = "ro" if host in read_only else "rw"
        specs.append(f"{host}:{target}:{mode}")
    for name, target in (named_volumes or {}).items():
        specs.append(f"{name}:{target}")
    return specs


def _status_code(result) -> int:
    # docker SDK >= 3 returns {"StatusCode": n, "Error": ...}; older ones an int
    if isinstance(result, dict):
        return int(result.get("StatusCode", -1))
    return int(result)


class ComputeShim:
    def __init__(self, client, image: str = "busybox:latest"):
        self.client = client
        self.image = image
        self._present: set[str] = set()

    def ensure_image(self, image: str) -> None:
        if image in self._present:
            return
        try:
            self.client.images.get(image)
        except docker.errors.ImageNotFound:
            logger.info(f"image {image} not found locally, pulling")
            self.client.images.pull(image)
        self._present.add(image)

    @contextmanager
    def one_shot(
        self,
        command: Command = None,
        image: Optional[str] = None,
        binds: Optional[Dict[str, str]] = None,
        named_volumes: Optional[Dict[str, str]] = None,
        read_only: Tuple[str, ...] = (),
        entrypoint: Command = None,
        pull: bool = True,
    ) -> Iterator[OneShot]:
        """
        Create, start and wait for a container; yield its result while it still
        exists (so paths can be copied out of it), then remove it.
        """
        image = image or self.image
        container = None
        try:
            with engine_call(f"Could not run {image} container"):
                if pull:
                    self.ensure_image(image)
                container = self.client.containers.create(
                    image,
                    command,
                    entrypoint=entrypoint,
                    volumes=bind_specs(binds, named_volumes, read_only),
                    network_mode="none",
                )
                logger.debug(f"created one-shot container {truncate_id(container.id)} ({image})")
                container.start()
                status = _status_code(container.wait())
                output = container.logs(stdout=True, stderr=False)
                errors = container.logs(stdout=False, stderr=True)
            yield OneShot(
                container.id,
                status,
                output.decode("utf-8", "replace"),
                errors.decode("utf-8", "replace"),
            )
        finally:
            if container is not None:
                self.remove_container(container)

    def run_one_shot(self, command: Command, **kwargs) -> Tuple[str, int]:
        with self.one_shot(command, **kwargs) as res:
            return res.output, res.status_code

    def remove_container(self, container) -> None:
        """Force-remove a container and its anonymous volumes; gone already is fine."""
        try:
            container.remove(force=True, v=True)
            logger.debug(f"removed container {truncate_id(container.id)}")
        except docker.errors.NotFound:
            pass
        except docker.errors.DockerException as e:
            logger.warning(f"could not remove container {truncate_id(container.id)}: {e}")

    def copy_path(self, container_id: str, path: str) -> Iterator[bytes]:
        """Stream `path` out of a container as tar-encoded chunks."""
        with engine_call(f"Could not copy {path} from container {truncate_id(container_id)}"):
            container = self.client.containers.get(container_id)
            try:
                bits, _ = container.get_archive(path)
            except docker.errors.NotFound as e:
                raise ProtocolError(f"{path} not found in container {truncate_id(container_id)}") from e
            for chunk in bits:
                yield chunk
