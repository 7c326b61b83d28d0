"""
Pytest configuration and shared fixtures.

FakeClient mimics the slice of docker.DockerClient that dockvol uses, so no
daemon is needed. One-shot container behaviour is scripted per test through a
`responder(container)` hook that sets exit code, output and copyable paths.
"""
import io
import tarfile
import itertools
import pytest
from pathlib import Path

import docker.errors

from dockvol.types import Config, EngineCapabilities

_ids = itertools.count(1)


def make_id(prefix="c"):
    return f"{prefix}{next(_ids):063x}"[:64]


def make_tar(files):
    """{name: bytes} -> uncompressed tar bytes."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def read_tar(data):
    """tar bytes -> {name: bytes} for regular files."""
    out = {}
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tf:
        for m in tf.getmembers():
            if m.isfile():
                out[m.name] = tf.extractfile(m).read()
    return out


class FakeContainer:
    def __init__(self, client, image="busybox:latest", command=None, attrs=None, status="running", **kwargs):
        self.client = client
        self.id = (attrs or {}).get("Id") or make_id()
        self.attrs = attrs or {"Id": self.id, "Name": "/" + self.id[:8]}
        self.status = status
        self.image = image
        self.command = command
        self.kwargs = kwargs
        self.status_code = 0
        self.stdout = b""
        self.stderr = b""
        self.archives = {}
        self.fail_on = None
        self.started = False
        self.removed = 0
        self.paused = 0
        self.unpaused = 0

    def _maybe_fail(self, step):
        if self.fail_on == step:
            raise docker.errors.APIError(f"{step} failed")

    def start(self):
        self._maybe_fail("start")
        self.started = True
        if self.client.responder:
            self.client.responder(self)

    def wait(self):
        self._maybe_fail("wait")
        return {"StatusCode": self.status_code, "Error": None}

    def logs(self, stdout=True, stderr=True):
        return (self.stdout if stdout else b"") + (self.stderr if stderr else b"")

    def get_archive(self, path):
        if path not in self.archives:
            raise docker.errors.NotFound(f"no such path {path}")
        return iter([self.archives[path]]), {"name": Path(path).name}

    def remove(self, force=False, v=False):
        self.removed += 1
        self.client.containers.by_id.pop(self.id, None)

    def pause(self):
        self._maybe_fail("pause")
        self.paused += 1
        self.status = "paused"

    def unpause(self):
        self.unpaused += 1
        self.status = "running"

    @property
    def bind_specs(self):
        return self.kwargs.get("volumes") or []


class FakeContainers:
    def __init__(self, client):
        self.client = client
        self.by_id = {}
        self.created = []
        self.fail_create = False

    def add(self, attrs, status="running"):
        c = FakeContainer(self.client, attrs=attrs, status=status)
        self.by_id[c.id] = c
        return c

    def list(self, all=False, ignore_removed=False):
        return [c for c in self.by_id.values() if c not in self.created]

    def get(self, key):
        if key in self.by_id:
            return self.by_id[key]
        for c in self.by_id.values():
            if c.attrs.get("Name", "").lstrip("/") == key:
                return c
        raise docker.errors.NotFound(f"No such container: {key}")

    def create(self, image, command=None, **kwargs):
        if self.fail_create:
            raise docker.errors.APIError("create failed")
        c = FakeContainer(self.client, image=image, command=command, **kwargs)
        if self.client.on_create:
            self.client.on_create(c)
        self.by_id[c.id] = c
        self.created.append(c)
        return c


class FakeImage:
    def __init__(self, image_id, files=None):
        self.id = image_id
        self.files = files or {}


class FakeImages:
    def __init__(self, client):
        self.client = client
        self.present = {"busybox:latest"}
        self.pulled = []
        self.built = []
        self.removed = []
        self.build_error = None

    def get(self, name):
        if name in self.present:
            return FakeImage(name)
        raise docker.errors.ImageNotFound(f"No such image: {name}")

    def pull(self, name):
        self.pulled.append(name)
        self.present.add(name)
        return FakeImage(name)

    def build(self, fileobj=None, custom_context=False, **kwargs):
        if self.build_error:
            raise docker.errors.BuildError(self.build_error, [])
        img = FakeImage("sha256:" + make_id("i"), read_tar(fileobj.read()))
        self.present.add(img.id)
        self.built.append(img)
        return img, iter([])

    def remove(self, image_id, force=False):
        if image_id not in self.present:
            raise docker.errors.ImageNotFound(image_id)
        self.present.discard(image_id)
        self.removed.append(image_id)


class FakeClient:
    def __init__(self, api="1.43", responder=None):
        self.api = api
        self.responder = responder
        self.on_create = None
        self.containers = FakeContainers(self)
        self.images = FakeImages(self)
        self.closed = False

    def version(self):
        return {"ApiVersion": self.api, "Version": "24.0.0"}

    def close(self):
        self.closed = True


def volume_mount(name, dest, rw=True, root="/var/lib/docker"):
    return {
        "Type": "volume",
        "Name": name,
        "Source": f"{root}/volumes/{name}/_data",
        "Destination": dest,
        "RW": rw,
    }


def bind_mount(source, dest, rw=True):
    return {"Type": "bind", "Source": source, "Destination": dest, "RW": rw}


def container_attrs(name, mounts, cid=None):
    cid = cid or make_id()
    return {"Id": cid, "Name": "/" + name, "Mounts": mounts}


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def caps():
    return EngineCapabilities(api_version=(1, 43), docker_root="/var/lib/docker")


@pytest.fixture
def legacy_caps():
    return EngineCapabilities(api_version=(1, 18), docker_root="/var/lib/docker")


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary configuration file for testing."""
    p = tmp_path / "dockvol.toml"
    p.write_text(
        """
version = 1

[engine]
host = "tcp://10.0.0.5:2376"
tls = true
tls_verify = true
tls_ca_cert = "/certs/ca.pem"
tls_cert = "/certs/cert.pem"
tls_key = "/certs/key.pem"
docker_root = "/srv/docker"

[shim]
image = "busybox:1.36"

[export]
pause = true

[runtime]
log_level = "DEBUG"
"""
    )
    return p


@pytest.fixture
def sample_config():
    """Create a sample configuration object for testing."""
    return Config(
        host=None,
        tls=False,
        tls_verify=False,
        tls_ca_cert="/tmp/ca.pem",
        tls_cert="/tmp/cert.pem",
        tls_key="/tmp/key.pem",
        docker_root="/var/lib/docker",
        shim_image="busybox:latest",
        pause=False,
        log_level="INFO",
    )
