"""
Tests for engine access: API version probing and host handling.
"""
import dataclasses
import pytest
import docker.errors

from dockvol.engine import engine_call, normalize_host, parse_api_version, probe_capabilities, tls_config
from dockvol.errors import EngineError
from dockvol.types import EngineCapabilities
from tests.conftest import FakeClient


def test_parse_api_version():
    assert parse_api_version("1.43") == (1, 43)
    assert parse_api_version("1.18") == (1, 18)
    assert parse_api_version("1.41.0") == (1, 41, 0)


def test_parse_api_version_garbage():
    with pytest.raises(EngineError):
        parse_api_version("")


def test_probe_capabilities_modern():
    caps = probe_capabilities(FakeClient(api="1.43"), "/var/lib/docker")
    assert caps.legacy_layout is False
    assert caps.trims_data_suffix is True
    assert caps.volumes_root == "/var/lib/docker/volumes"


def test_probe_capabilities_legacy():
    caps = probe_capabilities(FakeClient(api="1.18"), "/srv/docker")
    assert caps.legacy_layout is True
    assert caps.trims_data_suffix is False
    assert caps.volumes_root == "/srv/docker/vfs/dir"
    assert caps.legacy_config_root == "/srv/docker/volumes"


def test_layout_boundary():
    assert EngineCapabilities((1, 19)).legacy_layout is False
    assert EngineCapabilities((1, 9)).legacy_layout is True


def test_normalize_host():
    assert normalize_host(None) == "unix:///var/run/docker.sock"
    assert normalize_host("/var/run/docker.sock") == "unix:///var/run/docker.sock"
    assert normalize_host("tcp://10.0.0.5:2376") == "tcp://10.0.0.5:2376"


def test_engine_call_wraps_sdk_errors():
    with pytest.raises(EngineError, match="fetching: boom"):
        with engine_call("fetching"):
            raise docker.errors.APIError("boom")


def test_tls_disabled(sample_config):
    assert tls_config(sample_config) is None


def test_tls_without_verify(sample_config, tmp_path):
    cfg = dataclasses.replace(sample_config, tls=True, tls_cert=str(tmp_path / "cert.pem"),
                              tls_key=str(tmp_path / "key.pem"))
    tls = tls_config(cfg)
    assert tls.verify is False
    assert tls.cert is None


def test_tls_client_certificate(sample_config, tmp_path):
    (tmp_path / "cert.pem").write_text("cert")
    (tmp_path / "key.pem").write_text("key")
    cfg = dataclasses.replace(sample_config, tls=True, tls_cert=str(tmp_path / "cert.pem"),
                              tls_key=str(tmp_path / "key.pem"))
    assert tls_config(cfg).cert == (str(tmp_path / "cert.pem"), str(tmp_path / "key.pem"))


def test_tls_verify_missing_ca_is_engine_error(sample_config, tmp_path):
    cfg = dataclasses.replace(sample_config, tls_verify=True, tls_ca_cert=str(tmp_path / "ca.pem"),
                              tls_cert=str(tmp_path / "cert.pem"), tls_key=str(tmp_path / "key.pem"))
    with pytest.raises(EngineError, match="TLS configuration"):
        tls_config(cfg)
