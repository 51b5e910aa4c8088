import logging
import tempfile

import pytest

from nodepoolctl.config import Config
from nodepoolctl.modules.nodepool import ConfigurationError
from nodepoolctl.utils import redact_sensitive_data
from nodepoolctl.utils import kube
from nodepoolctl.utils.kube import build_api_client, get_api_client, load_kubeconfig, validate_origin


def test_validate_origin():
    assert validate_origin("https://10.0.0.1:6443") == "https://10.0.0.1:6443"
    assert validate_origin("https://k8s.example.com/") == "https://k8s.example.com"


@pytest.mark.parametrize("value,message", [
    ("k8s.example.com", "not a valid origin"),
    ("https://k8s.example.com/api", "does not allow paths"),
    ("http://k8s.example.com", "non allowed scheme http"),
])
def test_validate_origin_rejects(value, message):
    with pytest.raises(ConfigurationError, match=message):
        validate_origin(value)


def test_build_api_client_with_token(monkeypatch):
    monkeypatch.setattr(Config, "USER_AGENT", "nodepoolctl/test")
    api_client = build_api_client("https://10.0.0.1:6443", "abc", "-----BEGIN CERTIFICATE-----\n")

    assert api_client.configuration.host == "https://10.0.0.1:6443"
    assert api_client.configuration.api_key_prefix["authorization"] == "Bearer"
    assert api_client.user_agent == "nodepoolctl/test"


def test_build_api_client_requires_token():
    with pytest.raises(ConfigurationError, match="token is required"):
        build_api_client("https://10.0.0.1:6443", "", "cert")


def test_missing_kubeconfig(tmp_path, monkeypatch):
    monkeypatch.delenv("KUBECONFIG_CONTENT", raising=False)
    with pytest.raises(FileNotFoundError):
        load_kubeconfig(str(tmp_path / "missing.yaml"))


def test_redact_sensitive_data():
    data = {"kube_token": "abc", "settings": [{"ca_certificate": "pem", "name": "pool-a"}]}
    assert redact_sensitive_data(data) == {
        "kube_token": "[REDACTED]",
        "settings": [{"ca_certificate": "[REDACTED]", "name": "pool-a"}],
    }


def test_direct_credentials_must_be_complete(monkeypatch):
    monkeypatch.setattr(Config, "KUBE_HOST", "https://10.0.0.1:6443")
    monkeypatch.setattr(Config, "KUBE_TOKEN", "")
    monkeypatch.setattr(Config, "KUBE_CLUSTER_CA_CERTIFICATE", "")

    with pytest.raises(ConfigurationError, match="KUBE_TOKEN, KUBE_CLUSTER_CA_CERTIFICATE"):
        get_api_client()


def test_ca_bundle_is_written_once(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    ca_certificate = f"-----BEGIN CERTIFICATE-----\n{tmp_path.name}\n"

    clients = [build_api_client("https://10.0.0.1:6443", "abc", ca_certificate) for _ in range(5)]

    assert len(list(tmp_path.glob("nodepoolctl-ca-*"))) == 1
    assert len({c.configuration.ssl_ca_cert for c in clients}) == 1


def test_kubeconfig_content_file_is_removed(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    monkeypatch.setenv("KUBECONFIG_CONTENT", "apiVersion: v1\nkind: Config\n")
    loaded = []

    def fake_load_kube_config(config_file=None):
        with open(config_file) as f:
            loaded.append(f.read())

    monkeypatch.setattr(kube.config, "load_kube_config", fake_load_kube_config)

    assert load_kubeconfig() == "KUBECONFIG_CONTENT"
    assert loaded == ["apiVersion: v1\nkind: Config\n"]
    assert list(tmp_path.iterdir()) == []


def test_kubeconfig_content_file_is_removed_when_loading_fails(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    monkeypatch.setenv("KUBECONFIG_CONTENT", "not: a kubeconfig\n")

    def failing_load_kube_config(config_file=None):
        raise kube.config.ConfigException("Invalid kube-config file")

    monkeypatch.setattr(kube.config, "load_kube_config", failing_load_kube_config)

    with pytest.raises(kube.config.ConfigException):
        load_kubeconfig()
    assert list(tmp_path.iterdir()) == []


def test_connection_settings_are_logged_redacted(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    monkeypatch.setattr(Config, "KUBE_HOST", "https://10.0.0.1:6443")
    monkeypatch.setattr(Config, "KUBE_TOKEN", "s3cr3t-token")
    monkeypatch.setattr(Config, "KUBE_CLUSTER_CA_CERTIFICATE", "-----BEGIN CERTIFICATE-----\nredacted-test\n")

    with caplog.at_level(logging.DEBUG, logger="nodepoolctl.utils.kube"):
        get_api_client()

    assert "https://10.0.0.1:6443" in caplog.text
    assert "[REDACTED]" in caplog.text
    assert "s3cr3t-token" not in caplog.text
    assert "redacted-test" not in caplog.text
