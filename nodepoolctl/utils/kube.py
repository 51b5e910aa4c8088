import atexit
import functools
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

from kubernetes import client, config

from ..config import Config
from ..modules.nodepool.errors import ConfigurationError
from . import redact_sensitive_data

logger = logging.getLogger(__name__)


def validate_origin(value: str, name: str = "kube_host",
                    allowed_schemes: Iterable[str] = ("https",)) -> str:
    """Check that ``value`` is an origin of the form <scheme>://<host>:<port>."""
    try:
        parsed = urlparse(value)
    except ValueError:
        raise ConfigurationError(f"Attribute {name} is not a valid origin, got: {value}")

    if not parsed.netloc:
        raise ConfigurationError(f"Attribute {name} is not a valid origin, got: {value}")
    if parsed.path not in ("", "/") or parsed.query or parsed.fragment:
        raise ConfigurationError(f"Attribute {name} does not allow paths, got: {value}")
    if parsed.scheme not in allowed_schemes:
        raise ConfigurationError(
            f"Attribute {name} has non allowed scheme {parsed.scheme}, got: {value}"
        )
    return f"{parsed.scheme}://{parsed.netloc}"


def load_kubeconfig(path: Optional[str] = None) -> Optional[str]:
    """
    Load the kubeconfig from a given path, the KUBECONFIG_CONTENT env var,
    or the default location.
    Returns where the kubeconfig was loaded from.
    """
    # CI/CD secret-based loading
    if "KUBECONFIG_CONTENT" in os.environ:
        fd, temp_path = tempfile.mkstemp(prefix="nodepoolctl-kubeconfig-", suffix=".yaml")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(os.environ["KUBECONFIG_CONTENT"])
            config.load_kube_config(config_file=temp_path)
        finally:
            os.remove(temp_path)
        return "KUBECONFIG_CONTENT"

    # Local path loading
    if path:
        resolved = Path(os.path.expanduser(path)).resolve()
        if not resolved.exists():
            raise FileNotFoundError(f"Kubeconfig not found: {resolved}")
        config.load_kube_config(config_file=str(resolved))
        return str(resolved)

    config.load_kube_config()
    return os.environ.get("KUBECONFIG")


@functools.lru_cache(maxsize=None)
def ca_bundle_path(ca_certificate: str) -> str:
    """Write a CA bundle to a temporary file once per process.

    The file is removed when the interpreter exits.
    """
    fd, ca_path = tempfile.mkstemp(prefix="nodepoolctl-ca-", suffix=".crt")
    with os.fdopen(fd, "w") as f:
        f.write(ca_certificate)
    atexit.register(_remove_file, ca_path)
    return ca_path


def _remove_file(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def build_api_client(host: str, token: str, ca_certificate: str) -> client.ApiClient:
    """Build an ApiClient authenticating with a bearer token.

    Args:
        host: https origin of the Kubernetes API
        token: Service account token
        ca_certificate: PEM-encoded root certificates bundle
    """
    server = validate_origin(host)
    if not token:
        raise ConfigurationError("A token is required to connect to the Kubernetes API")
    if not ca_certificate:
        raise ConfigurationError("A cluster CA certificate is required to connect to the Kubernetes API")

    configuration = client.Configuration()
    configuration.host = server
    configuration.api_key = {"authorization": token}
    configuration.api_key_prefix = {"authorization": "Bearer"}
    configuration.ssl_ca_cert = ca_bundle_path(ca_certificate)
    configuration.verify_ssl = True

    api_client = client.ApiClient(configuration)
    api_client.user_agent = Config.USER_AGENT
    return api_client


def get_api_client(kubeconfig: Optional[str] = None) -> client.ApiClient:
    """Return an ApiClient from direct credentials if configured, else from a kubeconfig."""
    try:
        Config.validate()
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    if Config.KUBE_HOST:
        logger.debug("connecting with token credentials: %s", redact_sensitive_data({
            "kube_host": Config.KUBE_HOST,
            "kube_token": Config.KUBE_TOKEN,
            "kube_cluster_ca_certificate": Config.KUBE_CLUSTER_CA_CERTIFICATE,
        }))
        return build_api_client(Config.KUBE_HOST, Config.KUBE_TOKEN, Config.KUBE_CLUSTER_CA_CERTIFICATE)

    used = load_kubeconfig(kubeconfig or Config.KUBECONFIG or None)
    logger.debug("loaded kubeconfig from %s", used or "default location")
    api_client = client.ApiClient()
    api_client.user_agent = Config.USER_AGENT
    return api_client
