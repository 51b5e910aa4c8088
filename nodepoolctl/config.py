"""Configuration management for the nodepoolctl application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

class Config:
    """Application configuration with sensible defaults."""

    # Node pool defaults
    SELECTOR_KEY: str = os.getenv("NODEPOOL_SELECTOR_KEY", "cloud.google.com/gke-nodepool")
    MIN_READY_NODES: int = int(os.getenv("NODEPOOL_MIN_READY_NODES", "1"))
    READY_TIMEOUT: str = os.getenv("NODEPOOL_READY_TIMEOUT", "300s")
    DRAIN_TIMEOUT: str = os.getenv("NODEPOOL_DRAIN_TIMEOUT", "300s")
    DRAIN_WAIT: str = os.getenv("NODEPOOL_DRAIN_WAIT", "60s")

    # Polling (in seconds)
    POLL_INTERVAL: float = float(os.getenv("NODEPOOL_POLL_INTERVAL", "1.0"))
    EVICTION_RETRY_INTERVAL: float = float(os.getenv("NODEPOOL_EVICTION_RETRY_INTERVAL", "5.0"))
    REQUEST_TIMEOUT: float = float(os.getenv("NODEPOOL_REQUEST_TIMEOUT", "30"))

    # State
    REGISTRY_PATH: str = os.getenv("NODEPOOL_REGISTRY_PATH", "nodepools/registry.json")

    # Kubernetes API access
    KUBECONFIG: str = os.getenv("KUBECONFIG", "")
    KUBE_HOST: str = os.getenv("KUBE_HOST", "")
    KUBE_TOKEN: str = os.getenv("KUBE_TOKEN", "")
    KUBE_CLUSTER_CA_CERTIFICATE: str = os.getenv("KUBE_CLUSTER_CA_CERTIFICATE", "")
    USER_AGENT: str = os.getenv("NODEPOOL_USER_AGENT", "nodepoolctl/0.1.0")

    # API server
    API_KEY: str = os.getenv("NODEPOOLCTL_API_KEY", "nodepoolctl-secret")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Security
    REDACT_KEYS: tuple = ("api_key", "password", "secret", "token", "certificate")

    @classmethod
    def validate(cls) -> None:
        """Validate the API credentials, which must be given together."""
        direct = {
            "KUBE_HOST": cls.KUBE_HOST,
            "KUBE_TOKEN": cls.KUBE_TOKEN,
            "KUBE_CLUSTER_CA_CERTIFICATE": cls.KUBE_CLUSTER_CA_CERTIFICATE,
        }
        if any(direct.values()):
            missing = [k for k, v in direct.items() if not v]
            if missing:
                raise ValueError(f"Missing required configuration: {', '.join(missing)}")

# Don't validate on import to allow for dynamic configuration
# Call Config.validate() explicitly when needed
