"""nodepoolctl - safe lifecycle management of Kubernetes node pools."""

__version__ = "0.1.0"
