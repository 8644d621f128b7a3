"""Background ConfigMap watcher and the Kubernetes access it needs."""
from .configmap_watcher import ConfigMapSource, SpecWatcher, parse_configmap_records
from .kube import ConfigMapClient, KubeAPIError, KubeConfigError, load_cluster_connection

__all__ = [
    "ConfigMapClient",
    "ConfigMapSource",
    "KubeAPIError",
    "KubeConfigError",
    "SpecWatcher",
    "load_cluster_connection",
    "parse_configmap_records",
]
