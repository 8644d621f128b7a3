"""
Minimal Kubernetes API access for reading one ConfigMap.

Connection settings come from the pod's service account when running in a
cluster, otherwise from the current context of a kubeconfig file. Only static
credentials are supported (bearer token, token file, client certificate);
exec and auth-provider plugins are not.

Usage:
    connection = load_cluster_connection()
    client = ConfigMapClient(connection)
    data = await client.get_data("default", "openapi-specs")
"""
from __future__ import annotations

import base64
import logging
import os
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import httpx
import yaml

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"


class KubeConfigError(Exception):
    """No usable cluster configuration."""


class KubeAPIError(Exception):
    """The API server could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ClusterConnection:
    """Where the API server is and how to authenticate to it."""
    server: str
    token: Optional[str] = None
    token_file: Optional[Path] = None
    verify: Union[bool, ssl.SSLContext] = True
    source: str = ""

    def bearer_token(self) -> Optional[str]:
        # Projected service account tokens rotate, so the file is re-read on every call
        if self.token_file is not None:
            try:
                return self.token_file.read_text(encoding="utf-8").strip()
            except OSError as e:
                raise KubeConfigError(f"Cannot read token file {self.token_file}: {e}") from e
        return self.token


# =============================================================================
# TLS helpers
# =============================================================================

def _decode_data(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value)
    except (ValueError, TypeError) as e:
        raise KubeConfigError(f"{field} is not valid base64") from e


def _load_cert_chain_from_data(context: ssl.SSLContext, cert: bytes, key: bytes):
    # ssl only loads client certificates from files
    paths = []
    try:
        for content in (cert, key):
            fd, path = tempfile.mkstemp(prefix="multiswagger-", suffix=".pem")
            paths.append(path)
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
        context.load_cert_chain(certfile=paths[0], keyfile=paths[1])
    finally:
        for path in paths:
            os.unlink(path)


def build_ssl_context(
    ca_file: Optional[Path] = None,
    ca_data: Optional[bytes] = None,
    cert_file: Optional[Path] = None,
    key_file: Optional[Path] = None,
    cert_data: Optional[bytes] = None,
    key_data: Optional[bytes] = None,
) -> ssl.SSLContext:
    try:
        if ca_data:
            context = ssl.create_default_context(cadata=ca_data.decode("ascii"))
        elif ca_file:
            context = ssl.create_default_context(cafile=str(ca_file))
        else:
            context = ssl.create_default_context()

        if cert_file and key_file:
            context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
        elif cert_data and key_data:
            _load_cert_chain_from_data(context, cert_data, key_data)
    except (ssl.SSLError, OSError, UnicodeDecodeError) as e:
        raise KubeConfigError(f"Invalid TLS material: {e}") from e
    return context


# =============================================================================
# Config loading
# =============================================================================

def load_incluster_config(
    environ: Mapping[str, str] = os.environ,
    sa_dir: Path = SERVICE_ACCOUNT_DIR,
) -> ClusterConnection:
    host = environ.get("KUBERNETES_SERVICE_HOST")
    port = environ.get("KUBERNETES_SERVICE_PORT")
    if not host or not port:
        raise KubeConfigError("KUBERNETES_SERVICE_HOST/KUBERNETES_SERVICE_PORT are not set")

    token_file = sa_dir / "token"
    if not token_file.is_file():
        raise KubeConfigError(f"Service account token not found at {token_file}")

    if ":" in host:
        host = f"[{host}]"

    ca_file = sa_dir / "ca.crt"
    return ClusterConnection(
        server=f"https://{host}:{port}",
        token_file=token_file,
        verify=build_ssl_context(ca_file=ca_file if ca_file.is_file() else None),
        source="in-cluster",
    )


def _named(items: Any, name: str, kind: str) -> Dict[str, Any]:
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and item.get("name") == name:
                value = item.get(kind, {})
                return value if isinstance(value, dict) else {}
    raise KubeConfigError(f"{kind} {name!r} not found in kubeconfig")


def load_kubeconfig(path: Optional[Path] = None, context: Optional[str] = None) -> ClusterConnection:
    path = path or DEFAULT_KUBECONFIG
    try:
        with path.open("r", encoding="utf-8") as handle:
            config = yaml.safe_load(handle)
    except OSError as e:
        raise KubeConfigError(f"Cannot read kubeconfig {path}: {e}") from e
    except yaml.YAMLError as e:
        raise KubeConfigError(f"Invalid kubeconfig {path}: {e}") from e
    if not isinstance(config, dict):
        raise KubeConfigError(f"kubeconfig root must be a mapping (dict): {path}")

    context_name = context or config.get("current-context")
    if not context_name:
        raise KubeConfigError(f"No current-context in {path}")
    ctx = _named(config.get("contexts"), context_name, "context")
    cluster = _named(config.get("clusters"), ctx.get("cluster", ""), "cluster")
    user = _named(config.get("users"), ctx.get("user", ""), "user") if ctx.get("user") else {}

    server = cluster.get("server")
    if not server:
        raise KubeConfigError(f"Cluster for context {context_name!r} has no server")

    base_dir = path.parent

    def resolve(value: Optional[str]) -> Optional[Path]:
        if not value:
            return None
        p = Path(value).expanduser()
        return p if p.is_absolute() else base_dir / p

    def decoded(field: str, holder: Dict[str, Any]) -> Optional[bytes]:
        return _decode_data(holder[field], field) if holder.get(field) else None

    client_cert = {
        "cert_file": resolve(user.get("client-certificate")),
        "key_file": resolve(user.get("client-key")),
        "cert_data": decoded("client-certificate-data", user),
        "key_data": decoded("client-key-data", user),
    }
    insecure = bool(cluster.get("insecure-skip-tls-verify"))

    verify: Union[bool, ssl.SSLContext]
    if insecure and not any(client_cert.values()):
        verify = False
    elif insecure:
        verify = build_ssl_context(**client_cert)
        verify.check_hostname = False
        verify.verify_mode = ssl.CERT_NONE
    else:
        verify = build_ssl_context(
            ca_file=resolve(cluster.get("certificate-authority")),
            ca_data=decoded("certificate-authority-data", cluster),
            **client_cert,
        )

    if user.get("exec") or user.get("auth-provider"):
        logger.warning("kubeconfig user for context %r uses an auth plugin, which is not supported", context_name)

    return ClusterConnection(
        server=str(server).rstrip("/"),
        token=user.get("token"),
        token_file=resolve(user.get("tokenFile")),
        verify=verify,
        source=f"kubeconfig:{path}",
    )


def load_cluster_connection(kubeconfig: Optional[str] = None) -> ClusterConnection:
    """In-cluster configuration first, then the local kubeconfig."""
    try:
        connection = load_incluster_config()
        logger.info("Successfully loaded in-cluster config.")
        return connection
    except KubeConfigError as e:
        logger.warning("Failed to get in-cluster config: %s. Attempting to use local kubeconfig.", e)

    # KUBECONFIG may hold a path list; the first entry is used
    path = Path(kubeconfig.split(os.pathsep)[0]).expanduser() if kubeconfig else None
    connection = load_kubeconfig(path)
    logger.info("Successfully loaded local kubeconfig from %s", path or DEFAULT_KUBECONFIG)
    return connection


# =============================================================================
# API client
# =============================================================================

class ConfigMapClient:
    """Reads ConfigMap data through the core/v1 API."""

    def __init__(
        self,
        connection: ClusterConnection,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.connection = connection
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=connection.server,
            verify=connection.verify,
            timeout=timeout,
        )

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json"}
        token = self.connection.bearer_token()
        if token:
            h["Authorization"] = f"Bearer {token}"
        return h

    async def get_data(self, namespace: str, name: str) -> Dict[str, str]:
        """Return the ``data`` section of ConfigMap ``namespace/name``."""
        path = f"/api/v1/namespaces/{namespace}/configmaps/{name}"
        try:
            resp = await self._client.get(path, headers=self._headers())
        except httpx.HTTPError as e:
            raise KubeAPIError(f"Failed to get ConfigMap '{name}' in namespace '{namespace}': {e!r}") from e

        if resp.status_code != 200:
            raise KubeAPIError(
                f"Failed to get ConfigMap '{name}' in namespace '{namespace}': HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
        except ValueError as e:
            raise KubeAPIError(f"API server returned invalid JSON for ConfigMap '{name}'") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}
