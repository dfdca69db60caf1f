"""
manifest_store.py
- Path-addressed read access to cluster and group manifests.
- Supports a local directory (absolute path or file:// URL) and an HTTP(S) base URL.
- build_store() validates the configured base once at startup.
"""

from pathlib import Path, PurePosixPath
from urllib.parse import quote, urlparse

import requests
from loguru import logger

from nodelabel_orch.core.errors import ConfigError, ManifestNotFoundError, StoreError


def _check_relative(path):
    parts = PurePosixPath(path).parts
    if not parts or path.startswith("/") or ".." in parts:
        raise StoreError(f"invalid manifest path {path!r}")
    return parts


class FileManifestStore:
    """Reads manifests from a directory tree on local disk."""

    def __init__(self, root):
        self.root = Path(root)

    def __str__(self):
        return f"file://{self.root}"

    def read_path(self, path):
        target = self.root.joinpath(*_check_relative(path))
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise ManifestNotFoundError(f"manifest {str(target)!r} not found") from e
        except OSError as e:
            raise StoreError(f"error reading {str(target)!r}: {e}") from e


class HttpManifestStore:
    """Reads manifests from an HTTP(S) location, one GET per path."""

    def __init__(self, base_url, timeout=5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def __str__(self):
        return self.base_url

    def read_path(self, path):
        url = f"{self.base_url}/{'/'.join(quote(p) for p in _check_relative(path))}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"error fetching {url!r}: {e}") from e

        if response.status_code == 404:
            raise ManifestNotFoundError(f"manifest {url!r} not found")
        if response.status_code != 200:
            raise StoreError(f"error fetching {url!r}: HTTP {response.status_code}")
        return response.content


def build_store(base, timeout=5.0):
    """
    Resolve the configured base location into a manifest store.

    Args:
        base (str): Absolute directory, ``file://`` URL or ``http(s)://`` URL.
        timeout (float): Per-request timeout for HTTP stores.

    Returns:
        FileManifestStore or HttpManifestStore

    Raises:
        ConfigError: If the base cannot be parsed into a store root.
    """
    if not base or not base.strip():
        raise ConfigError("manifest base path is empty")
    base = base.strip()

    parsed = urlparse(base)
    if parsed.scheme in ("http", "https"):
        if not parsed.netloc:
            raise ConfigError(f"cannot parse manifest base {base!r}: missing host")
        store = HttpManifestStore(base, timeout=timeout)
    elif parsed.scheme == "file":
        if parsed.netloc or not parsed.path.startswith("/"):
            raise ConfigError(f"cannot parse manifest base {base!r}: expected file:///absolute/path")
        store = FileManifestStore(parsed.path)
    elif parsed.scheme == "" and base.startswith("/"):
        store = FileManifestStore(base)
    else:
        raise ConfigError(f"cannot parse manifest base {base!r}: unsupported location")

    logger.info(f"[manifest_store] Using manifest store at {store}")
    return store
