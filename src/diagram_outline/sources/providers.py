from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Protocol, Union

import requests

from ..logging import get_logger
from ..util.errors import ConfigError, FetchError

LOG = get_logger(__name__)

_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)


class SourceProvider(Protocol):
    def fetch(self, path: str) -> str:
        """Return the raw diagram text stored at `path` or raise FetchError."""
        ...


class FileSourceProvider:
    """
    Reads diagram sources from a local directory tree. Manifest `file`
    entries are resolved relative to `root` and may not escape it.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            raise FetchError(f"Diagram path escapes the source root: {path}") from None
        return candidate

    def fetch(self, path: str) -> str:
        target = self._resolve(path)
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(f"Unable to load Mermaid file {path}: {e}") from e


class HttpSourceProvider:
    """Fetches diagram sources over HTTP relative to a base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def url_for(self, path: str) -> str:
        if _HTTP_RE.match(path):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def fetch(self, path: str) -> str:
        url = self.url_for(path)
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Unable to load Mermaid file {url}: {e}") from e
        if not response.ok:
            raise FetchError(f"Unable to load Mermaid file {url}: HTTP {response.status_code}")
        return response.text


def resolve_source_provider(root: Optional[str], *, timeout: float = 30.0) -> SourceProvider:
    """
    Pick a provider for the configured source root:
    - http(s):// roots are fetched with requests
    - anything else is treated as a local directory (default: cwd)
    """
    if root and _HTTP_RE.match(root):
        LOG.debug("Using HTTP source provider", extra={"source_root": root})
        return HttpSourceProvider(root, timeout=timeout)
    base = Path(root) if root else Path.cwd()
    if not base.is_dir():
        raise ConfigError(f"Source root is not a directory: {base}")
    LOG.debug("Using file source provider", extra={"source_root": str(base)})
    return FileSourceProvider(base)
