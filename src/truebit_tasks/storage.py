"""IPFS HTTP API client used to publish task binaries."""

from __future__ import annotations

import json
import logging

import httpx

from truebit_tasks.models import StoredFile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 3


class StorageError(RuntimeError):
    """Raised when the content-addressed store rejects or fails an upload."""


class IpfsClient:
    """Minimal IPFS HTTP API wrapper with retry and timeout configuration."""

    def __init__(
        self,
        api_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._client = httpx.Client(
            base_url=self._api_url,
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    def add(self, name: str, content: bytes) -> StoredFile:
        """Add ``content`` under the logical ``name`` and return its CID."""

        try:
            response = self._client.post(
                "/api/v0/add",
                params={"pin": "true"},
                files={"file": (name, content, "application/octet-stream")},
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Timeout adding %s to IPFS at %s", name, self._api_url)
            raise StorageError(f"IPFS add timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("IPFS add failed for %s: %s", name, exc)
            raise StorageError(f"IPFS add failed: {exc}") from exc

        path, cid = _parse_add_response(response.text)
        logger.info("Added %s to IPFS: cid=%s size=%d", path or name, cid, len(content))
        return StoredFile(path=path or name, cid=cid, size=len(content))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> IpfsClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _parse_add_response(body: str) -> tuple[str, str]:
    # The add endpoint streams one JSON object per line; the last entry is the root.
    lines = [line for line in body.splitlines() if line.strip()]
    if not lines:
        raise StorageError("IPFS add returned an empty response.")
    try:
        entry = json.loads(lines[-1])
    except json.JSONDecodeError as error:
        raise StorageError(f"IPFS add returned invalid JSON: {error}") from error
    cid = entry.get("Hash") if isinstance(entry, dict) else None
    if not isinstance(cid, str) or not cid:
        raise StorageError(f"IPFS add response has no Hash: {lines[-1]!r}")
    return str(entry.get("Name", "")), cid
