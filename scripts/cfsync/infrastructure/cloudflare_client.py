from __future__ import annotations

import json
import logging

import httpx

from cfsync.domain.entities import RemoteProjectRecord, SourceKind
from cfsync.domain.errors import CloudflareAPIError, ProjectNotFoundError
from cfsync.domain.interfaces import IPagesProjects, IWorkerScripts

log = logging.getLogger(__name__)

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
REQUEST_TIMEOUT    = 30.0
SCRIPT_MEDIA_TYPE  = "application/javascript+module"


class CloudflareClient(IPagesProjects, IWorkerScripts):
    """
    Concrete implementation of IPagesProjects and IWorkerScripts for the
    Cloudflare v4 REST API.

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally. This lets callers control the client lifecycle
    and makes testing trivial: pass in a client built on httpx.MockTransport.

    Calls are never retried. Any failure surfaces as CloudflareAPIError with
    the API's own error list attached.
    """

    def __init__(self, token: str, client: httpx.AsyncClient, base_url: str = CLOUDFLARE_API_URL) -> None:
        self._client   = client
        self._base_url = base_url.rstrip("/")
        self._headers  = {"Authorization": f"Bearer {token}"}

    # Anti-Corruption Layer
    @staticmethod
    def _parse_project(raw: dict) -> RemoteProjectRecord:
        """
        Translate Cloudflare's project JSON into our RemoteProjectRecord.

        Cloudflare sends:            We keep:
          "source": {"type": ...} →  source_kind (null/missing → UNKNOWN)
          "subdomain"             →  subdomain (missing until created)

        If Cloudflare renames a field, fix it HERE only.
        """
        source = raw.get("source") or {}
        return RemoteProjectRecord(
            name        = raw["name"],
            source_kind = SourceKind.from_wire(source.get("type")),
            subdomain   = raw.get("subdomain") or None,
        )

    @staticmethod
    def _raise_for_envelope(response: httpx.Response) -> dict | list | None:
        """
        Unwrap the {"success", "errors", "result"} envelope.
        Raises CloudflareAPIError (ProjectNotFoundError on 404) on failure.
        """
        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        errors = data.get("errors") or []
        if response.is_success and data.get("success", True):
            return data.get("result")

        message = "; ".join(
            f"{err.get('message', 'unknown error')} (code {err.get('code')})" for err in errors
        ) or f"HTTP {response.status_code} {response.reason_phrase}"
        error_cls = ProjectNotFoundError if response.status_code == 404 else CloudflareAPIError
        raise error_cls(response.status_code, message, errors)

    async def _request(self, method: str, path: str, **kwargs) -> dict | list | None:
        url = f"{self._base_url}{path}"
        log.debug("%s %s", method, url)
        response = await self._client.request(
            method,
            url,
            headers=self._headers,
            timeout=REQUEST_TIMEOUT,
            **kwargs,
        )
        return self._raise_for_envelope(response)

    # IPagesProjects implementation
    async def get_project(self, account_id: str, name: str) -> RemoteProjectRecord:
        result = await self._request("GET", f"/accounts/{account_id}/pages/projects/{name}")
        return self._parse_project(result)

    async def create_project(self, account_id: str, body: dict) -> None:
        await self._request("POST", f"/accounts/{account_id}/pages/projects", json=body)

    async def edit_project(self, account_id: str, name: str, body: dict) -> None:
        await self._request("PATCH", f"/accounts/{account_id}/pages/projects/{name}", json=body)

    async def delete_project(self, account_id: str, name: str) -> None:
        await self._request("DELETE", f"/accounts/{account_id}/pages/projects/{name}")

    # IWorkerScripts implementation
    async def upsert_script(
        self,
        account_id: str,
        script_name: str,
        metadata: dict,
        main_module: str,
        content: str,
    ) -> None:
        """
        Upload a module worker. The script part is named after `main_module`,
        which is how the platform finds the entry point among the parts.
        """
        files = {
            "metadata":  ("metadata.json", json.dumps(metadata), "application/json"),
            main_module: (main_module, content.encode("utf-8"), SCRIPT_MEDIA_TYPE),
        }
        await self._request("PUT", f"/accounts/{account_id}/workers/scripts/{script_name}", files=files)

    async def get_subdomain(self, account_id: str) -> str:
        result = await self._request("GET", f"/accounts/{account_id}/workers/subdomain")
        return result["subdomain"]
