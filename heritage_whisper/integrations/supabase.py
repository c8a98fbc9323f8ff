from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from .errors import SupabaseApiError


class SupabaseAuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class SupabaseClient:
    """
    Thin async HTTP client for the Supabase Auth and Storage REST APIs.

    Responsibilities:
    - get_user: resolve a user access token into the authenticated user
    - delete_user: remove an auth user with the service role key
    - upload / download / remove: storage object management
    - public_url / create_signed_url: links to stored objects

    Note: Row data lives in the application database, not in Supabase.
    """

    def __init__(
        self,
        base_url: str,
        *,
        service_role_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    def _headers(self, *, bearer: Optional[str] = None, content_type: Optional[str] = "application/json") -> dict[str, str]:
        headers: dict[str, str] = {}
        if content_type:
            headers["Content-Type"] = content_type
        if self.service_role_key:
            headers["apikey"] = self.service_role_key
        token = bearer or self.service_role_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _object_path(path: str) -> str:
        return quote(path.lstrip("/"), safe="/")

    def _raise(self, operation: str, e: httpx.HTTPStatusError) -> SupabaseApiError:
        return SupabaseApiError(
            f"Supabase {operation} failed: {e.response.status_code}",
            status_code=e.response.status_code,
            details=e.response.text,
        )

    # -----------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------

    async def get_user(self, access_token: str) -> Optional[SupabaseAuthUser]:
        """Return the user owning ``access_token``, or None when the token is invalid."""
        self._logger.debug("SupabaseClient.get_user: GET %s/auth/v1/user", self.base_url)
        r = await self._client.get(f"{self.base_url}/auth/v1/user", headers=self._headers(bearer=access_token))
        if r.status_code in (401, 403):
            return None
        try:
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("get_user", e) from e
        return SupabaseAuthUser.model_validate(r.json())

    async def delete_user(self, user_id: str) -> None:
        try:
            self._logger.debug("SupabaseClient.delete_user: DELETE auth user %s", user_id)
            r = await self._client.delete(f"{self.base_url}/auth/v1/admin/users/{user_id}", headers=self._headers())
            if r.status_code == 404:
                return
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("delete_user", e) from e

    # -----------------------------------------------------------------
    # Storage
    # -----------------------------------------------------------------

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{self._object_path(path)}"

    async def create_signed_url(self, bucket: str, path: str, *, expires_in: int = 3600) -> str:
        try:
            r = await self._client.post(
                f"{self.base_url}/storage/v1/object/sign/{bucket}/{self._object_path(path)}",
                headers=self._headers(),
                json={"expiresIn": expires_in},
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("create_signed_url", e) from e
        data = r.json()
        signed = data.get("signedURL") or data.get("signedUrl")
        if not signed:
            raise SupabaseApiError("Unexpected response shape from create_signed_url", details=data)
        return f"{self.base_url}/storage/v1{signed}" if signed.startswith("/") else signed

    async def upload(self, bucket: str, path: str, content: bytes, *, content_type: str, upsert: bool = False) -> str:
        """Upload ``content`` and return the stored object path."""
        try:
            self._logger.debug("SupabaseClient.upload: %s/%s (%d bytes)", bucket, path, len(content))
            headers = self._headers(content_type=content_type)
            headers["x-upsert"] = "true" if upsert else "false"
            r = await self._client.post(
                f"{self.base_url}/storage/v1/object/{bucket}/{self._object_path(path)}",
                headers=headers,
                content=content,
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("upload", e) from e
        return path

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            r = await self._client.get(
                f"{self.base_url}/storage/v1/object/{bucket}/{self._object_path(path)}",
                headers=self._headers(content_type=None),
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("download", e) from e
        return r.content

    async def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        prefixes = [path.lstrip("/") for path in paths if path]
        if not prefixes:
            return []
        try:
            self._logger.debug("SupabaseClient.remove: %s %s", bucket, prefixes)
            r = await self._client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{bucket}",
                headers=self._headers(),
                json={"prefixes": prefixes},
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._raise("remove", e) from e
        return prefixes

    async def aclose(self) -> None:
        await self._client.aclose()


def storage_path_from_url(url: Optional[str], bucket: str) -> Optional[str]:
    """Extract the object path from a public or signed storage URL, or pass a bare path through."""
    if not url:
        return None
    if url.startswith("blob:"):
        return None
    for marker in (f"/object/public/{bucket}/", f"/object/sign/{bucket}/", f"/object/{bucket}/"):
        if marker in url:
            return url.split(marker, 1)[1].split("?", 1)[0]
    if url.startswith("http://") or url.startswith("https://"):
        return None
    return url.lstrip("/")


def resolve_storage_url(url: Optional[str], client: Optional[SupabaseClient], bucket: str) -> Optional[str]:
    """
    Turn a stored media reference into a URL a browser can load.

    Blob URLs only existed in the uploader's browser and are dropped, absolute
    URLs are kept, storage paths become public Supabase Storage URLs.
    """
    if not url or url.startswith("blob:"):
        return None
    if url.startswith("http://") or url.startswith("https://") or client is None:
        return url
    return client.public_url(bucket, url)
