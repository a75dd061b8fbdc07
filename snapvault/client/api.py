"""
    Async adapter for the SnapVault service and for pre-signed object uploads.
"""
from typing import Any, Dict, List, Optional
import logging
import httpx

from snapvault.exceptions import ServiceRequestError
from snapvault.image_service.models import (
    DeleteImageResponse,
    ImageRecord,
    SaveMetadataRequest,
    SaveMetadataResponse,
    UploadCredential,
    parse_records,
)

log = logging.getLogger(__name__)

def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)

class ImageAPIClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _send(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log.error("%s failed: %s", action, e)
            raise ServiceRequestError(f"{action} failed: {e}") from e
        if not response.is_success:
            detail = _detail(response)
            log.error("%s failed with status %s: %s", action, response.status_code, detail)
            raise ServiceRequestError(
                f"{action} failed: {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    async def _json(self, method: str, url: str, action: str, **kwargs) -> Dict[str, Any]:
        response = await self._send(method, url, action, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceRequestError(f"{action} failed: invalid response body") from e

    async def authorize_upload(
        self, filename: str, owner_id: str, content_type: str, file_size: int
    ) -> UploadCredential:
        body = await self._json(
            "POST",
            "/presign-url",
            "Upload authorization",
            json={"filename": filename, "userId": owner_id, "contentType": content_type, "fileSize": file_size},
        )
        return UploadCredential.model_validate(body)

    async def transfer_bytes(self, upload_url: str, data: bytes, content_type: str) -> None:
        # Absolute URL; the object store is not behind the API base url.
        await self._send(
            "PUT",
            upload_url,
            "Upload to storage",
            content=data,
            headers={"Content-Type": content_type},
        )

    async def persist_metadata(self, payload: SaveMetadataRequest) -> SaveMetadataResponse:
        body = await self._json(
            "POST",
            "/save-metadata",
            "Saving image details",
            json=payload.model_dump(by_alias=True, exclude_none=True),
        )
        return SaveMetadataResponse.model_validate(body)

    async def _search(self, params: Dict[str, str]) -> List[ImageRecord]:
        """Follows nextToken until the service reports no further pages."""
        records: List[ImageRecord] = []
        params = dict(params)
        while True:
            body = await self._json("GET", "/search-images", "Fetching images", params=params)
            records.extend(parse_records(body.get("images") or []))
            next_token = body.get("nextToken")
            if not next_token:
                return records
            params["nextToken"] = next_token

    async def query_by_owner(self, owner_id: str) -> List[ImageRecord]:
        return await self._search({"userId": owner_id})

    async def query_by_tag(self, tag: str, owner_id: Optional[str] = None) -> List[ImageRecord]:
        params = {"tag": tag}
        if owner_id:
            params["userId"] = owner_id
        return await self._search(params)

    async def delete_record(self, image_id: str, owner_id: str) -> DeleteImageResponse:
        body = await self._json(
            "POST",
            "/delete-image",
            "Deleting image",
            json={"imageId": image_id, "userId": owner_id},
        )
        return DeleteImageResponse.model_validate(body)

    async def aclose(self):
        await self.http.aclose()
