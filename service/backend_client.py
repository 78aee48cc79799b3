# service/backend_client.py
import logging
from typing import Any, Optional, Type, TypeVar
import httpx
from pydantic import BaseModel, ValidationError
from config.settings import settings
from core.entities import UploadSource
from model.api import (
    FillJobRequest,
    FillJobResponse,
    JobPollResponse,
    ManifestResponse,
    UploadResponse,
)
from util.constants import ExternalURIs
from util.enums import ErrorMessage
from util.errors import ApiError
from util.timing import timed

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def error_message_from(data: Any, status_code: int) -> str:
    """
    Human-readable text from an error body: a plain-text body, or the
    `detail`/`message` string of a JSON object; otherwise a generic line.
    """
    if isinstance(data, str) and data.strip():
        return data.strip()
    if isinstance(data, dict):
        for key in ("detail", "message"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"Request failed ({status_code})"


def _decode_body(res: httpx.Response) -> Any:
    content_type = res.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return res.json()
        except ValueError:
            return res.text
    return res.text


class BackendClient:
    """
    Thin async client for the form-fill backend.
    Every failure (transport, timeout, non-2xx, wrong shape) surfaces as ApiError.
    """

    def __init__(
        self,
        base_url: str = settings.API_BASE_URL,
        timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0))
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            res = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            logger.error("backend.timeout method=%s path=%s", method, path)
            raise ApiError.of(ErrorMessage.TIMEOUT)
        except httpx.RequestError as e:
            logger.error(
                "backend.request_error method=%s path=%s err=%s",
                method,
                path,
                type(e).__name__,
            )
            raise ApiError.of(ErrorMessage.NETWORK_ERROR)

        data = _decode_body(res)
        if not res.is_success:
            message = error_message_from(data, res.status_code)
            logger.warning(
                "backend.bad_status method=%s path=%s status=%d",
                method,
                path,
                res.status_code,
            )
            raise ApiError(message, res.status_code)
        return data

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError:
            logger.error("backend.bad_shape model=%s", model.__name__)
            raise ApiError.of(ErrorMessage.UNEXPECTED_RESPONSE)

    # ---------------- Uploads ----------------

    async def list_uploads(self, identity: str) -> ManifestResponse:
        with timed(logger, "backend.uploads.list"):
            data = await self._request(
                "GET", ExternalURIs.UPLOADS, params={"identity": identity}
            )
        return self._parse(ManifestResponse, data)

    async def upload_file(
        self, identity: str, source: UploadSource, target_link: Optional[str] = None
    ) -> UploadResponse:
        form = {"identity": identity}
        if target_link:
            form["targetLink"] = target_link
        files = {"file": (source.name, source.data, source.content_type)}
        with timed(logger, "backend.uploads.create", bytes=source.size):
            data = await self._request(
                "POST", ExternalURIs.UPLOADS, data=form, files=files
            )
        return self._parse(UploadResponse, data)

    async def delete_upload(self, identity: str, slug: str) -> None:
        with timed(logger, "backend.uploads.delete", slug=slug):
            await self._request(
                "DELETE", ExternalURIs.upload(slug), params={"identity": identity}
            )

    # ---------------- Form fill jobs ----------------

    async def create_fill_job(self, identity: str, target_link: str) -> FillJobResponse:
        payload = FillJobRequest(identity=identity, targetLink=target_link)
        with timed(logger, "backend.form_fill.create"):
            data = await self._request(
                "POST", ExternalURIs.FORM_FILL, json=payload.model_dump()
            )
        return self._parse(FillJobResponse, data)

    async def get_fill_job(
        self, identity: str, job_id: str, target_link: str
    ) -> JobPollResponse:
        with timed(logger, "backend.form_fill.poll", job=job_id):
            data = await self._request(
                "GET",
                ExternalURIs.form_fill_job(job_id),
                params={"identity": identity, "formUrl": target_link},
            )
        return self._parse(JobPollResponse, data)
