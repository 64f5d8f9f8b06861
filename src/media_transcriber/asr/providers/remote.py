from __future__ import annotations

import logging
import mimetypes
from typing import Any, Dict, Optional

import httpx

from ..types import AsrOptions, AsrResult
from .base import AsrProvider

logger = logging.getLogger(__name__)


class RemoteAsrProvider(AsrProvider):
    """Uploads the whole audio file to a remote transcription endpoint."""

    name = "remote"
    whole_file = True

    def __init__(
        self,
        *,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url:
            raise RuntimeError("remote ASR provider requires ASR_REMOTE_URL")
        self._url = url
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._transport = transport

    async def transcribe_file(self, *, path: str, filename: str, options: AsrOptions) -> AsrResult:
        headers: Dict[str, str] = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        form: Dict[str, str] = {}
        if options.lang:
            form["language"] = options.lang

        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        with open(path, "rb") as fh:
            files = {"file": (filename, fh, content_type)}
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, headers=headers, files=files, data=form)
                if resp.is_error:
                    logger.warning(
                        "transcribe.remote.http_error",
                        extra={"status": resp.status_code, "body": resp.text[:500]},
                    )
                resp.raise_for_status()
                data: Any = resp.json()

        if not isinstance(data, dict):
            raise ValueError("remote ASR returned a non-object response")
        text = data.get("transcription")
        if text is None:
            text = data.get("text", "")
        if not isinstance(text, str):
            raise ValueError("remote ASR response has no transcription string")

        return AsrResult(
            text=text.strip(),
            duration_seconds=data.get("duration"),
            provider=self.name,
        )

    @property
    def url(self) -> str:
        return self._url

