"""
Recording relay: fetches a finished recording from the provider and streams
it to the client unchanged.
"""

from collections.abc import AsyncIterator
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from voicesurvey.shared.exceptions import RecordingFetchError, RecordingNotFound
from voicesurvey.shared.logging import get_logger
from voicesurvey.telephony.config import get_telephony_config

logger = get_logger(__name__)

router = APIRouter(tags=["recordings"])

CHUNK_SIZE = 64 * 1024


class RecordingRelay:
    """Downloads provider recordings with the account access key."""

    def __init__(
        self,
        base_url: str,
        access_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the relay.

        Args:
            base_url: Provider voice API base URL.
            access_key: Provider access key, sent as ``AccessKey <key>``.
            timeout: HTTP request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._access_key = access_key
        self._timeout = timeout
        self._transport = transport

    def recording_url(self, call_id: str, leg_id: str, recording_id: str) -> str:
        segments = [quote(s, safe="") for s in (call_id, leg_id, recording_id)]
        return "{}/calls/{}/legs/{}/recordings/{}.wav".format(self._base_url, *segments)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Authorization": f"AccessKey {self._access_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def open(self, call_id: str, leg_id: str, recording_id: str) -> AsyncIterator[bytes]:
        """Start the download and return an iterator over the audio bytes.

        The provider status is checked before the first byte is yielded so
        failures surface as exceptions rather than truncated responses.

        Raises:
            RecordingNotFound: The provider answered 404.
            RecordingFetchError: Any other provider or transport failure.
        """
        url = self.recording_url(call_id, leg_id, recording_id)
        details = {"call_id": call_id, "leg_id": leg_id, "recording_id": recording_id}
        client = self._client()
        try:
            response = await client.send(client.build_request("GET", url), stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Recording download failed", extra={**details, "error": str(exc)})
            raise RecordingFetchError(details=details) from exc

        if response.status_code == 404:
            await response.aclose()
            await client.aclose()
            raise RecordingNotFound(details=details)
        if response.status_code >= 400:
            await response.aclose()
            await client.aclose()
            logger.error(
                "Provider rejected recording download",
                extra={**details, "status_code": response.status_code},
            )
            raise RecordingFetchError(
                f"Provider answered {response.status_code}",
                details={**details, "status_code": response.status_code},
            )

        async def _body() -> AsyncIterator[bytes]:
            try:
                async for chunk in response.aiter_bytes(CHUNK_SIZE):
                    yield chunk
            finally:
                await response.aclose()
                await client.aclose()

        logger.info("Relaying recording", extra=details)
        return _body()


def get_recording_relay() -> RecordingRelay:
    cfg = get_telephony_config()
    return RecordingRelay(
        base_url=cfg.recordings_base_url,
        access_key=cfg.access_key,
        timeout=cfg.http_timeout_seconds,
    )


@router.get("/play/{call_id}/{leg_id}/{recording_id}")
async def play_recording(
    call_id: str,
    leg_id: str,
    recording_id: str,
    relay: RecordingRelay = Depends(get_recording_relay),
) -> StreamingResponse:
    """Stream a recording from the provider to the client."""
    body = await relay.open(call_id, leg_id, recording_id)
    return StreamingResponse(body, media_type="audio/wav")
