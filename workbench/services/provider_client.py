"""
Async client for the MiniMax speech synthesis API.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from workbench.config import PROVIDER_BASE_URL, PROVIDER_TIMEOUT
from workbench.exceptions import RemoteProviderError, RetrievalError

logger = logging.getLogger(__name__)


class RemoteStatus(enum.Enum):
    """Task states reported by the provider's async query endpoint."""
    PROCESSING = 'Processing'
    SUCCESS = 'Success'
    FAILED = 'Failed'
    EXPIRED = 'Expired'
    UNKNOWN = 'Unknown'

    @classmethod
    def from_wire(cls, value: Optional[str]) -> 'RemoteStatus':
        for member in cls:
            if member.value == value:
                return member
        return cls.UNKNOWN


@dataclass
class SynthesisRequest:
    """Parameters sent to both the sync and async synthesis endpoints."""
    text: str
    voice_id: str
    model: str
    speed: float = 1.0
    vol: float = 1.0
    format: str = 'mp3'
    sample_rate: int = 32000
    bitrate: int = 128000
    channels: int = 1

    def to_payload(self) -> Dict[str, Any]:
        return {
            'model': self.model,
            'text': self.text,
            'voice_setting': {
                'voice_id': self.voice_id,
                'speed': self.speed,
                'vol': self.vol,
            },
            'audio_setting': {
                'sample_rate': self.sample_rate,
                'bitrate': self.bitrate,
                'format': self.format,
                'channel': self.channels,
            },
        }


@dataclass
class TaskStatus:
    task_id: int
    status: RemoteStatus
    file_id: Optional[int] = None
    raw_status: str = ''


@dataclass
class DownloadedFile:
    content: bytes
    content_type: str = ''


def _section(body: Dict[str, Any], key: str, action: str) -> Dict[str, Any]:
    """Return a nested object from a response body, or {} when it is absent."""
    value = body.get(key) or {}
    if not isinstance(value, dict):
        raise RemoteProviderError(f'{action} error: unexpected {key} in response')
    return value


def _as_id(value: Any, name: str, action: str) -> Optional[int]:
    """Coerce a provider id (sent as a number or a numeric string) to int."""
    if value is None or value == '' or value == 0:
        return None
    if isinstance(value, bool):
        raise RemoteProviderError(f'{action} error: invalid {name} {value!r}')
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise RemoteProviderError(f'{action} error: invalid {name} {value!r}') from e


class ProviderClient:
    """
    Issues authenticated requests to the synthesis provider.

    One instance per API key. Use as an async context manager so the
    underlying connection pool is closed:

        async with ProviderClient(api_key) as client:
            task_id = await client.submit(request)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = PROVIDER_BASE_URL,
        timeout: float = PROVIDER_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> 'ProviderClient':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.api_key}'}

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send an API call and return the decoded body, checking base_resp."""
        url = f'{self.base_url}{path}'
        try:
            response = await self._http.request(
                method, url, json=json, params=params, headers=self._auth_headers,
            )
        except httpx.HTTPError as e:
            raise RemoteProviderError(f'{action} request failed: {e}') from e

        if response.status_code != httpx.codes.OK:
            raise RemoteProviderError(
                f'api error {response.status_code}: {response.text}',
                provider_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteProviderError(f'{action} returned invalid JSON') from e
        if not isinstance(body, dict):
            raise RemoteProviderError(f'{action} returned an unexpected response')

        base_resp = _section(body, 'base_resp', action)
        status_code = base_resp.get('status_code', 0)
        if status_code != 0:
            raise RemoteProviderError(
                f'{action} error: {base_resp.get("status_msg", "unknown error")}',
                provider_status=status_code,
            )
        return body

    async def submit(self, request: SynthesisRequest) -> int:
        """Create an async synthesis task and return the provider task id."""
        body = await self._request('POST', '/t2a_async_v2', 'submit', json=request.to_payload())
        task_id = _as_id(body.get('task_id'), 'task_id', 'submit')
        if task_id is None:
            raise RemoteProviderError('submit error: response carried no task_id')
        return task_id

    async def query_status(self, task_id: int) -> TaskStatus:
        body = await self._request(
            'GET', '/query/t2a_async_query_v2', 'query', params={'task_id': task_id},
        )
        raw_status = body.get('status') or ''
        if not isinstance(raw_status, str):
            raise RemoteProviderError(f'query error: unexpected status {raw_status!r}')
        file_id = _as_id(body.get('file_id'), 'file_id', 'query')
        logger.debug('Task %s remote status %r', task_id, raw_status)
        return TaskStatus(
            task_id=task_id,
            status=RemoteStatus.from_wire(raw_status),
            file_id=file_id,
            raw_status=raw_status,
        )

    async def retrieve_file(self, file_id: int) -> str:
        """Return the download URL for a finished task's file."""
        body = await self._request(
            'GET', '/files/retrieve', 'retrieve', params={'file_id': file_id},
        )
        download_url = _section(body, 'file', 'retrieve').get('download_url')
        if not download_url or not isinstance(download_url, str):
            raise RemoteProviderError(f'retrieve error: no download_url for file {file_id}')
        return download_url

    async def download(self, url: str) -> DownloadedFile:
        """Fetch a pre-signed download URL. Transport problems raise RetrievalError."""
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as e:
            raise RetrievalError(f'download request failed: {e}') from e

        if not response.is_success:
            raise RetrievalError(f'download returned HTTP {response.status_code}')

        return DownloadedFile(
            content=response.content,
            content_type=response.headers.get('content-type', ''),
        )

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        """Run a synchronous synthesis and return the decoded audio bytes."""
        body = await self._request('POST', '/t2a_v2', 'synthesis', json=request.to_payload())
        audio_hex = _section(body, 'data', 'synthesis').get('audio')
        if not audio_hex or not isinstance(audio_hex, str):
            raise RemoteProviderError('synthesis error: response carried no audio')
        try:
            return bytes.fromhex(audio_hex)
        except ValueError as e:
            raise RemoteProviderError('synthesis error: audio is not valid hex') from e
