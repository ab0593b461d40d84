"""
Pytest fixtures for testing.
"""
import asyncio
from collections import Counter
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import create_engine, create_session_factory, get_db
from workbench.exceptions import RemoteProviderError
from workbench.models import ApiKey, Base
from workbench.services.artifact_store import ArtifactStore
from workbench.services.provider_client import DownloadedFile, RemoteStatus, TaskStatus
from workbench.services.synthesis_orchestrator import (
    SynthesisOrchestrator,
    get_orchestrator,
    reset_orchestrator,
)


class FakeProvider:
    """
    In-memory stand-in for ProviderClient.

    Acts as its own client factory so tests can inspect every call made
    through it.
    """

    def __init__(self):
        self.calls = Counter()
        self.api_keys = []
        self.requests = []
        self.task_id = 42
        self.submit_error = None
        self.status = TaskStatus(task_id=42, status=RemoteStatus.PROCESSING, raw_status='Processing')
        self.retrieve_error = None
        self.download_url = 'https://cdn.example.com/task-42.mp3'
        self.download_errors = []
        self.download_result = DownloadedFile(content=b'ID3-audio-bytes', content_type='audio/mpeg')
        self.download_delay = 0.0
        self.sync_audio = b'sync-audio-bytes'
        self.sync_error = None

    def __call__(self, api_key: str) -> 'FakeProvider':
        self.api_keys.append(api_key)
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    def report(self, raw_status: str, file_id=None):
        self.status = TaskStatus(
            task_id=self.task_id,
            status=RemoteStatus.from_wire(raw_status),
            file_id=file_id,
            raw_status=raw_status,
        )

    @property
    def remote_calls(self) -> int:
        return sum(self.calls[name] for name in ('query', 'retrieve', 'download'))

    async def submit(self, request):
        self.calls['submit'] += 1
        self.requests.append(request)
        if self.submit_error:
            raise self.submit_error
        return self.task_id

    async def query_status(self, task_id):
        self.calls['query'] += 1
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    async def retrieve_file(self, file_id):
        self.calls['retrieve'] += 1
        if self.retrieve_error:
            raise self.retrieve_error
        return self.download_url

    async def download(self, url):
        self.calls['download'] += 1
        if self.download_delay:
            await asyncio.sleep(self.download_delay)
        if self.download_errors:
            raise self.download_errors.pop(0)
        return self.download_result

    async def synthesize(self, request):
        self.calls['synthesize'] += 1
        self.requests.append(request)
        if self.sync_error:
            raise self.sync_error
        return self.sync_audio


@pytest_asyncio.fixture(scope='function')
async def test_engine(tmp_path):
    """Create a test database engine backed by a fresh file."""
    engine = create_engine(f'sqlite+aiosqlite:///{tmp_path / "test.db"}')
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest_asyncio.fixture(scope='function')
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def audio_dir(tmp_path) -> Path:
    return tmp_path / 'generated'


@pytest.fixture
def uploads_dir(tmp_path) -> Path:
    return tmp_path / 'uploads'


@pytest.fixture
def artifact_store(audio_dir) -> ArtifactStore:
    return ArtifactStore(audio_dir)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def orchestrator(session_factory, artifact_store, fake_provider, uploads_dir) -> SynthesisOrchestrator:
    return SynthesisOrchestrator(
        session_factory=session_factory,
        artifact_store=artifact_store,
        client_factory=fake_provider,
        uploads_dir=uploads_dir,
    )


@pytest_asyncio.fixture
async def api_key(test_session) -> ApiKey:
    """A registered default API key."""
    key = ApiKey(key='sk-test', is_default=True)
    test_session.add(key)
    await test_session.commit()
    await test_session.refresh(key)
    return key


@pytest.fixture
def failing_submit(fake_provider) -> FakeProvider:
    fake_provider.submit_error = RemoteProviderError('api error 500: upstream unavailable', 500)
    return fake_provider


@pytest_asyncio.fixture
async def client(session_factory, orchestrator, uploads_dir):
    """Create a test client with the database and orchestrator overridden."""
    reset_orchestrator()

    from server import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    with patch('workbench.routers.synthesis.UPLOADS_DIR', uploads_dir):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            yield client

    app.dependency_overrides.clear()
    reset_orchestrator()
