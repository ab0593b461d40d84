"""
Synthesis job orchestration: submit, poll, download, persist.
"""
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from workbench.config import (
    DEFAULT_BITRATE,
    DEFAULT_CHANNELS,
    DEFAULT_FORMAT,
    DEFAULT_MODEL,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SPEED,
    DEFAULT_VOL,
    SUPPORTED_FORMATS,
    UPLOADS_DIR,
)
from workbench.database import async_session_factory
from workbench.exceptions import (
    InvalidOperationError,
    RemoteProviderError,
    RetrievalError,
    ValidationError,
)
from workbench.models.job import JobMode, JobStatus, SynthesisJob
from workbench.services.artifact_store import ArtifactStore, extract_audio_payload
from workbench.services.credentials import resolve_api_key
from workbench.services.job_ledger import JobLedger
from workbench.services.lock_registry import JobLockRegistry
from workbench.services.provider_client import (
    ProviderClient,
    RemoteStatus,
    SynthesisRequest,
    TaskStatus,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], ProviderClient]


@dataclass
class SynthesisParams:
    """Caller-supplied synthesis parameters."""
    voice_id: str
    text: Optional[str] = None
    input_file: Optional[str] = None
    model: str = DEFAULT_MODEL
    speed: float = DEFAULT_SPEED
    vol: float = DEFAULT_VOL
    format: str = DEFAULT_FORMAT
    sample_rate: int = DEFAULT_SAMPLE_RATE
    bitrate: int = DEFAULT_BITRATE
    channels: int = DEFAULT_CHANNELS
    mode: str = JobMode.async_.value


class PollResult(enum.Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'
    RETRY = 'retry'


@dataclass
class PollOutcome:
    """
    Result of one remote poll.

    RETRY is a soft failure: the note is stored on the job but the job
    stays processing so the next poll repeats the download.
    """
    result: PollResult
    output_path: Optional[str] = None
    detail: Optional[str] = None


def _read_input_text(params: SynthesisParams) -> str:
    if params.text and params.text.strip():
        return params.text
    if params.input_file:
        try:
            text = Path(params.input_file).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ValidationError(f'Cannot read input file: {e}') from e
        if not text.strip():
            raise ValidationError('Input file is empty')
        return text
    raise ValidationError('Either text or an input file is required')


class SynthesisOrchestrator:
    """
    Coordinates the provider client, job ledger, artifact store and the
    per-job lock registry.

    Status checks are caller-driven. At most one remote-completion sequence
    runs per job at a time; checks on different jobs never wait on each other.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_factory,
        artifact_store: Optional[ArtifactStore] = None,
        client_factory: ClientFactory = ProviderClient,
        locks: Optional[JobLockRegistry] = None,
        uploads_dir: Path = UPLOADS_DIR,
    ):
        self._session_factory = session_factory
        self._artifacts = artifact_store or ArtifactStore()
        self._client_factory = client_factory
        self._locks = locks or JobLockRegistry()
        self._uploads_dir = Path(uploads_dir)

    @property
    def locks(self) -> JobLockRegistry:
        return self._locks

    @property
    def artifacts(self) -> ArtifactStore:
        return self._artifacts

    async def submit(self, params: SynthesisParams, key_id: Optional[int] = None) -> SynthesisJob:
        """
        Submit a synthesis job and persist exactly one record for it.

        Provider failures are captured on the record as a failed job rather
        than raised.

        Raises:
            ValidationError: no text or file, or an unsupported format
            CredentialError: no API key could be resolved
        """
        text = _read_input_text(params)
        if not params.voice_id:
            raise ValidationError('voice_id is required')
        if params.format not in SUPPORTED_FORMATS:
            raise ValidationError(f'Unsupported format: {params.format}')
        if params.mode not in (JobMode.async_.value, JobMode.sync.value):
            raise ValidationError(f'Unsupported mode: {params.mode}')

        request = SynthesisRequest(
            text=text,
            voice_id=params.voice_id,
            model=params.model,
            speed=params.speed,
            vol=params.vol,
            format=params.format,
            sample_rate=params.sample_rate,
            bitrate=params.bitrate,
            channels=params.channels,
        )

        async with self._session_factory() as session:
            api_key = await resolve_api_key(session, key_id)
            ledger = JobLedger(session)
            job = SynthesisJob(
                mode=params.mode,
                status=JobStatus.processing.value,
                text=text,
                input_file=params.input_file,
                voice_id=params.voice_id,
                model=params.model,
                speed=params.speed,
                vol=params.vol,
                format=params.format,
                sample_rate=params.sample_rate,
                bitrate=params.bitrate,
                channels=params.channels,
            )

            if params.mode == JobMode.sync.value:
                return await self._submit_sync(ledger, api_key.key, job, request)

            try:
                async with self._client_factory(api_key.key) as client:
                    job.remote_task_id = await client.submit(request)
            except RemoteProviderError as e:
                logger.warning('Async submission failed: %s', e.message)
                job.mark_failed(e.message)

            job = await ledger.create(job)
            logger.info('Created job %s (status=%s, task=%s)', job.id, job.status, job.remote_task_id)
            return job

    async def _submit_sync(
        self,
        ledger: JobLedger,
        api_key: str,
        job: SynthesisJob,
        request: SynthesisRequest,
    ) -> SynthesisJob:
        try:
            async with self._client_factory(api_key) as client:
                audio = await client.synthesize(request)
        except RemoteProviderError as e:
            logger.warning('Sync synthesis failed: %s', e.message)
            job.mark_failed(e.message)
            return await ledger.create(job)

        # The artifact name needs the id, but the row is only committed once
        # it is terminal.
        job = await ledger.reserve(job)
        try:
            reference = self._artifacts.write(job.id, job.format, audio)
        except OSError as e:
            logger.error('Saving audio for job %s failed: %s', job.id, e)
            job.mark_failed(f'Save file failed: {e}')
        else:
            job.mark_success(reference)
        return await ledger.save(job)

    async def check_status(self, job_id: int, key_id: Optional[int] = None) -> SynthesisJob:
        """
        Poll the provider for a job and download its audio once ready.

        Terminal jobs are returned without locking or remote calls.

        Raises:
            NotFoundError: unknown job id
            InvalidOperationError: the job has no remote task to poll
            CredentialError: no API key could be resolved
            RemoteProviderError: the status query itself failed
        """
        async with self._session_factory() as session:
            job = await JobLedger(session).get(job_id)
        if job.is_terminal:
            return job

        async with self._locks.get(job_id):
            async with self._session_factory() as session:
                ledger = JobLedger(session)

                # A concurrent check may have finished the job while we waited.
                job = await ledger.get(job_id)
                if job.is_terminal:
                    return job

                if not job.remote_task_id:
                    raise InvalidOperationError(f'Job {job_id} is not an async job')

                api_key = await resolve_api_key(session, key_id, fallback_to_any=True)
                async with self._client_factory(api_key.key) as client:
                    outcome = await self._poll(client, job)

                self._apply(job, outcome)
                return await ledger.save(job)

    async def _poll(self, client: ProviderClient, job: SynthesisJob) -> PollOutcome:
        task = await client.query_status(job.remote_task_id)

        if task.status is RemoteStatus.SUCCESS:
            return await self._fetch_artifact(client, job, task)
        if task.status in (RemoteStatus.FAILED, RemoteStatus.EXPIRED):
            return PollOutcome(PollResult.FAILED, detail=f'Remote status: {task.raw_status}')
        return PollOutcome(PollResult.PENDING)

    async def _fetch_artifact(
        self,
        client: ProviderClient,
        job: SynthesisJob,
        task: TaskStatus,
    ) -> PollOutcome:
        try:
            if not task.file_id:
                raise RemoteProviderError('task reported success without a file_id')
            download_url = await client.retrieve_file(task.file_id)
        except RemoteProviderError as e:
            return PollOutcome(PollResult.RETRY, detail=f'Retrieve failed: {e.message}')

        try:
            downloaded = await client.download(download_url)
            audio = extract_audio_payload(downloaded.content_type, downloaded.content)
            reference = self._artifacts.write(job.id, job.format, audio)
        except (RetrievalError, OSError) as e:
            return PollOutcome(PollResult.RETRY, detail=f'Download failed: {e}')

        return PollOutcome(PollResult.COMPLETED, output_path=reference)

    def _apply(self, job: SynthesisJob, outcome: PollOutcome):
        if outcome.result is PollResult.COMPLETED:
            job.mark_success(outcome.output_path)
            logger.info('Job %s completed: %s', job.id, outcome.output_path)
        elif outcome.result is PollResult.FAILED:
            job.mark_failed(outcome.detail)
            logger.info('Job %s failed: %s', job.id, outcome.detail)
        elif outcome.result is PollResult.RETRY:
            job.note_error(outcome.detail)
            logger.warning('Job %s will retry: %s', job.id, outcome.detail)

    def _remove_files(self, job: SynthesisJob):
        self._artifacts.remove(job.output_path)
        # Only uploads we stored ourselves; a caller-supplied input_file is left alone.
        if job.input_file:
            path = Path(job.input_file)
            if path.parent.resolve() == self._uploads_dir.resolve():
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning('Could not remove upload %s: %s', path, e)

    async def delete(self, job_id: int):
        """Delete a job with its audio file and uploaded text."""
        async with self._locks.get(job_id):
            async with self._session_factory() as session:
                ledger = JobLedger(session)
                job = await ledger.get(job_id)
                self._remove_files(job)
                await ledger.delete(job)

    async def delete_all(self) -> int:
        """Delete every job with its audio and uploaded files. Returns the number of jobs removed."""
        async with self._session_factory() as session:
            ledger = JobLedger(session)
            jobs = await ledger.all()
            for job in jobs:
                self._remove_files(job)
            await ledger.delete_all()
            return len(jobs)


# Singleton instance
_orchestrator: Optional[SynthesisOrchestrator] = None


def get_orchestrator() -> SynthesisOrchestrator:
    """
    Get the orchestrator singleton instance.

    Usage with FastAPI dependency injection:
        @router.get('/{job_id}/status')
        async def check(job_id: int, orchestrator = Depends(get_orchestrator)):
            return await orchestrator.check_status(job_id)
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SynthesisOrchestrator()
    return _orchestrator


def reset_orchestrator():
    """Reset the orchestrator singleton (for testing)."""
    global _orchestrator
    _orchestrator = None
