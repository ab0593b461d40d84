"""
Synthesis job endpoints.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.config import DEFAULT_FORMAT, DEFAULT_MODEL, UPLOADS_DIR
from workbench.database import get_db
from workbench.exceptions import WorkbenchError
from workbench.models.job import JobStatus
from workbench.schemas.job import JobListResponse, JobResponse, SynthesisCreate
from workbench.services.job_ledger import JobLedger
from workbench.services.synthesis_orchestrator import (
    SynthesisOrchestrator,
    SynthesisParams,
    get_orchestrator,
)


router = APIRouter(prefix='/api/synthesis', tags=['synthesis'])

MEDIA_TYPES = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'flac': 'audio/flac',
    'pcm': 'application/octet-stream',
}


@router.get('', response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> JobListResponse:
    """
    List synthesis jobs with pagination.

    Returns jobs ordered by creation time (newest first).
    """
    jobs, total = await JobLedger(db).list(limit=limit, offset=offset)
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post('', response_model=JobResponse, status_code=201)
async def create_job(
    job_data: SynthesisCreate,
    orchestrator: SynthesisOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """
    Submit text for synthesis.

    Async jobs return in processing status; poll /status until terminal.
    A rejected submission is still recorded and returned as a failed job.
    """
    params = SynthesisParams(**job_data.model_dump(exclude={'key_id'}))
    job = await orchestrator.submit(params, key_id=job_data.key_id)
    return JobResponse.model_validate(job)


@router.post('/upload', response_model=JobResponse, status_code=201)
async def upload_text_file(
    file: UploadFile = File(...),
    voice_id: str = Form(...),
    key_id: Optional[int] = Form(None),
    model: str = Form(DEFAULT_MODEL),
    mode: str = Form('async'),
    format: str = Form(DEFAULT_FORMAT),
    orchestrator: SynthesisOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """Submit the contents of an uploaded UTF-8 text file for synthesis."""
    content = await file.read()

    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    upload_path = UPLOADS_DIR / f'{uuid.uuid4().hex}.txt'
    upload_path.write_bytes(content)

    params = SynthesisParams(
        voice_id=voice_id,
        input_file=str(upload_path),
        model=model,
        mode=mode,
        format=format,
    )
    try:
        job = await orchestrator.submit(params, key_id=key_id)
    except WorkbenchError:
        upload_path.unlink(missing_ok=True)
        raise
    return JobResponse.model_validate(job)


@router.get('/{job_id}', response_model=JobResponse)
async def get_job(
    job_id: int,
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Get the stored record of a job without contacting the provider."""
    job = await JobLedger(db).get(job_id)
    return JobResponse.model_validate(job)


@router.get('/{job_id}/status', response_model=JobResponse)
async def check_job_status(
    job_id: int,
    key_id: Optional[int] = Query(default=None),
    orchestrator: SynthesisOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """
    Check a job with the provider and download its audio when ready.

    A failed download leaves the job processing with error_message set;
    poll again to retry.
    """
    job = await orchestrator.check_status(job_id, key_id=key_id)
    return JobResponse.model_validate(job)


@router.get('/{job_id}/audio')
async def get_job_audio(
    job_id: int,
    db: AsyncSession = Depends(get_db),
    orchestrator: SynthesisOrchestrator = Depends(get_orchestrator),
):
    """
    Stream the audio file for a finished job.

    Raises:
        404: Job not found or audio not ready
    """
    job = await JobLedger(db).get(job_id)

    if job.status != JobStatus.success.value:
        raise HTTPException(
            status_code=404,
            detail=f'Audio not ready. Job status: {job.status}'
        )

    audio_path = orchestrator.artifacts.resolve(job.output_path)
    if audio_path is None or not audio_path.exists():
        raise HTTPException(status_code=404, detail='Audio file not found')

    timestamp_part = job.created_at.strftime('%Y%m%d-%H%M%S')
    filename = f'{job.voice_id}-{timestamp_part}.{job.format}'

    return FileResponse(
        path=str(audio_path),
        media_type=MEDIA_TYPES.get(job.format, 'application/octet-stream'),
        filename=filename,
    )


@router.delete('/{job_id}', status_code=204)
async def delete_job(
    job_id: int,
    orchestrator: SynthesisOrchestrator = Depends(get_orchestrator),
):
    """Delete a job and its audio file."""
    await orchestrator.delete(job_id)


@router.delete('', status_code=204)
async def delete_all_jobs(orchestrator: SynthesisOrchestrator = Depends(get_orchestrator)):
    """Delete all jobs and their audio files."""
    await orchestrator.delete_all()
