"""
Synthesis job model.
"""
import enum
from datetime import datetime
from sqlalchemy import BigInteger, Column, DateTime, Float, Integer, String, Text

from workbench.exceptions import InvalidOperationError
from workbench.models.base import Base


class JobStatus(str, enum.Enum):
    """Status states for synthesis jobs."""
    processing = 'processing'
    success = 'success'
    failed = 'failed'


TERMINAL_STATUSES = frozenset({JobStatus.success.value, JobStatus.failed.value})


class JobMode(str, enum.Enum):
    """How the job was submitted to the provider."""
    async_ = 'async'
    sync = 'sync'


class SynthesisJob(Base):
    """
    Represents one synthesis request tracked from submission to artifact.

    Attributes:
        id: Local job identifier
        remote_task_id: Provider task id (None for sync jobs or failed submissions)
        mode: 'async' or 'sync'
        status: processing, success or failed
        text: Text submitted for synthesis
        input_file: Uploaded text file the text was read from
        voice_id, model, speed, vol: Voice settings
        format, sample_rate, bitrate, channels: Audio settings
        output_path: Reference path of the downloaded artifact
        error_message: Failure detail, or a transient note while processing
        created_at, updated_at: Audit timestamps
        completed_at: When the job reached a terminal state
    """
    __tablename__ = 'synthesis_jobs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    remote_task_id = Column(BigInteger, nullable=True, index=True)
    mode = Column(String(10), nullable=False, default=JobMode.async_.value)
    status = Column(String(20), nullable=False, default=JobStatus.processing.value)
    text = Column(Text, nullable=True)
    input_file = Column(Text, nullable=True)
    voice_id = Column(String(100), nullable=False)
    model = Column(String(50), nullable=False)
    speed = Column(Float, nullable=False, default=1.0)
    vol = Column(Float, nullable=False, default=1.0)
    format = Column(String(10), nullable=False)
    sample_rate = Column(Integer, nullable=False)
    bitrate = Column(Integer, nullable=False)
    channels = Column(Integer, nullable=False)
    output_path = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _ensure_open(self):
        if self.is_terminal:
            raise InvalidOperationError(f'Job {self.id} is already {self.status}')

    def mark_success(self, output_path: str):
        self._ensure_open()
        self.status = JobStatus.success.value
        self.output_path = output_path
        self.error_message = None
        self.completed_at = datetime.utcnow()

    def mark_failed(self, detail: str):
        self._ensure_open()
        self.status = JobStatus.failed.value
        self.error_message = detail
        self.completed_at = datetime.utcnow()

    def note_error(self, detail: str):
        """Record a retryable problem without changing status."""
        self._ensure_open()
        self.error_message = detail

    def __repr__(self):
        return f'<SynthesisJob {self.id} status={self.status}>'
