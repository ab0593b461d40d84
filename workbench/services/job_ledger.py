"""
Persistence operations for synthesis jobs.
"""
from typing import List, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.exceptions import NotFoundError
from workbench.models.job import SynthesisJob


class JobLedger:
    """Job records within one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, job: SynthesisJob) -> SynthesisJob:
        self.session.add(job)
        await self.session.commit()
        await self.session.refresh(job)
        return job

    async def reserve(self, job: SynthesisJob) -> SynthesisJob:
        """Assign an id to a new job without committing it."""
        self.session.add(job)
        await self.session.flush()
        return job

    async def get(self, job_id: int) -> SynthesisJob:
        result = await self.session.execute(
            select(SynthesisJob).where(SynthesisJob.id == job_id)
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError('Synthesis job', job_id)
        return job

    async def save(self, job: SynthesisJob) -> SynthesisJob:
        self.session.add(job)
        await self.session.commit()
        await self.session.refresh(job)
        return job

    async def delete(self, job: SynthesisJob):
        await self.session.delete(job)
        await self.session.commit()

    async def list(self, limit: int = 50, offset: int = 0) -> Tuple[List[SynthesisJob], int]:
        """Jobs newest first, with the total count."""
        count_result = await self.session.execute(select(func.count(SynthesisJob.id)))
        total = count_result.scalar()

        result = await self.session.execute(
            select(SynthesisJob)
            .order_by(SynthesisJob.created_at.desc(), SynthesisJob.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def all(self) -> List[SynthesisJob]:
        result = await self.session.execute(select(SynthesisJob))
        return list(result.scalars().all())

    async def delete_all(self):
        await self.session.execute(delete(SynthesisJob))
        await self.session.commit()
