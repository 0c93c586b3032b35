"""Background execution and bookkeeping of pipeline runs.

A run is persisted as `running` when created and driven by one asyncio task
while its stages execute, then `complete` with its output or `errored`
with the failure message. Cancelling the task (application shutdown) leaves
the run `terminated`.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import RunNotFound, StorageFailure
from app.core.logging import get_logger
from app.models.pipeline_run import PipelineRun, RunState
from app.services.workflow.executor import PipelineExecutor, PipelineParams, PipelineResult, PipelineStage


logger = get_logger(__name__)


@dataclass
class RunStatus:
    run_id: str
    status: str
    output: Optional[PipelineResult] = None
    current_stage: Optional[str] = None
    error: Optional[str] = None


class PipelineOrchestrator:
    """Creates pipeline runs and reports their status."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], executor: PipelineExecutor):
        self._session_factory = session_factory
        self.executor = executor
        self._tasks: Dict[str, asyncio.Task] = {}

    async def _update_run(self, run_id: str, **values) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(update(PipelineRun).where(PipelineRun.id == run_id).values(**values))
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to update run {run_id}: {e}") from e

    async def create(self, params: PipelineParams) -> str:
        """Persist the run as running and start executing it in the background."""
        run_id = uuid.uuid4().hex
        try:
            async with self._session_factory() as db:
                db.add(
                    PipelineRun(
                        id=run_id,
                        user_id=params.user_id,
                        status=RunState.RUNNING,
                        params=params.to_json(),
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to create run: {e}") from e

        self._tasks[run_id] = asyncio.create_task(self._execute(run_id, params))
        logger.info("run_created", run_id=run_id, user_id=params.user_id)
        return run_id

    async def _execute(self, run_id: str, params: PipelineParams) -> None:
        async def on_stage(stage: PipelineStage) -> None:
            await self._update_run(run_id, current_stage=stage.name)

        try:
            result = await self.executor.run(params, on_stage=on_stage)
            await self._update_run(
                run_id,
                status=RunState.COMPLETE,
                output=result.to_json(),
                current_stage=None,
            )
            logger.info("run_complete", run_id=run_id)
        except asyncio.CancelledError:
            logger.warning("run_terminated", run_id=run_id)
            await self._update_run(run_id, status=RunState.TERMINATED)
            raise
        except Exception as e:
            logger.error("run_errored", run_id=run_id, error=str(e))
            try:
                await self._update_run(run_id, status=RunState.ERRORED, error=str(e))
            except StorageFailure as storage_error:
                logger.error("run_status_lost", run_id=run_id, error=storage_error.message)
        finally:
            self._tasks.pop(run_id, None)

    async def get(self, run_id: str) -> RunStatus:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(PipelineRun).where(PipelineRun.id == run_id))
                run = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to read run {run_id}: {e}") from e

        if run is None:
            raise RunNotFound(f"Run {run_id} not found")

        output = None
        if run.status == RunState.COMPLETE:
            output = PipelineResult.model_validate(run.output)
        return RunStatus(
            run_id=run.id,
            status=run.status,
            output=output,
            current_stage=run.current_stage,
            error=run.error,
        )

    async def join(self, run_id: str) -> None:
        """Wait for an in-flight run to settle; returns at once if it is not running here."""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def terminate_all(self) -> None:
        """Cancel every in-flight run, leaving each one terminated."""
        run_ids = list(self._tasks)
        for run_id in run_ids:
            self._tasks[run_id].cancel()
        for run_id in run_ids:
            await self.join(run_id)

        # Tasks cancelled before they started never reached their own handler
        if run_ids:
            try:
                async with self._session_factory() as db:
                    await db.execute(
                        update(PipelineRun)
                        .where(PipelineRun.id.in_(run_ids), PipelineRun.status.in_(RunState.in_flight()))
                        .values(status=RunState.TERMINATED)
                    )
                    await db.commit()
            except SQLAlchemyError as e:
                raise StorageFailure(f"Failed to terminate runs: {e}") from e

    async def recover(self) -> int:
        """Mark runs left queued or running by a previous process as terminated."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(PipelineRun)
                    .where(PipelineRun.status.in_(RunState.in_flight()))
                    .values(status=RunState.TERMINATED)
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to recover runs: {e}") from e

        if result.rowcount:
            logger.warning("runs_recovered", count=result.rowcount)
        return result.rowcount
