import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.core.logging import get_logger
from app.core.schemas import CamelModel
from app.prompts import render_prompt
from app.services.llm import LLMProviderBase


logger = get_logger(__name__)


class PipelineParams(CamelModel):
    job_title: str
    company: str = ""
    job_description: str
    resume_text: str
    user_id: str = ""


class PipelineResult(CamelModel):
    analysis: str
    tailored_resume: str
    cover_letter: str
    interview_tips: str


@dataclass(frozen=True)
class PipelineStage:
    """One generation step; its output is stored under `key`."""
    key: str
    name: str
    prompt: str
    max_tokens: int
    depends_on: tuple[str, ...] = ()


PIPELINE_STAGES = [
    PipelineStage("analysis", "analyze-job", "analyze_job", 1024),
    PipelineStage("tailored_resume", "tailor-resume", "tailor_resume", 2048, ("analysis",)),
    PipelineStage("cover_letter", "generate-cover-letter", "cover_letter", 2048, ("analysis",)),
    # Does not read the analysis, but only starts once it is available
    PipelineStage("interview_tips", "interview-tips", "interview_tips", 1536, ("analysis",)),
]


def stage_levels(stages: list[PipelineStage]) -> list[list[PipelineStage]]:
    """Group stages into levels; every stage comes after all of its dependencies."""
    by_key = {stage.key: stage for stage in stages}
    for stage in stages:
        for dep in stage.depends_on:
            if dep not in by_key:
                raise ValueError(f"Stage {stage.key} depends on unknown stage {dep}")

    levels: list[list[PipelineStage]] = []
    placed: set[str] = set()
    remaining = list(stages)
    while remaining:
        ready = [s for s in remaining if all(dep in placed for dep in s.depends_on)]
        if not ready:
            raise ValueError(f"Cycle in stage dependencies: {[s.key for s in remaining]}")
        levels.append(ready)
        placed.update(s.key for s in ready)
        remaining = [s for s in remaining if s.key not in placed]
    return levels


StageCallback = Callable[[PipelineStage], Awaitable[None]]


class PipelineExecutor:
    """Executes the job application stages against one LLM provider."""

    def __init__(
        self,
        llm_provider: LLMProviderBase,
        stages: list[PipelineStage] = None,
        concurrent: bool = False
    ):
        self.llm = llm_provider
        self.stages = stages or PIPELINE_STAGES
        self.levels = stage_levels(self.stages)
        self.concurrent = concurrent

    async def execute_stage(
        self,
        stage: PipelineStage,
        params: PipelineParams,
        results: dict[str, str]
    ) -> str:
        """Execute a single stage and return its text."""
        fields = {
            "job_title": params.job_title,
            "company": params.company,
            "job_description": params.job_description,
            "resume_text": params.resume_text,
        }
        fields.update({dep: results[dep] for dep in stage.depends_on})

        messages = [{"role": "user", "content": render_prompt(stage.prompt, **fields)}]
        return await self.llm.complete(messages, max_tokens=stage.max_tokens)

    async def _run_level(
        self,
        level: list[PipelineStage],
        params: PipelineParams,
        results: dict[str, str],
        on_stage: Optional[StageCallback]
    ) -> None:
        async def run(stage: PipelineStage) -> None:
            if on_stage:
                await on_stage(stage)
            logger.info("stage_start", stage=stage.name, user_id=params.user_id)
            results[stage.key] = await self.execute_stage(stage, params, results)
            logger.info("stage_end", stage=stage.name, length=len(results[stage.key]))

        if not self.concurrent or len(level) == 1:
            for stage in level:
                await run(stage)
            return

        tasks = [asyncio.create_task(run(stage)) for stage in level]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(
        self,
        params: PipelineParams,
        on_stage: Optional[StageCallback] = None
    ) -> PipelineResult:
        """Execute all stages level by level and aggregate their outputs."""
        results: dict[str, str] = {}
        for level in self.levels:
            await self._run_level(level, params, results, on_stage)
        return PipelineResult(**results)
