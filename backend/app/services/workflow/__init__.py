from app.services.workflow.executor import (
    PIPELINE_STAGES,
    PipelineExecutor,
    PipelineParams,
    PipelineResult,
    PipelineStage,
)
from app.services.workflow.orchestrator import PipelineOrchestrator, RunStatus

__all__ = [
    "PIPELINE_STAGES",
    "PipelineExecutor",
    "PipelineOrchestrator",
    "PipelineParams",
    "PipelineResult",
    "PipelineStage",
    "RunStatus",
]
