from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import get_orchestrator
from app.core.errors import RunNotFound, ValidationError
from app.services.workflow import PipelineOrchestrator, PipelineParams


router = APIRouter(prefix="/workflow", tags=["Workflow"])

REQUIRED_FIELDS = ("jobDescription", "resumeText", "jobTitle")


class WorkflowRequest(BaseModel):
    jobTitle: Optional[str] = None
    company: Optional[str] = None
    jobDescription: Optional[str] = None
    resumeText: Optional[str] = None
    userId: Optional[str] = None


class WorkflowStartResponse(BaseModel):
    workflowId: str
    message: str
    status: str


class WorkflowStatusResponse(BaseModel):
    workflowId: str
    status: str
    output: Optional[dict] = None
    currentStage: Optional[str] = None
    error: Optional[str] = None


@router.post("", response_model=WorkflowStartResponse)
async def start_workflow(
    request: WorkflowRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Start the job application pipeline in the background."""
    missing = [name for name in REQUIRED_FIELDS if not getattr(request, name)]
    if missing:
        raise ValidationError(f"Missing required workflow fields: {', '.join(missing)}")

    params = PipelineParams(
        job_title=request.jobTitle,
        company=request.company or "",
        job_description=request.jobDescription,
        resume_text=request.resumeText,
        user_id=request.userId or "",
    )
    run_id = await orchestrator.create(params)

    return WorkflowStartResponse(
        workflowId=run_id,
        message="Workflow started successfully",
        status="running"
    )


@router.get("/{workflow_id}", response_model=WorkflowStatusResponse)
async def get_workflow_status(
    workflow_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    try:
        run = await orchestrator.get(workflow_id)
    except RunNotFound:
        return WorkflowStatusResponse(workflowId=workflow_id, status="not_found")

    return WorkflowStatusResponse(
        workflowId=run.run_id,
        status=run.status,
        output=run.output.to_json() if run.output else None,
        currentStage=run.current_stage,
        error=run.error,
    )
