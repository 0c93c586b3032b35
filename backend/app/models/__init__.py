from app.models.conversation import ConversationRecord
from app.models.pipeline_run import PipelineRun, RunState

__all__ = ["ConversationRecord", "PipelineRun", "RunState"]
