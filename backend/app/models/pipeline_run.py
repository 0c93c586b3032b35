from sqlalchemy import Column, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from app.core.database import Base


class RunState:
    """Lifecycle states of a pipeline run"""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETE = "complete"
    ERRORED = "errored"
    TERMINATED = "terminated"

    @classmethod
    def in_flight(cls):
        return [cls.QUEUED, cls.RUNNING]


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=RunState.QUEUED)
    current_stage = Column(String(50), nullable=True)
    params = Column(JSON, nullable=False)
    output = Column(JSON, nullable=True)  # analysis, tailoredResume, coverLetter, interviewTips
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
