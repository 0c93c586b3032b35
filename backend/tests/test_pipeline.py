"""Tests for the generation pipeline and its run orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from app.core.errors import InferenceFailure, RunNotFound
from app.models import RunState
from app.services.workflow import PIPELINE_STAGES, PipelineExecutor, PipelineOrchestrator, PipelineParams
from app.services.workflow.executor import PipelineStage, stage_levels

from conftest import FakeLLM


PARAMS = PipelineParams(
    job_title="Engineer",
    company="Acme",
    job_description="Build rockets with Python.",
    resume_text="Ten years of rocketry.",
    user_id="u1",
)


def test_stage_levels_put_analysis_first():
    levels = stage_levels(PIPELINE_STAGES)

    assert [[s.key for s in level] for level in levels] == [
        ["analysis"],
        ["tailored_resume", "cover_letter", "interview_tips"],
    ]


def test_stage_levels_reject_cycles_and_unknown_dependencies():
    with pytest.raises(ValueError):
        stage_levels([PipelineStage("a", "a", "analyze_job", 10, ("b",)), PipelineStage("b", "b", "analyze_job", 10, ("a",))])
    with pytest.raises(ValueError):
        stage_levels([PipelineStage("a", "a", "analyze_job", 10, ("missing",))])


async def test_executor_runs_stages_in_order_with_token_limits():
    llm = FakeLLM()

    result = await PipelineExecutor(llm).run(PARAMS)

    assert result.to_json() == {
        "analysis": "reply 1",
        "tailoredResume": "reply 2",
        "coverLetter": "reply 3",
        "interviewTips": "reply 4",
    }
    assert [call["max_tokens"] for call in llm.calls] == [1024, 2048, 2048, 1536]

    prompts = [call["messages"][0]["content"] for call in llm.calls]
    assert all(call["messages"][0]["role"] == "user" for call in llm.calls)
    assert "Engineer at Acme" in prompts[0]
    assert "Build rockets with Python." in prompts[0]
    # Resume and cover letter stages embed the analysis, interview tips do not
    assert "reply 1" in prompts[1] and "Ten years of rocketry." in prompts[1]
    assert "reply 1" in prompts[2] and "Ten years of rocketry." in prompts[2]
    assert "reply 1" not in prompts[3] and "Build rockets with Python." in prompts[3]


async def test_executor_keeps_braces_in_user_text():
    llm = FakeLLM()
    params = PARAMS.model_copy(update={"resume_text": "Skills: {python} and {{sql}}"})

    await PipelineExecutor(llm).run(params)

    assert "Skills: {python} and {{sql}}" in llm.calls[1]["messages"][0]["content"]


async def test_concurrent_executor_produces_every_output():
    llm = FakeLLM()

    result = await PipelineExecutor(llm, concurrent=True).run(PARAMS)

    assert result.analysis == "reply 1"
    assert {result.tailored_resume, result.cover_letter, result.interview_tips} == {"reply 2", "reply 3", "reply 4"}
    assert llm.calls[0]["max_tokens"] == 1024


async def test_executor_reports_stage_names():
    seen: list[str] = []

    async def on_stage(stage):
        seen.append(stage.name)

    await PipelineExecutor(FakeLLM()).run(PARAMS, on_stage=on_stage)

    assert seen == ["analyze-job", "tailor-resume", "generate-cover-letter", "interview-tips"]


async def test_executor_stops_at_failed_stage():
    llm = FakeLLM(fail_on=2)

    with pytest.raises(InferenceFailure):
        await PipelineExecutor(llm).run(PARAMS)

    assert len(llm.calls) == 2


async def test_orchestrator_completes_run(session_factory):
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(FakeLLM()))

    run_id = await orchestrator.create(PARAMS)
    await orchestrator.join(run_id)

    run = await orchestrator.get(run_id)
    assert run.status == RunState.COMPLETE
    assert run.current_stage is None
    assert run.error is None
    for value in run.output.to_json().values():
        assert isinstance(value, str) and value


async def test_orchestrator_reports_running_before_stages_finish(session_factory):
    gate = asyncio.Event()
    llm = FakeLLM(gate=gate)
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(llm))

    run_id = await orchestrator.create(PARAMS)
    await asyncio.wait_for(llm.entered.wait(), timeout=5)

    run = await orchestrator.get(run_id)
    assert run.status == RunState.RUNNING
    assert run.output is None
    assert run.current_stage == "analyze-job"

    gate.set()
    await orchestrator.join(run_id)
    assert (await orchestrator.get(run_id)).status == RunState.COMPLETE


async def test_orchestrator_marks_failed_run_errored(session_factory):
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(FakeLLM(fail_on=2)))

    run_id = await orchestrator.create(PARAMS)
    await orchestrator.join(run_id)

    run = await orchestrator.get(run_id)
    assert run.status == RunState.ERRORED
    assert run.output is None
    assert "model unavailable" in run.error


async def test_unknown_run_raises_not_found(session_factory):
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(FakeLLM()))

    with pytest.raises(RunNotFound):
        await orchestrator.get("does-not-exist")


async def test_terminate_all_cancels_in_flight_runs(session_factory):
    llm = FakeLLM(gate=asyncio.Event())
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(llm))

    run_id = await orchestrator.create(PARAMS)
    await asyncio.wait_for(llm.entered.wait(), timeout=5)
    await orchestrator.terminate_all()

    run = await orchestrator.get(run_id)
    assert run.status == RunState.TERMINATED
    assert run.output is None


async def test_recover_terminates_stale_runs(session_factory):
    llm = FakeLLM(gate=asyncio.Event())
    first = PipelineOrchestrator(session_factory, PipelineExecutor(llm))
    run_id = await first.create(PARAMS)
    await asyncio.wait_for(llm.entered.wait(), timeout=5)

    # A fresh orchestrator over the same database sees the run as left over
    recovered = await PipelineOrchestrator(session_factory, PipelineExecutor(FakeLLM())).recover()

    assert recovered == 1
    assert (await first.get(run_id)).status == RunState.TERMINATED
    await first.terminate_all()


class OneSiblingFailsLLM(FakeLLM):
    """Answers the analysis, then fails one sibling stage once the other two are blocked."""

    def __init__(self):
        super().__init__()
        self.waiting = 0
        self.cancelled = 0
        self.others_waiting = asyncio.Event()
        self.release = asyncio.Event()

    async def chat(self, messages, max_tokens, temperature=0.7):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        call_number = len(self.calls)
        if call_number == 1:
            return "analysis"
        if call_number == 3:
            await self.others_waiting.wait()
            raise RuntimeError("model unavailable")

        self.waiting += 1
        if self.waiting == 2:
            self.others_waiting.set()
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return f"reply {call_number}"


async def test_concurrent_stage_failure_cancels_siblings(session_factory):
    llm = OneSiblingFailsLLM()
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(llm, concurrent=True))

    run_id = await orchestrator.create(PARAMS)
    await asyncio.wait_for(orchestrator.join(run_id), timeout=5)

    run = await orchestrator.get(run_id)
    assert run.status == RunState.ERRORED
    assert run.output is None
    assert "model unavailable" in run.error
    assert len(llm.calls) == 4
    assert llm.cancelled == 2


async def test_run_is_running_as_soon_as_it_is_created(session_factory):
    llm = FakeLLM(gate=asyncio.Event())
    orchestrator = PipelineOrchestrator(session_factory, PipelineExecutor(llm))

    run_id = await orchestrator.create(PARAMS)

    run = await orchestrator.get(run_id)
    assert run.status == RunState.RUNNING
    assert run.output is None
    await orchestrator.terminate_all()
