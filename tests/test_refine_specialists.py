"""Tests for the concurrent specialist phase."""

import asyncio

import pytest

from fixmytex.agents.pyramidal.schemas import DocumentType, OneshotResult
from fixmytex.chains.refine_specialists import run_specialists
from fixmytex.core.errors import ProviderError
from tests.fakes.fake_llm import (
    COMPLETENESS,
    HEADERS,
    STYLE,
    SUBJECT,
    FakeChatProvider,
    specialist_responses,
)

ONESHOT = OneshotResult(
    subject="Numbers by Friday",
    headers=["Numbers needed"],
    full_document="**Numbers needed**\n- send by Friday",
    document_type=DocumentType.EMAIL,
    language="en",
    confidence=0.8,
)


@pytest.mark.asyncio
async def test_all_specialists_parsed():
    provider = FakeChatProvider(
        specialist_responses(
            subject={"improved_subject": "Numbers | by Friday", "changes": ["added status"], "confidence": 0.9},
            completeness={
                "missing_info": ["server X outage"],
                "preservation_status": "one item lost",
                "risk_score": 0.4,
                "confidence": 0.8,
            },
        )
    )

    refs = await run_specialists(provider, ONESHOT, "original text")

    assert refs.subject.improved_subject == "Numbers | by Friday"
    assert refs.completeness.missing_info == ["server X outage"]
    assert refs.completeness.risk_score == pytest.approx(0.4)
    assert refs.degraded() == []
    assert len(provider.calls) == 4


@pytest.mark.asyncio
async def test_completeness_specialist_receives_original_text():
    provider = FakeChatProvider(specialist_responses())

    await run_specialists(provider, ONESHOT, "the ORIGINAL wording")

    (_, message), = provider.calls_for(COMPLETENESS)
    assert "the ORIGINAL wording" in message
    assert "send by Friday" in message
    (_, style_message), = provider.calls_for(STYLE)
    assert "the ORIGINAL wording" not in style_message


@pytest.mark.asyncio
async def test_failed_specialist_becomes_placeholder():
    responses = specialist_responses(
        headers=ProviderError("timeout", provider="anthropic"),
        style="this is not json",
    )
    provider = FakeChatProvider(responses)

    refs = await run_specialists(provider, ONESHOT, "original")

    assert refs.degraded() == ["headers", "style"]
    assert refs.headers.confidence == 0.0
    assert refs.headers.improved_headers == []
    assert "timeout" in refs.headers.error
    assert refs.style.confidence == 0.0
    assert refs.subject.error is None


@pytest.mark.asyncio
async def test_out_of_range_scores_are_clamped():
    provider = FakeChatProvider(
        specialist_responses(
            completeness={"missing_info": [], "preservation_status": "", "risk_score": 1.7, "confidence": -2},
        )
    )

    refs = await run_specialists(provider, ONESHOT, "original")

    assert refs.completeness.risk_score == 1.0
    assert refs.completeness.confidence == 0.0


@pytest.mark.asyncio
async def test_specialists_run_concurrently():
    in_flight = 0
    peak = 0

    class SlowProvider(FakeChatProvider):
        async def generate(self, system_prompt, text):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await super().generate(system_prompt, text)

    await run_specialists(SlowProvider(specialist_responses()), ONESHOT, "original")

    assert peak == 4


@pytest.mark.asyncio
async def test_specialists_do_not_mutate_foundation():
    before = ONESHOT.model_dump()
    provider = FakeChatProvider(
        {SUBJECT: {"improved_subject": "x", "confidence": 1}, HEADERS: {"improved_headers": ["y"]}},
        default={"confidence": 0.1},
    )

    await run_specialists(provider, ONESHOT, "original")

    assert ONESHOT.model_dump() == before
