"""Tests for clarifying question generation."""

import pytest

from src.deep_research.nodes.clarify import generate_clarifying_questions
from src.deep_research.structured_outputs import ClarifyingQuestion, ClarifyingQuestions

from tests.fakes import FakeLLM


def _question(qid: str = "", text: str = "Which population?") -> ClarifyingQuestion:
    return ClarifyingQuestion(id=qid, question=text, goal="Narrow the scope")


async def test_missing_ids_are_filled():
    llm = FakeLLM({ClarifyingQuestions: ClarifyingQuestions(questions=[_question("q1"), _question()])})

    questions = await generate_clarifying_questions(llm, "caffeine and sleep", 4, 2)

    assert questions[0].id == "q1"
    assert questions[1].id
    assert questions[1].question == "Which population?"


async def test_at_most_four_questions():
    llm = FakeLLM(
        {ClarifyingQuestions: ClarifyingQuestions(questions=[_question(str(i)) for i in range(6)])}
    )

    questions = await generate_clarifying_questions(llm, "topic", 4, 2)

    assert [q.id for q in questions] == ["0", "1", "2", "3"]


async def test_prompt_mentions_topic_and_scope():
    llm = FakeLLM({ClarifyingQuestions: ClarifyingQuestions(questions=[_question("q1")])})

    await generate_clarifying_questions(llm, "solid-state batteries", 7, 3)

    prompt = llm.prompt_of(ClarifyingQuestions)
    assert "solid-state batteries" in prompt
    assert "7" in prompt


async def test_model_error_propagates():
    llm = FakeLLM({ClarifyingQuestions: RuntimeError("boom")})

    with pytest.raises(RuntimeError):
        await generate_clarifying_questions(llm, "topic", 4, 2)
