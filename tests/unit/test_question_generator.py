import pytest

from agents.question_generator import generate_questions
from config.registry import QUESTION_GEN_KEY, bind_model
from mock_interview.errors import GenerationError


def _payload(count, **overrides):
    questions = []
    for index in range(1, count + 1):
        item = {
            "id": index,
            "title": f"Question {index}",
            "description": "desc",
            "referenceAnswer": "ref",
            "timeLimit": 6,
        }
        item.update(overrides)
        questions.append(item)
    return {"questions": questions}


def test_generates_five_views():
    captured = {}

    def fake(**kwargs):
        captured.update(kwargs)
        return _payload(5)

    bind_model(QUESTION_GEN_KEY, fake)
    questions = generate_questions("Backend Development", "Intermediate", count=5)
    assert len(questions) == 5
    assert all(q.timeLimit > 0 for q in questions)
    assert all(q.domain == "Backend Development" and q.difficulty == "Intermediate" for q in questions)
    assert len({q.id for q in questions}) == 5
    assert "exactly 5 questions" in captured["system_prompt"]
    assert "Backend Development" in captured["inputs"]


def test_extra_questions_are_truncated():
    bind_model(QUESTION_GEN_KEY, lambda **_: _payload(7))
    assert len(generate_questions("Go", "Beginner", count=5)) == 5


@pytest.mark.parametrize("limit", [None, 0, -2])
def test_missing_time_limit_uses_tier_default(limit):
    bind_model(QUESTION_GEN_KEY, lambda **_: _payload(5, timeLimit=limit))
    questions = generate_questions("Go", "Advanced", count=5)
    assert {q.timeLimit for q in questions} == {8.0}


@pytest.mark.parametrize("raw", [{}, {"questions": []}, _payload(3), {"questions": "nope"}, None])
def test_unusable_output_raises(raw):
    bind_model(QUESTION_GEN_KEY, lambda **_: raw)
    with pytest.raises(GenerationError):
        generate_questions("Go", "Beginner", count=5)


def test_call_failure_raises():
    def boom(**_):
        raise RuntimeError("upstream 500")

    bind_model(QUESTION_GEN_KEY, boom)
    with pytest.raises(GenerationError):
        generate_questions("Go", "Beginner", count=5)


def test_unbound_generator_raises():
    with pytest.raises(GenerationError):
        generate_questions("Go", "Beginner", count=5)
