import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import FEEDBACK_KEY, JUDGE_KEY, QUESTION_GEN_KEY, bind_model, unbind_model
from storage.users import insert_user


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "CREATE_RETRY_BACKOFF_S", 0.0, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry():
    for key in (QUESTION_GEN_KEY, JUDGE_KEY, FEEDBACK_KEY):
        unbind_model(key)
    yield
    for key in (QUESTION_GEN_KEY, JUDGE_KEY, FEEDBACK_KEY):
        unbind_model(key)


def question_payload(count: int = 5):
    return {
        "questions": [
            {
                "id": index,
                "title": f"Question {index}",
                "description": f"Explain topic {index}",
                "referenceAnswer": f"Reference answer {index}",
                "timeLimit": 4,
            }
            for index in range(1, count + 1)
        ]
    }


@pytest.fixture
def fake_models():
    bind_model(QUESTION_GEN_KEY, lambda **_: question_payload())
    bind_model(JUDGE_KEY, lambda **_: {"rating": 7, "feedback": "Solid answer with minor gaps."})
    bind_model(
        FEEDBACK_KEY,
        lambda **_: {
            "overallFeedback": "Good session overall.",
            "strengths": ["clarity"],
            "improvements": ["depth"],
            "recommendations": ["practice system design"],
        },
    )
    return True


@pytest.fixture
def user():
    return insert_user(external_id="ext-user-1", email="ada@example.com", user_name="ada")
