"""Basic smoke tests for the application wiring."""
import json


def test_imports():
    import agents  # noqa: F401
    from config.settings import settings

    assert settings.DB_PATH.endswith(".db")


def test_bind_llm_models(tmp_path):
    from api_server import bind_llm_models
    from config.registry import FEEDBACK_KEY, JUDGE_KEY, QUESTION_GEN_KEY, is_bound, unbind_model

    for key in (QUESTION_GEN_KEY, JUDGE_KEY, FEEDBACK_KEY):
        unbind_model(key)

    config_path = tmp_path / "app_config.json"
    config_path.write_text(
        json.dumps(
            {
                "llm_routes": {
                    "local": {
                        "name": "local",
                        "base_url": "http://llm.local",
                        "endpoint": "/chat/completions",
                        "model": "test-model",
                        "timeout_s": 5,
                    }
                },
                "registry": {JUDGE_KEY: "local"},
            }
        ),
        encoding="utf-8",
    )
    assert bind_llm_models(config_path) == [JUDGE_KEY]
    assert is_bound(JUDGE_KEY)
    assert not is_bound(QUESTION_GEN_KEY)
    assert not is_bound(FEEDBACK_KEY)
    assert bind_llm_models(tmp_path / "missing.json") == []
