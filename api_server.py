from __future__ import annotations  # FastAPI server exposing the mock-interview API

import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from agents.types import GeneratedQuestionSet, JudgeVerdict, SessionFeedback
from api.routes import router as mock_interview_router
from config import FEEDBACK_KEY, JUDGE_KEY, QUESTION_GEN_KEY, bind_model, load_config, resolve_registry, settings
from llm_gateway import json_model
from storage.migrate import migrate


logger = logging.getLogger(__name__)

LLM_SCHEMAS: Dict[str, Type[BaseModel]] = {
    QUESTION_GEN_KEY: GeneratedQuestionSet,
    JUDGE_KEY: JudgeVerdict,
    FEEDBACK_KEY: SessionFeedback,
}


def bind_llm_models(config_path: Path) -> List[str]:  # Bind registry keys to configured LLM routes
    try:
        cfg = load_config(config_path)
    except FileNotFoundError:
        logger.warning("LLM config %s not found; AI features fall back to defaults", config_path)
        return []
    bound: List[str] = []
    for key, schema in LLM_SCHEMAS.items():
        if key not in cfg.registry:
            logger.warning("No LLM route registered for %s", key)
            continue
        route, route_schema = resolve_registry(cfg, {key: schema})[key]
        bind_model(key, json_model(route, route_schema))
        logger.info("Bound %s to route=%s model=%s", key, route.name, route.model)
        bound.append(key)
    return bound


def create_app(config_path: Optional[Path] = None) -> FastAPI:  # Build the application
    migrate(settings.DB_PATH)
    bind_llm_models(config_path or Path(settings.LLM_CONFIG_PATH))

    application = FastAPI(title="Mock Interview API")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(mock_interview_router)

    @application.get("/health")
    def health() -> Dict[str, bool]:
        return {"ok": True}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
