from functools import lru_cache

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..application.bootstrap import build_default_engine
from ..domain.errors import ConfigurationError, InsufficientData, RequestTimeout
from ..infra.config import get_config
from ..observability.logging_utils import init_logging, reset_trace_id, set_trace_id
from ..schemas.models import CropHistory, Recommendation, RecommendationRequest


@lru_cache(maxsize=1)
def get_engine():
    return build_default_engine()


def create_app() -> FastAPI:
    cfg = get_config()
    init_logging(log_path=cfg.log_path)
    app = FastAPI(title="Agricultural Advisory Core")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        engine = get_engine()
        return {"status": "ok", "intents": engine.registry.intents()}

    @app.post("/api/v1/recommendations", response_model=Recommendation)
    def recommend(request: RecommendationRequest):
        engine = get_engine()
        token = set_trace_id(f"{request.user_id}:{request.intent}")
        try:
            return engine.generate_recommendation(request.intent, request)
        except InsufficientData as exc:
            raise HTTPException(status_code=422, detail=exc.to_payload())
        except RequestTimeout as exc:
            raise HTTPException(status_code=504, detail=exc.to_payload())
        except ConfigurationError as exc:
            raise HTTPException(status_code=500, detail=exc.to_payload())
        finally:
            reset_trace_id(token)

    @app.put("/api/v1/users/{user_id}/history")
    def record_history(user_id: str, history: CropHistory):
        engine = get_engine()
        if not history.previous_crops:
            raise HTTPException(status_code=422, detail={"error": "empty_history"})
        stored = engine.record_history(user_id, history)
        return {"user_id": user_id, "stored": stored, "previous_crops": list(history.previous_crops)}

    return app


app = create_app()
