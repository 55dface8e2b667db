from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.routes import router
from caravan_trail.config import Settings, build_engine, load_settings
from caravan_trail.session import ContractViolation

load_dotenv(Path(__file__).parent.parent / ".env")


def create_app(settings: Settings | None = None) -> FastAPI:
    resolved = settings or load_settings()

    app = FastAPI(title="Caravan Trail")
    app.state.settings = resolved
    app.state.engine = build_engine(resolved)
    app.include_router(router, prefix="/api")

    @app.exception_handler(ContractViolation)
    async def contract_violation(request: Request, exc: ContractViolation):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    return app


# Default app instance for uvicorn (reads settings from the environment)
app = create_app()
