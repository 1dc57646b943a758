from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Any
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.config.app_config import get_service_settings
from ondevice_ai.core.lifespan import lifespan
from ondevice_ai.core.dependencies import get_memory_db_engine
from ondevice_ai.common.db.session import get_async_session_maker
from ondevice_ai.common.exceptions import (
    EmptyInputError,
    DimensionMismatchError,
    EmbeddingError,
    GenerationError,
)
from ondevice_ai.api.routes.memory_routes import router as memory_router
from ondevice_ai.api.routes.rag_routes import router as rag_router
from ondevice_ai.api.routes.agent_routes import router as agent_router

# disable FastAPI docs for production/deployment
is_local = get_service_settings().INCLUDE_DOCS
logger.info(f"is_local (include FastAPI docs?): {is_local}")

docs_config: dict[str, Any] = {
    "docs_url": "/docs" if is_local else None,
    "redoc_url": "/redoc" if is_local else None,
    "openapi_url": "/openapi.json" if is_local else None,
}

# main app, asgi entrypoint
app = FastAPI(
    title="OnDeviceAI Agent Service",
    description="Semantic memory, retrieval-augmented answers and a tool-using ReAct agent",
    version="0.1.0",
    lifespan=lifespan,
    **docs_config,
)

# add CORS middleware
# TODO: restrict origins once the mobile client's host is fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# domain errors -> status codes
@app.exception_handler(EmptyInputError)
@app.exception_handler(DimensionMismatchError)
async def bad_input_handler(request: Request, exc: Exception):
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(EmbeddingError)
@app.exception_handler(GenerationError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error(f"Upstream provider failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})

@app.get("/")
async def root():
    return {"message": "OnDeviceAI agent service"}

# health endpoint
@app.get("/health")
async def health(memory_db_engine: AsyncEngine = Depends(get_memory_db_engine)):
    memory_session_maker = get_async_session_maker(memory_db_engine)

    try:
        # simple test query to verify db connection
        async with memory_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "error", "database": "unable to connect to memory database"}

    return {"status": "ok", "database": "connected to memory database"}

app.include_router(memory_router)
app.include_router(rag_router)
app.include_router(agent_router)
