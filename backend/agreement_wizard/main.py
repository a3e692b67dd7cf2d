import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file before settings are read
load_dotenv()

from .config import get_cors_origins, get_background_await_timeout_ms, is_debug  # noqa: E402
from .database import init_db  # noqa: E402
from .deps import get_session_registry, shutdown_session_registry  # noqa: E402
from .routes.agreements import router as agreements_router  # noqa: E402
from .routes.wizard import router as wizard_router  # noqa: E402
from .services.http_client import close_client  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG if is_debug() else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    print("Starting Employment Agreement Wizard")
    print(f"   OpenAI Key:  {' Configured' if os.getenv('OPENAI_API_KEY') else ' Not set (generation will fail)'}")
    print(f"   Background await timeout: {get_background_await_timeout_ms()}ms")
    init_db()
    get_session_registry()
    print("   Ready to draft agreements!")

    yield

    print("Shutting down Employment Agreement Wizard")
    await shutdown_session_registry()
    await close_client()


app = FastAPI(
    title="Employment Agreement Wizard",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(wizard_router)
app.include_router(agreements_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Employment Agreement Wizard",
        "version": "0.1.0",
        "description": "Wizard backend with speculative background drafting",
        "docs": "/docs",
        "endpoints": {
            "sessions": "POST /wizard/sessions - Start a wizard session",
            "background": "POST /wizard/sessions/{id}/background/start - Draft in the background",
            "generate": "POST /wizard/sessions/{id}/generate - Produce the agreement",
            "agreements": "GET /agreements/{id} - Fetch a stored agreement",
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "employment-agreement-wizard",
        "version": "0.1.0",
        "active_sessions": len(get_session_registry()),
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if is_debug() else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agreement_wizard.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=is_debug(),
    )
