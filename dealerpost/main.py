import logging
from typing import Any, Optional

import httpx
import uvicorn
from fastapi import Body, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealerpost import __version__
from dealerpost.config import Settings
from dealerpost.errors import GENERIC_FAILURE_MESSAGE, PostGenerationError
from dealerpost.logging_config import setup_logging
from dealerpost.prompts import build_message
from dealerpost.relay import ModelRelay
from dealerpost.schemas import GenerationResult, PostRequest, parse_request, theme_catalog

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    # --- 1. Configuration ---
    settings = settings or Settings()
    setup_logging(settings.log_level)
    if not settings.api_key:
        logger.warning("AI_GATEWAY_API_KEY is not set; generation requests will fail")

    relay = ModelRelay(settings, transport=transport)

    # --- 2. FastAPI Application Setup ---
    app = FastAPI(
        title="Dealership Post Generator API",
        description="Builds promotional post prompts for car dealerships and relays them to an image model.",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.relay = relay

    # --- 3. Error Translation ---
    @app.exception_handler(PostGenerationError)
    async def handle_generation_error(request: Request, exc: PostGenerationError):
        if exc.status_code >= 500:
            logger.error("Error in generate-post: %s: %s", type(exc).__name__, exc)
        else:
            logger.warning("Rejected generate-post: %s: %s", type(exc).__name__, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def handle_malformed_body(request: Request, exc: RequestValidationError):
        logger.warning("Malformed request body: %s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unexpected error in generate-post: %s", exc)
        return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE_MESSAGE})

    # --- 4. API Endpoints ---
    @app.get("/")
    async def root():
        return {"message": "Dealership Post Generator is running"}

    @app.get("/themes")
    async def list_themes():
        return theme_catalog()

    @app.options("/generate-post", status_code=204)
    async def generate_post_preflight():
        return Response(status_code=204)

    @app.post("/generate-post", response_model=GenerationResult)
    async def generate_post(payload: Any = Body(...)):
        post = parse_request(payload)
        if isinstance(post, PostRequest):
            logger.info(
                "Generating post with params: %s",
                {
                    "dealershipName": post.dealershipName,
                    "vehicleCount": post.vehicleCount,
                    "vehicleNames": post.vehicleNames,
                    "specialFeature": post.specialFeature,
                    "backgroundTheme": post.backgroundTheme.value,
                    "policy": post.policy.value if post.policy else None,
                },
            )
        else:
            logger.info("Refining post with instruction: %s", post.refinementInstruction)

        message = build_message(post, require_template=settings.require_template)
        return await relay.generate(message)

    return app


app = create_app()


# --- 5. Run the Application ---
# uvicorn dealerpost.main:app
if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
