"""FastAPI web application for the Synthetik sticker generator."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

from synthetik import __version__
from synthetik.error_handling import ConfigurationError, ErrorResponse, response_for
from synthetik.models import GenerationRequest, GenerationResponse
from synthetik.services.generation_service import StickerGenerationService
from synthetik.styles import DEFAULT_STYLE, list_styles

# Initialize logger
logger = logging.getLogger(__name__)

# Load environment variables from .env file in the project root
project_root = Path(__file__).parent.parent.parent.parent
env_file = project_root / '.env'
load_dotenv(env_file)


NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# Design ids echoed into the attachment filename.
SAFE_FILENAME_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


def _download_filename(design_id: Optional[str]) -> str:
    if not design_id or not SAFE_FILENAME_ID.fullmatch(design_id):
        design_id = "design"
    return f"synthetik-sticker-{design_id}.png"


def _error_response(error: ErrorResponse) -> JSONResponse:
    payload = GenerationResponse(success=False, error=error.error, message=error.message)
    return JSONResponse(
        status_code=error.status_code,
        content=payload.model_dump(by_alias=True, exclude_none=True),
    )


def create_app(
    service: Optional[StickerGenerationService] = None,
    download_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application.

    The generation service is created once here. A configuration failure is
    kept and reported by ``/api/generate`` instead of preventing startup.
    """
    app = FastAPI(
        title="Synthetik",
        description="AI sticker generation from styles, custom prompts and reference photos",
        version=__version__,
    )

    # CORS middleware for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.startup_error = None
    if service is None:
        try:
            service = StickerGenerationService.from_environment()
        except ConfigurationError as e:
            logger.error(f"Sticker generation unavailable: {e}")
            app.state.startup_error = e
    app.state.service = service
    app.state.download_transport = download_transport

    @app.post("/api/generate")
    async def generate_stickers(request: Request):
        """Generate 1-4 sticker designs."""
        if request.app.state.service is None:
            return _error_response(response_for(request.app.state.startup_error))

        try:
            body = await request.json()
        except ValueError:
            return _error_response(ErrorResponse(400, "Invalid JSON body", "Please check your request and try again."))

        if not isinstance(body, dict) or not body.get("style"):
            return _error_response(ErrorResponse(
                400,
                "Missing required field: style",
                "Please select a style for your sticker",
            ))

        try:
            generation_request = GenerationRequest.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Rejected generation request: {e.error_count()} validation errors")
            return _error_response(ErrorResponse(400, "Invalid request", "Please check your request and try again."))

        try:
            result = await request.app.state.service.generate(generation_request)
        except Exception as e:
            logger.error(f"Generation API error: {e}")
            return _error_response(response_for(e))

        return JSONResponse(content=result.model_dump(mode="json", by_alias=True, exclude_none=True))

    @app.get("/api/download")
    async def download_sticker(request: Request, url: Optional[str] = None, id: Optional[str] = None):
        """Proxy a generated image as a file attachment."""
        if not url:
            return PlainTextResponse("Missing image URL", status_code=400)

        try:
            async with httpx.AsyncClient(
                transport=request.app.state.download_transport,
                timeout=30.0,
                follow_redirects=True,
            ) as client:
                upstream = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Download API error: {e}")
            return PlainTextResponse("Internal server error", status_code=500)

        if upstream.status_code != 200:
            return PlainTextResponse("Failed to fetch image", status_code=upstream.status_code)

        headers = {
            "Content-Disposition": f'attachment; filename="{_download_filename(id)}"',
            **NO_CACHE_HEADERS,
        }
        return Response(
            content=upstream.content,
            media_type=upstream.headers.get("content-type", "image/png"),
            headers=headers,
        )

    @app.get("/api/styles")
    async def get_styles() -> Dict[str, Any]:
        """Style catalog for the picker."""
        return {"styles": list_styles(), "default": DEFAULT_STYLE.value}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy" if app.state.service is not None else "degraded",
            "service": "synthetik",
        }

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Run the FastAPI server."""
    uvicorn.run(
        "synthetik.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    run_server()
