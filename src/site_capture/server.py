"""HTTP boundary: POST /getcode -> streamed ZIP of the captured page.

Run with `site-capture serve` or `uvicorn site_capture.server:create_app
--factory`.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from . import __version__
from .errors import InputValidationError, PrimaryFetchError, StagingIOError
from .pipeline import CaptureConfig, CapturePipeline

logger = logging.getLogger(__name__)

COUNT_HEADERS = (
    "X-HTML-COUNT",
    "X-CSS-COUNT",
    "X-JS-COUNT",
    "X-IMAGE-COUNT",
    "X-TOTAL-FILES",
)


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000

    @classmethod
    def from_env(cls) -> ServerSettings:
        return cls(
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
        )


class CaptureBody(BaseModel):
    url: str | None = None


def create_app(
    config: CaptureConfig | None = None,
    *,
    pipeline: CapturePipeline | None = None,
) -> FastAPI:
    pipeline = pipeline or CapturePipeline(config=config)

    app = FastAPI(title="Site Capture API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=list(COUNT_HEADERS),
    )

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "timestamp": time.time()}

    @app.post("/getcode")
    def getcode(body: CaptureBody):
        try:
            prepared = pipeline.prepare(body.url)
        except InputValidationError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except (PrimaryFetchError, StagingIOError) as e:
            return JSONResponse(
                status_code=500,
                content={"error": f"Failed to fetch source: {e}"},
            )

        # close() is idempotent; it covers clients that disconnect before
        # the body iterator gets to its own cleanup.
        return StreamingResponse(
            prepared.iter_archive(),
            media_type="application/zip",
            headers=prepared.headers(),
            background=BackgroundTask(prepared.close),
        )

    return app
