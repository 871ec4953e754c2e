"""
FastAPI layer exposing remove.bg background removal and local cropping.

Endpoints:
 - GET /health
 - POST /remove-bg
 - POST /crop-image
 - GET /outputs/<name>
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import UploadFile as StarletteUploadFile

from . import config
from .cropping import CropError, CropRequest, crop_to_file
from .removebg import (
    RemoveBgClient,
    UpstreamError,
    UpstreamTimeout,
    UpstreamUnavailable,
    remove_background_to_file,
)
from .uploads import NO_FILE_MESSAGE, discard, store_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def _settings(request: Request) -> config.Settings:
    return request.app.state.settings


def _is_file(value) -> bool:
    # Plain text sent under the file field name counts as no file.
    return isinstance(value, StarletteUploadFile)


def _no_file_response() -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": NO_FILE_MESSAGE})


def _processing_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"message": f"Error processing image: {exc}"})


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/remove-bg")
def remove_bg(
    request: Request,
    image: Union[UploadFile, str, None] = File(None),
    bgColor: Optional[str] = Form(None),  # noqa: N803
    backgroundDesign: Optional[str] = Form(None),  # noqa: N803
):
    if not _is_file(image):
        return _no_file_response()

    settings = _settings(request)
    try:
        uploaded = store_upload(image, settings.uploads_dir)
    except OSError as exc:
        logger.exception("Could not store upload: %s", exc)
        return PlainTextResponse("Error removing background", status_code=500)

    client = RemoveBgClient(
        api_key=settings.remove_bg_api_key,
        url=settings.remove_bg_url,
        timeout=settings.request_timeout_seconds,
    )
    try:
        output_path = remove_background_to_file(
            uploaded,
            settings.outputs_dir,
            client,
            bg_color=bgColor,
            background_design=backgroundDesign,
        )
        return FileResponse(output_path, media_type="image/png")
    except UpstreamError as exc:
        return Response(content=exc.body, status_code=exc.status_code, media_type=exc.content_type)
    except UpstreamTimeout as exc:
        logger.error("remove.bg request timed out: %s", exc)
        return PlainTextResponse("Request to background removal service timed out", status_code=503)
    except UpstreamUnavailable as exc:
        logger.error("remove.bg request failed: %s", exc)
        return PlainTextResponse("Service Unavailable. Check your internet connection.", status_code=503)
    except OSError as exc:
        logger.exception("Background removal failed: %s", exc)
        return PlainTextResponse("Error removing background", status_code=500)
    finally:
        discard(uploaded)


@router.post("/crop-image")
def crop_image(
    request: Request,
    file: Union[UploadFile, str, None] = File(None),
    width: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    x: Optional[str] = Form(None),
    y: Optional[str] = Form(None),
):
    if not _is_file(file):
        return _no_file_response()

    settings = _settings(request)
    try:
        uploaded = store_upload(file, settings.uploads_dir)
    except OSError as exc:
        logger.exception("Could not store upload: %s", exc)
        return _processing_error(exc)

    try:
        crop_request = CropRequest.from_form(width=width, height=height, x=x, y=y)
        output_path = crop_to_file(uploaded, crop_request, settings.outputs_dir)
        return FileResponse(output_path, media_type="image/png")
    except CropError as exc:
        logger.exception("Crop failed: %s", exc)
        return _processing_error(exc)
    finally:
        discard(uploaded)


def create_app(settings: Optional[config.Settings] = None) -> FastAPI:
    """
    Build the application. Served with `uvicorn --factory bgcrop_service.api:create_app`
    so nothing touches the filesystem at import time.
    """
    settings = settings or config.get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    config.ensure_directories(settings)

    app = FastAPI(title="Background Removal and Crop Service", version="0.1.0")
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.mount("/outputs", StaticFiles(directory=settings.outputs_dir), name="outputs")

    logger.info("Service ready: uploads=%s outputs=%s", settings.uploads_dir, settings.outputs_dir)
    return app
