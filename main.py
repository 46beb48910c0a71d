import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

import config
from export_service import (
    MEDIA_TYPES,
    ExportError,
    ExportService,
    UnsupportedFormatError,
    validate_format,
)
from generation import PresentationGenerator, dump_result
from models import ExportPayload, GeneratePayload, GenerateSlidePayload

# Logging configuration
logging.basicConfig(level=config.LOG_LEVEL)

MIN_SLIDES = 3
MAX_SLIDES = 20

_generator = PresentationGenerator()
_export_service = ExportService(config.EXPORT_DIR)


def get_generator() -> PresentationGenerator:
    return _generator


def get_export_service() -> ExportService:
    return _export_service


async def cleanup_periodically(service: ExportService, interval_seconds: float, max_age_hours: float):
    """Sweeps old export artifacts every `interval_seconds`."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            service.cleanup_old_files(max_age_hours)
        except Exception as e:
            logging.error(f"Export cleanup sweep failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(
        cleanup_periodically(_export_service, config.CLEANUP_INTERVAL_SECONDS, config.EXPORT_MAX_AGE_HOURS)
    )
    logging.info(
        f"Export cleanup scheduled every {config.CLEANUP_INTERVAL_SECONDS}s "
        f"(max age {config.EXPORT_MAX_AGE_HOURS}h) in {config.EXPORT_DIR}"
    )
    try:
        yield
    finally:
        task.cancel()


# --- FastAPI App ---
app = FastAPI(
    title="Slide Deck Generation Service",
    description="An API to generate slide decks with an LLM and export them to PPTX or PDF.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages) or "Invalid request body"})


# --- Endpoints --- #
@app.post("/api/presentation/generate", summary="Generate a presentation for a theme")
def generate_endpoint(
    payload: GeneratePayload,
    generator: PresentationGenerator = Depends(get_generator),
):
    theme = (payload.theme or "").strip()
    if not theme or not payload.slidesCount:
        raise HTTPException(status_code=400, detail="Theme and number of slides are required")
    if payload.slidesCount < MIN_SLIDES or payload.slidesCount > MAX_SLIDES:
        raise HTTPException(
            status_code=400, detail=f"Number of slides must be between {MIN_SLIDES} and {MAX_SLIDES}"
        )

    try:
        result = generator.generate(theme, payload.slidesCount)
        return dump_result(result)
    except Exception as e:
        logging.error(f"An error occurred while generating a presentation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/api/presentation/generate-slide", summary="Generate content for a single slide")
def generate_slide_endpoint(
    payload: GenerateSlidePayload,
    generator: PresentationGenerator = Depends(get_generator),
):
    title = (payload.title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Slide title is required")

    try:
        result = generator.generate_slide(title, payload.context)
        return dump_result(result)
    except Exception as e:
        logging.error(f"An error occurred while generating slide content: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/api/presentation/export", summary="Export a presentation to PPTX or PDF")
async def export_endpoint(
    payload: ExportPayload,
    service: ExportService = Depends(get_export_service),
):
    if payload.presentation is None or not payload.format:
        raise HTTPException(status_code=400, detail="Presentation and format are required")
    try:
        export_format = validate_format(payload.format)
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = await service.export(payload.presentation, export_format)
        exported = service.get_exported_file(result.filename)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(
        content=exported.content,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Slide Deck Generator - Backend"


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT)
