import logging
import re
import time
from pathlib import Path
from typing import List, Union

from fastapi.concurrency import run_in_threadpool

import pdf_generator
import ppt_generator
from models import ExportedFile, ExportResult, Presentation

MEDIA_TYPES = {
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "pdf": "application/pdf",
}
SUPPORTED_FORMATS = tuple(MEDIA_TYPES)


class ExportError(Exception):
    """Raised when a renderer fails; the cause is logged, not exposed."""


class ExportNotFoundError(ExportError):
    pass


class UnsupportedFormatError(ValueError):
    pass


def validate_format(export_format: str) -> str:
    """Returns the lower-cased format or raises UnsupportedFormatError."""
    normalized = (export_format or "").strip().lower()
    if normalized not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(f"Format must be one of: {', '.join(SUPPORTED_FORMATS)}")
    return normalized


def sanitize_filename(name: str) -> str:
    """'My Talk! 2024' -> 'my_talk_2024'"""
    return re.sub(r'[^a-z0-9]+', '_', name.lower()).strip('_')


def build_filename(title: str, extension: str) -> str:
    safe_title = sanitize_filename(title) or "presentation"
    return f"{safe_title}_{time.time_ns() // 1_000_000}.{extension}"


class ExportService:
    """Renders presentations to files in a local export directory."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _result(self, filename: str, filepath: Path) -> ExportResult:
        return ExportResult(
            success=True,
            filename=filename,
            filepath=str(filepath),
            size=filepath.stat().st_size,
        )

    async def export(self, presentation: Presentation, export_format: str) -> ExportResult:
        export_format = validate_format(export_format)
        if export_format == "pptx":
            # python-pptx rendering is blocking
            return await run_in_threadpool(self.export_to_pptx, presentation)
        return await self.export_to_pdf(presentation)

    def export_to_pptx(self, presentation: Presentation) -> ExportResult:
        filename = build_filename(presentation.title, "pptx")
        filepath = self.output_dir / filename
        try:
            prs = ppt_generator.create_presentation(presentation)
            prs.save(str(filepath))
            result = self._result(filename, filepath)
        except Exception as e:
            logging.error(f"Failed to export presentation to PPTX: {e}", exc_info=True)
            raise ExportError("Export failed") from e
        logging.info(f"Exported PPTX {filename} ({result.size} bytes)")
        return result

    async def export_to_pdf(self, presentation: Presentation) -> ExportResult:
        filename = build_filename(presentation.title, "pdf")
        filepath = self.output_dir / filename
        try:
            html_content = pdf_generator.render_html(presentation)
            await pdf_generator.write_pdf(html_content, filepath)
            result = self._result(filename, filepath)
        except Exception as e:
            logging.error(f"Failed to export presentation to PDF: {e}", exc_info=True)
            raise ExportError("Export failed") from e
        logging.info(f"Exported PDF {filename} ({result.size} bytes)")
        return result

    def get_exported_file(self, filename: str) -> ExportedFile:
        filepath = (self.output_dir / filename).resolve()
        if filepath.parent != self.output_dir.resolve() or not filepath.is_file():
            raise ExportNotFoundError(f"File not found: {filename}")
        content = filepath.read_bytes()
        return ExportedFile(filepath=str(filepath), content=content, size=len(content))

    def cleanup_old_files(self, max_age_hours: float = 24) -> List[str]:
        """Deletes artifacts at least `max_age_hours` old. Returns the deleted names."""
        removed = []
        max_age = max_age_hours * 60 * 60
        now = time.time()
        try:
            entries = list(self.output_dir.iterdir())
        except OSError as e:
            logging.error(f"Failed to list export directory {self.output_dir}: {e}", exc_info=True)
            return removed

        for filepath in entries:
            try:
                if not filepath.is_file():
                    continue
                if now - filepath.stat().st_mtime >= max_age:
                    filepath.unlink()
                    removed.append(filepath.name)
                    logging.info(f"Removed old export: {filepath.name}")
            except OSError as e:
                logging.error(f"Failed to remove {filepath.name}: {e}", exc_info=True)
        return removed
