"""
Upload normalisation: ZIP expansion, PDF-to-image rendering, rotation correction.
"""

import io
import os
import asyncio
import zipfile
from typing import List, Optional

import fitz
from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from gradescan.config import logger
from gradescan.models import FileInput
from gradescan.utils.concurrency import new_conversion_semaphore

SUPPORTED_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg", ".tif", ".tiff")


def is_pdf(file_bytes: bytes) -> bool:
    return file_bytes[:5] == b"%PDF-"


def expand_uploads(files: List[FileInput]) -> List[FileInput]:
    """Replace every ZIP upload with the supported files it contains."""
    expanded = []
    for f in files:
        if f.file_name.lower().endswith(".zip"):
            expanded.extend(extract_zip_files(f.raw_bytes))
        else:
            expanded.append(f)
    return expanded


def extract_zip_files(zip_bytes: bytes) -> List[FileInput]:
    """
    Extract page files from a ZIP archive.
    Directories, macOS metadata and hidden files are skipped. Members keep
    their archive-relative path as file_name (e.g. "alice/page_1.png").
    """
    results = []
    try:
        with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
            for name in sorted(zf.namelist()):
                base = os.path.basename(name)
                if name.endswith("/") or name.startswith("__MACOSX") or not base or base.startswith("."):
                    continue
                if os.path.splitext(base)[1].lower() in SUPPORTED_EXTENSIONS:
                    results.append(FileInput(file_name=name, raw_bytes=zf.read(name)))
    except zipfile.BadZipFile as e:
        logger.error(f"Failed to extract ZIP upload: {e}")
    return results


def pdf_first_page_to_jpeg(pdf_bytes: bytes) -> bytes:
    """Render the first page of a PDF to JPEG bytes."""
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        if len(doc) > 1:
            logger.info(f"PDF has {len(doc)} pages, only the first is used for this upload")
        page = doc[0]
        # 1.5x zoom balances OCR quality against payload size
        pix = page.get_pixmap(matrix=fitz.Matrix(1.5, 1.5))
        return pix.tobytes("jpeg")
    finally:
        doc.close()


def correct_rotation(image_bytes: bytes) -> bytes:
    """
    Apply the EXIF orientation tag, if any.
    Bytes that Pillow cannot decode are returned unchanged.
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        if img.getexif().get(ExifTags.Base.Orientation, 1) == 1:
            return image_bytes
        transposed = ImageOps.exif_transpose(img)
        buffer = io.BytesIO()
        transposed.convert("RGB").save(buffer, format="JPEG", quality=85)
        return buffer.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Rotation correction skipped: {e}")
        return image_bytes


async def prepare_page_image(file_bytes: bytes, semaphore: Optional[asyncio.Semaphore] = None) -> bytes:
    """
    Turn an uploaded page (PDF or image) into image bytes ready for OCR.
    PDF rendering waits on semaphore when one is given (shared across a batch).
    """
    if is_pdf(file_bytes):
        async with semaphore or new_conversion_semaphore():
            return await asyncio.to_thread(pdf_first_page_to_jpeg, file_bytes)
    return correct_rotation(file_bytes)
