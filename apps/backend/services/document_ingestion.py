"""
Document ingestion for outline generation

Reads an uploaded document into plain (Markdown-ish) text:
- Text documents (.md, .txt, .rst, source files, ...) are decoded as UTF-8
- PowerPoint decks (.pptx) become one ``##`` section per slide
"""

import os
import zipfile
from pathlib import Path
from typing import Union

from pptx.exc import PackageNotFoundError

from agents import config
from agents.generation.exceptions import IngestionError
from services.pptx_text_extractor import extract_pptx_text_from_bytes, pptx_to_markdown
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

PPTX_EXTENSIONS = {'.pptx'}
# Binary formats we recognise but cannot read as text
UNSUPPORTED_EXTENSIONS = {'.pdf', '.doc', '.docx', '.ppt', '.xls', '.xlsx', '.png', '.jpg', '.jpeg', '.gif', '.webp', '.zip'}


def read_document_bytes(data: bytes, filename: str = "document.txt") -> str:
    """
    Turn uploaded bytes into text for the outline generator.

    Raises:
        IngestionError: too large, empty, unsupported or not decodable
    """
    extension = os.path.splitext(filename or "")[1].lower()

    if len(data) > config.MAX_DOCUMENT_BYTES:
        raise IngestionError(
            f"File is too large ({len(data)} bytes, limit {config.MAX_DOCUMENT_BYTES})",
            context={'filename': filename}
        )
    if not data:
        raise IngestionError("File is empty", context={'filename': filename})
    if extension in UNSUPPORTED_EXTENSIONS:
        raise IngestionError(f"Unsupported file type '{extension}'", context={'filename': filename})

    if extension in PPTX_EXTENSIONS:
        text = _read_pptx(data, filename)
    else:
        text = _decode_text(data, filename)

    if not text.strip():
        raise IngestionError("File has no readable text", context={'filename': filename})

    logger.info(f"[INGEST] Read {filename}: {len(text)} chars")
    return text


def read_document(path: Union[str, Path]) -> str:
    """Read a document from disk. See :func:`read_document_bytes`."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IngestionError(f"Cannot read file: {path}", cause=e)
    return read_document_bytes(data, path.name)


def _decode_text(data: bytes, filename: str) -> str:
    if b"\x00" in data[:1024]:
        raise IngestionError("File looks binary, expected text", context={'filename': filename})
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise IngestionError("File is not valid UTF-8 text", cause=e, context={'filename': filename})
    return text.replace('\r\n', '\n')


def _read_pptx(data: bytes, filename: str) -> str:
    try:
        extracted = extract_pptx_text_from_bytes(data)
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise IngestionError("Could not open PowerPoint file", cause=e, context={'filename': filename})
    logger.debug(f"[INGEST] {filename}: {extracted['slide_count']} slides")
    return pptx_to_markdown(extracted)
