"""
PDF text extraction and chunking
"""
import io
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pypdf import PdfReader

from core.config import settings
from core.errors import PDFProcessingError
from models.document import PageText, ParsedPDF, PDFMetadata

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_DATE_RE = re.compile(
    r"^D?:?(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
    r"(?P<tz>[Zz+\-])?(?:(?P<tzh>\d{2})'?(?P<tzm>\d{2})?'?)?"
)


def parse_pdf_date(value) -> Optional[datetime]:
    """Convert a PDF date string (D:YYYYMMDDHHmmSSOHH'mm') to a datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    match = PDF_DATE_RE.match(str(value).strip())
    if not match:
        return None
    parts = match.groupdict()
    try:
        tzinfo = None
        if parts["tz"] in ("Z", "z"):
            tzinfo = timezone.utc
        elif parts["tz"] in ("+", "-") and parts["tzh"]:
            offset = timedelta(hours=int(parts["tzh"]), minutes=int(parts["tzm"] or 0))
            tzinfo = timezone(offset if parts["tz"] == "+" else -offset)
        return datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
            tzinfo=tzinfo,
        )
    except ValueError:
        return None


class PDFProcessor:
    """Handles PDF text extraction, metadata and chunking."""

    @staticmethod
    def validate_pdf_file(filename: Optional[str], content_type: Optional[str], size: int) -> bool:
        """Check extension (or content type) and the upload size limit."""
        name = (filename or "").lower()
        is_pdf = name.endswith(tuple(ext.lower() for ext in settings.ALLOWED_EXTENSIONS))
        if not is_pdf and content_type != PDF_CONTENT_TYPE:
            return False
        if size <= 0 or size > settings.MAX_FILE_SIZE_MB * 1024 * 1024:
            return False
        return True

    @staticmethod
    def _open(pdf_bytes: bytes) -> PdfReader:
        try:
            return PdfReader(io.BytesIO(pdf_bytes))
        except Exception as e:
            raise PDFProcessingError(f"Failed to parse PDF file: {e}")

    @staticmethod
    def _metadata(reader: PdfReader) -> PDFMetadata:
        raw = reader.metadata or {}
        info = {str(key).lstrip("/"): str(raw[key]) for key in raw}
        return PDFMetadata(
            info=info,
            pageCount=len(reader.pages),
            title=info.get("Title") or None,
            author=info.get("Author") or None,
            creationDate=parse_pdf_date(info.get("CreationDate")),
        )

    @staticmethod
    def _page_texts(reader: PdfReader) -> List[PageText]:
        pages = []
        for index, page in enumerate(reader.pages):
            try:
                text = page.extract_text() or ""
            except Exception as e:
                logger.warning("Text extraction failed on page %d: %s", index + 1, e)
                text = ""
            pages.append(PageText(pageNumber=index + 1, text=text))
        return pages

    @classmethod
    def parse(cls, pdf_bytes: bytes) -> ParsedPDF:
        """Extract text, page texts, metadata and fixed-size chunks."""
        reader = cls._open(pdf_bytes)
        try:
            metadata = cls._metadata(reader)
            page_texts = cls._page_texts(reader)
        except PDFProcessingError:
            raise
        except Exception as e:
            raise PDFProcessingError(f"Failed to parse PDF file: {e}")
        if metadata.pageCount == 0:
            raise PDFProcessingError("Failed to parse PDF file: document has no pages")

        text ="\n".join(p.text for p in page_texts if p.text)
        chunks = cls.create_chunks(text, settings.PARSE_CHUNK_SIZE, 0)
        logger.info(
            "Parsed PDF: %d pages, %d characters, %d chunks",
            metadata.pageCount, len(text), len(chunks),
        )
        return ParsedPDF(
            text=text,
            metadata=metadata,
            chunks=chunks,
            pageTexts=page_texts or None,
        )

    @classmethod
    def extract_page_text(cls, pdf_bytes: bytes, page_number: int) -> str:
        """Text of a single page (1-based)."""
        reader = cls._open(pdf_bytes)
        if page_number < 1 or page_number > len(reader.pages):
            raise PDFProcessingError(f"Failed to extract text from page {page_number}")
        try:
            return reader.pages[page_number - 1].extract_text() or ""
        except Exception as e:
            raise PDFProcessingError(f"Failed to extract text from page {page_number}: {e}")

    @staticmethod
    def create_chunks(text: str, chunk_size: int, overlap: int) -> List[str]:
        if not text:
            return []

        if overlap >= chunk_size:
            raise ValueError("overlap must be smaller than chunk_size")

        chunks = []
        start = 0
        text_len = len(text)

        while start < text_len:
            end = min(start + chunk_size, text_len)
            chunks.append(text[start:end])

            if end == text_len:
                break
            start = end - overlap

        return chunks
