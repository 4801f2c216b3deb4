"""Text extraction for uploaded documents."""
import io
import logging
from pathlib import PurePath

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .errors import UnsupportedDocumentError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md", ".pdf")


def document_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower()


def extract_document_text(filename: str, data: bytes) -> str:
    """
    Turn an uploaded file into plain text.

    Args:
        filename: Original file name; its extension picks the extractor
        data: Raw file bytes

    Returns:
        Extracted text
    """
    extension = document_extension(filename)

    if extension in (".txt", ".md"):
        return data.decode("utf-8", errors="replace")

    if extension == ".pdf":
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as e:
            raise UnsupportedDocumentError(f"Could not read PDF '{filename}': {e}") from e
        logger.debug(f"Extracted {len(pages)} PDF pages from {filename}")
        return "\n".join(pages)

    raise UnsupportedDocumentError(
        f"Unsupported file type '{extension or filename}'. "
        f"Only {', '.join(SUPPORTED_EXTENSIONS)} files are allowed"
    )
