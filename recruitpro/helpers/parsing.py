import base64
import binascii
import io
import re
from pathlib import Path

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract

from recruitpro.utils.exceptions import ExtractionFailure
from recruitpro.utils.logging_config import get_logger, log_function_call

logger = get_logger(__name__)

TEXT_EXTENSIONS = (".txt", ".md")


def read_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="ignore")


def read_docx(content: bytes) -> str:
    doc = Document(io.BytesIO(content))
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(content: bytes) -> str:
    return pdf_extract(io.BytesIO(content))


READERS = {
    ".pdf": read_pdf,
    ".docx": read_docx,
    ".txt": read_txt,
    ".md": read_txt,
}


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x or "").strip()
    return x


def decode_base64_document(b64_string: str, filename: str = None) -> bytes:
    try:
        return base64.b64decode(b64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ExtractionFailure(f"Resume is not valid base64: {e}", filename=filename, cause=e)


@log_function_call
def extract_text(filename: str, content: bytes, min_chars: int = 50) -> str:
    """
    Convert an uploaded document into plain text.

    Raises ExtractionFailure for unsupported types, parser errors and
    text shorter than ``min_chars``; scoring needs more than that to
    produce a meaningful result.
    """
    ext = Path(filename or "").suffix.lower()
    reader = READERS.get(ext)
    if reader is None:
        raise ExtractionFailure(f"Unsupported resume format: '{ext or filename}'", filename=filename)

    try:
        text = clean_text(reader(content))
    except Exception as e:
        # pdfminer and python-docx raise a wide range of types for corrupt files
        raise ExtractionFailure(f"Failed to extract text from {filename}: {e}", filename=filename, cause=e)

    if len(text) < min_chars:
        raise ExtractionFailure(
            f"Document appears to be empty or contains no readable text ({len(text)} characters)",
            filename=filename,
            details={"length": len(text), "min_chars": min_chars},
        )

    logger.info(f"Extracted {len(text)} characters from {filename}")
    return text
