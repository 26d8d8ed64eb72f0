"""
PDF to plain text conversion.
"""
import io
import pdfplumber
from loguru import logger

from cbenef.exceptions import ExtractionError


def text_of(document: bytes, state_code: str = "") -> str:
    """
    Extract the text of every page, one visual row per line.

    Raises:
        ExtractionError: the bytes are not a readable PDF or carry no text
    """
    try:
        with pdfplumber.open(io.BytesIO(document)) as pdf:
            full_text = ""
            for page in pdf.pages:
                page_text = page.extract_text() or ""
                full_text += page_text + "\n"
    except Exception as e:
        raise ExtractionError(state_code, f"Could not read PDF: {e}", cause=e) from e

    if not full_text.strip():
        raise ExtractionError(state_code, "No text content found in PDF")

    logger.info(f"PDF text extracted for {state_code or 'document'}: {len(full_text)} characters")
    return full_text
