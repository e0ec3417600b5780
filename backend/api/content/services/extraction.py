"""Content extraction dispatch: extract(file_bytes, mimetype) -> partial fields.

Never raises; anything the extractors cannot handle degrades to a
placeholder payload carrying an ``error`` message.
"""

import logging
from collections.abc import Callable

from api.content.services.excel_extractor import excel_fallback, extract_excel
from api.content.services.pdf_extractor import extract_pdf, pdf_fallback
from config import PDF_MIME, XLSX_MIME
from errors import ParseError

logger = logging.getLogger(__name__)

Extractor = Callable[[bytes, str], dict]

EXTRACTORS = {
    PDF_MIME: (extract_pdf, pdf_fallback),
    XLSX_MIME: (extract_excel, excel_fallback),
}


def extract(file_bytes: bytes, mimetype: str) -> dict:
    handlers = EXTRACTORS.get(mimetype)
    if handlers is None:
        return {"error": f"No extractor for {mimetype}"}

    extractor, fallback = handlers
    kind = "PDF" if mimetype == PDF_MIME else "Excel"
    try:
        return extractor(file_bytes)
    except ParseError as e:
        logger.warning("Extraction failed for %s: %s", mimetype, e)
        return fallback(f"{kind} file could not be parsed automatically: {e}")
    except Exception as e:
        logger.exception("Unexpected extraction error for %s", mimetype)
        return fallback(f"{kind} file could not be parsed automatically: {e}")
