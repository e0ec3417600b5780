"""Best-effort field scraping from Swedish medical journal PDFs."""

import re
from datetime import date

import fitz  # PyMuPDF

from errors import ParseError

DEFAULT_TITLE = "Importerad Journalanteckning"
DEFAULT_DOCTOR = "Dr. Okänd Läkare"

_NAME = r"([A-ZÅÄÖ][a-zåäö]+\s+[A-ZÅÄÖ][a-zåäö]+)"

DOCTOR_PATTERNS = [
    re.compile(r"\b(?i:dr)\.?\s+" + _NAME),
    re.compile(r"(?i:läkare):\s*" + _NAME),
    re.compile(r"(?i:undersökande):\s*" + _NAME),
    re.compile(r"(?i:antecknad av)\s+([A-ZÅÄÖ][a-zåäö]+(?:\s+[A-ZÅÄÖ][a-zåäö]+)*)\s*\((?i:läkare)\)"),
]

DATE_PATTERNS = [
    re.compile(r"(\d{4}-\d{2}-\d{2})"),
    re.compile(r"(\d{2}/\d{2}/\d{4})"),
    re.compile(r"(\d{2}\.\d{2}\.\d{4})"),
    re.compile(
        r"(\d{1,2}\s+(?:januari|februari|mars|april|maj|juni|juli|augusti"
        r"|september|oktober|november|december)\s+\d{4})",
        re.IGNORECASE,
    ),
]

# section -> (start heading, next heading that ends it)
SECTION_PATTERNS = {
    "anamnes": (
        re.compile(r"nybesök|aktuell anamnes|anamnes|historik", re.IGNORECASE),
        re.compile(r"status|undersökning|fynd|bedömning", re.IGNORECASE),
    ),
    "status": (
        re.compile(r"klinisk undersökning|status|undersökning|fynd", re.IGNORECASE),
        re.compile(r"bedömning|diagnos|slutsats|rekommendation", re.IGNORECASE),
    ),
    "bedomning": (
        re.compile(r"bedömning|diagnos|slutsats|utlåtande", re.IGNORECASE),
        re.compile(r"rekommendation|behandling|uppföljning|åter", re.IGNORECASE),
    ),
    "rekommendationer": (
        re.compile(r"rekommendation|rekommenderar|behandling|uppföljning", re.IGNORECASE),
        re.compile(r"åter vid behov|nästa besök|slut", re.IGNORECASE),
    ),
}

SECTION_LABELS = {
    "anamnes": "Anamnes",
    "status": "Status",
    "bedomning": "Bedömning",
    "rekommendationer": "Rekommendationer",
}


def read_pdf_text(data: bytes) -> str:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise ParseError("PDF has no pages")
            return "\n".join(page.get_text() for page in doc)
    except ParseError:
        raise
    except Exception as e:
        raise ParseError(f"Unreadable PDF: {e}") from e


def extract_sections(text: str) -> dict[str, str]:
    sections = {}
    for name, (start, end) in SECTION_PATTERNS.items():
        start_match = start.search(text)
        if not start_match:
            continue
        body_start = start_match.end()
        end_match = end.search(text, body_start)
        body = text[body_start : end_match.start() if end_match else len(text)]
        body = body.strip(" :\n\t")
        if len(body) > 10:
            sections[name] = body
    return sections


def parse_pdf_text(text: str, today: date | None = None) -> dict:
    clean = re.sub(r"\s+", " ", text).strip()

    title = DEFAULT_TITLE
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if lines and 5 < len(lines[0]) < 100:
        title = lines[0]

    doctor = DEFAULT_DOCTOR
    for pattern in DOCTOR_PATTERNS:
        match = pattern.search(clean)
        if match:
            doctor = f"Dr. {match.group(1).strip()}"
            break

    found_date = (today or date.today()).isoformat()
    for pattern in DATE_PATTERNS:
        match = pattern.search(clean)
        if match:
            found_date = match.group(1)
            break

    sections = extract_sections(clean)
    labels = [label for key, label in SECTION_LABELS.items() if key in sections]
    summary = f"Innehåller: {', '.join(labels)}" if labels else "Importerad journalanteckning"

    return {
        "title": title,
        "doctor": doctor,
        "date": found_date,
        "summary": summary,
        "content": sections,
    }


def extract_pdf(data: bytes) -> dict:
    return parse_pdf_text(read_pdf_text(data))


def pdf_fallback(error: str) -> dict:
    return {
        "title": DEFAULT_TITLE,
        "doctor": DEFAULT_DOCTOR,
        "date": date.today().isoformat(),
        "summary": "",
        "content": {},
        "error": error,
    }
