"""Import recitation material from various file formats into numbered pages."""
import json
from pathlib import Path

from recite_tutor import config
from recite_tutor.db import get_connection
from recite_tutor.errors import ValidationFailure

PAGE_BREAK = "\f"


def split_text_pages(text: str, lines_per_page: int = config.LINES_PER_PAGE) -> list[list[str]]:
    """Form-feed separated pages, else fixed-size chunks of non-empty lines."""
    if PAGE_BREAK in text:
        pages = [[ln.strip() for ln in chunk.splitlines() if ln.strip()] for chunk in text.split(PAGE_BREAK)]
        return [p for p in pages if p]
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    return [lines[i:i + lines_per_page] for i in range(0, len(lines), lines_per_page)]


def pages_from_data(data, keep_empty: bool = False) -> list[list[str]]:
    """Accept ``{"pages": [{"number": n, "lines": [...]}]}`` or a list of line lists.

    With ``keep_empty`` a page without text stays as an empty placeholder so
    later pages keep their numbers.
    """
    if isinstance(data, dict):
        entries = data.get("pages", [])
        entries = sorted(entries, key=lambda p: p.get("number", 0)) if entries and isinstance(entries[0], dict) else entries
        data = [e.get("lines", []) if isinstance(e, dict) else e for e in entries]
    if not isinstance(data, list):
        raise ValidationFailure("Expected a list of pages")
    pages = []
    for page in data:
        if isinstance(page, str):
            page = page.splitlines()
        lines = [str(ln).strip() for ln in page if str(ln).strip()]
        if lines or keep_empty:
            pages.append(lines)
    return pages


def read_file_content(file_path: str, lines_per_page: int = config.LINES_PER_PAGE) -> list[list[str]]:
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix in (".txt", ".md"):
        return split_text_pages(path.read_text(), lines_per_page)
    elif suffix == ".json":
        return pages_from_data(json.loads(path.read_text()))
    elif suffix in (".yaml", ".yml"):
        import yaml
        return pages_from_data(yaml.safe_load(path.read_text()))
    elif suffix == ".pdf":
        from PyPDF2 import PdfReader
        reader = PdfReader(file_path)
        return pages_from_data([(page.extract_text() or "") for page in reader.pages], keep_empty=True)
    elif suffix == ".docx":
        from docx import Document
        doc = Document(file_path)
        return split_text_pages("\n".join(p.text for p in doc.paragraphs), lines_per_page)
    elif suffix in (".html", ".htm"):
        from bs4 import BeautifulSoup
        html = path.read_text()
        return split_text_pages(BeautifulSoup(html, "html.parser").get_text("\n"), lines_per_page)
    else:
        # Try reading as plain text
        return split_text_pages(path.read_text(), lines_per_page)


def next_page_number(db_path: str) -> int:
    conn = get_connection(db_path)
    row = conn.execute("SELECT MAX(number) FROM pages").fetchone()
    conn.close()
    return (row[0] or 0) + 1


def store_pages(db_path: str, pages: list[list[str]], first_page: int, source: str = "") -> None:
    """Write pages starting at ``first_page``, overwriting lines at the same positions."""
    conn = get_connection(db_path)
    with conn:
        for offset, lines in enumerate(pages):
            number = first_page + offset
            conn.execute(
                "INSERT INTO pages (number, source) VALUES (?, ?) ON CONFLICT(number) DO UPDATE SET source=?",
                (number, source, source),
            )
            for position, text in enumerate(lines, 1):
                conn.execute(
                    """INSERT INTO lines (page_number, position, text) VALUES (?, ?, ?)
                    ON CONFLICT(page_number, position) DO UPDATE SET text=excluded.text""",
                    (number, position, text),
                )
    conn.close()


def import_file(
    db_path: str,
    file_path: str,
    first_page: int | None = None,
    lines_per_page: int = config.LINES_PER_PAGE,
) -> dict:
    """Import a file as pages. Appends after the last page unless told otherwise."""
    pages = read_file_content(file_path, lines_per_page)
    if not any(pages):
        raise ValidationFailure(f"No text found in {Path(file_path).name}")
    if first_page is None:
        first_page = next_page_number(db_path)
    store_pages(db_path, pages, first_page, source=Path(file_path).name)
    return {
        "filename": Path(file_path).name,
        "first_page": first_page,
        "last_page": first_page + len(pages) - 1,
        "lines": sum(len(p) for p in pages),
    }
