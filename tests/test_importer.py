# tests/test_importer.py
import json

import pytest

from recite_tutor.db import get_connection, init_db
from recite_tutor.errors import ValidationFailure
from recite_tutor.importer import (
    import_file, next_page_number, pages_from_data, read_file_content, split_text_pages, store_pages,
)


def test_split_text_on_form_feed():
    text = "a\nb\n\f\nc\n\f\n\n"
    assert split_text_pages(text) == [["a", "b"], ["c"]]


def test_split_text_fixed_chunks():
    text = "\n".join(f"line {n}" for n in range(1, 8))
    pages = split_text_pages(text, lines_per_page=3)
    assert [len(p) for p in pages] == [3, 3, 1]
    assert pages[2] == ["line 7"]


def test_pages_from_numbered_dict():
    data = {"pages": [{"number": 2, "lines": ["b1"]}, {"number": 1, "lines": ["a1", " ", "a2"]}]}
    assert pages_from_data(data) == [["a1", "a2"], ["b1"]]


def test_pages_from_list_of_strings():
    assert pages_from_data(["x\ny", ""]) == [["x", "y"]]


def test_pages_from_bad_data():
    with pytest.raises(ValidationFailure):
        pages_from_data("just text")


def test_read_txt_file(tmp_path):
    f = tmp_path / "juz.txt"
    f.write_text("first line\nsecond line\n")
    assert read_file_content(str(f)) == [["first line", "second line"]]


def test_read_json_file(tmp_path):
    f = tmp_path / "pages.json"
    f.write_text(json.dumps([["one", "two"], ["three"]]))
    assert read_file_content(str(f)) == [["one", "two"], ["three"]]


def test_read_yaml_file(tmp_path):
    f = tmp_path / "pages.yaml"
    f.write_text("pages:\n  - number: 1\n    lines:\n      - alpha\n      - beta\n")
    assert read_file_content(str(f)) == [["alpha", "beta"]]


def test_read_html_file(tmp_path):
    f = tmp_path / "page.html"
    f.write_text("<html><body><p>first</p><p>second</p></body></html>")
    assert read_file_content(str(f)) == [["first", "second"]]


def test_store_pages_replaces_existing_lines(tmp_db):
    init_db(tmp_db)
    store_pages(tmp_db, [["a", "b"]], first_page=1, source="v1.txt")
    store_pages(tmp_db, [["A"]], first_page=1, source="v2.txt")
    conn = get_connection(tmp_db)
    rows = conn.execute("SELECT position, text FROM lines ORDER BY position").fetchall()
    source = conn.execute("SELECT source FROM pages WHERE number = 1").fetchone()["source"]
    conn.close()
    assert [tuple(r) for r in rows] == [(1, "A"), (2, "b")]
    assert source == "v2.txt"


def test_import_file_appends_pages(tmp_path, populated_db):
    f = tmp_path / "more.txt"
    f.write_text("x\ny\n\fz\n")
    assert next_page_number(populated_db) == 6
    result = import_file(populated_db, str(f))
    assert result == {"filename": "more.txt", "first_page": 6, "last_page": 7, "lines": 3}
    assert next_page_number(populated_db) == 8


def test_import_file_at_explicit_page(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "p.md"
    f.write_text("only line")
    assert import_file(tmp_db, str(f), first_page=10)["first_page"] == 10


def test_import_empty_file(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "empty.txt"
    f.write_text("\n\n")
    with pytest.raises(ValidationFailure):
        import_file(tmp_db, str(f))


def test_pages_from_data_keeps_blank_pages():
    assert pages_from_data(["page one", "", "page three"], keep_empty=True) == [["page one"], [], ["page three"]]


class FakePdfPage:
    def __init__(self, text):
        self.text = text

    def extract_text(self):
        return self.text


def test_pdf_blank_page_keeps_numbering(tmp_path, tmp_db, monkeypatch):
    PyPDF2 = pytest.importorskip("PyPDF2")

    class FakeReader:
        def __init__(self, path):
            self.pages = [FakePdfPage("first page"), FakePdfPage(None), FakePdfPage("third page")]

    monkeypatch.setattr(PyPDF2, "PdfReader", FakeReader)
    init_db(tmp_db)
    f = tmp_path / "scan.pdf"
    f.write_bytes(b"%PDF-1.4")
    result = import_file(tmp_db, str(f), first_page=1)
    assert (result["first_page"], result["last_page"], result["lines"]) == (1, 3, 2)
    conn = get_connection(tmp_db)
    pages = [r["number"] for r in conn.execute("SELECT number FROM pages ORDER BY number")]
    third = conn.execute("SELECT text FROM lines WHERE page_number = 3").fetchone()["text"]
    conn.close()
    assert pages == [1, 2, 3]
    assert third == "third page"
