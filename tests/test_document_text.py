import pytest

from conftest import docx_bytes, pdf_bytes
from core.document_text import extract_text
from util.functions import file_extension, split_keywords


def test_docx_paragraphs_are_blank_line_separated():
    data = docx_bytes("First   paragraph\twith  gaps.", "", "Second paragraph.")
    assert extract_text(data, "docx") == "First paragraph with gaps.\n\nSecond paragraph."


def test_pdf_text_is_extracted():
    data = pdf_bytes("Soil moisture drives yield.", "Rainfall timing matters.")
    text = extract_text(data, "pdf")
    assert "Soil moisture drives yield." in text
    assert "Rainfall timing matters." in text


def test_garbage_pdf_raises():
    with pytest.raises(Exception):
        extract_text(b"definitely not a pdf", "pdf")


def test_unknown_extension():
    with pytest.raises(ValueError):
        extract_text(b"x", "txt")


@pytest.mark.parametrize(
    "name,ext",
    [("thesis.PDF", "pdf"), ("a.b.docx", "docx"), ("noext", ""), ("trailing.", "")],
)
def test_file_extension(name, ext):
    assert file_extension(name) == ext


def test_split_keywords():
    assert split_keywords(" maize, ,irrigation ,") == ["maize", "irrigation"]
    assert split_keywords(None) == []
