import pytest

from upflix.errors import ExtractionError
from upflix.extract import parse_page


def test_parse_page_reads_all_fields(title_page_html):
    page = parse_page(title_page_html)

    assert page.polish_title == "Incepcja"
    assert page.english_title == "Inception"
    assert page.year == "2010"
    assert page.genres == ("Sci-Fi", "Akcja")
    assert page.filmweb_href == "/r/fw/123"
    assert page.imdb_href == "https://upflix.pl/r/im/456"
    assert page.missing == ()


def test_parse_page_splits_subscriptions_and_rents(title_page_html):
    page = parse_page(title_page_html)

    # duplicados se mantienen aquí; MediaRecord los colapsa
    assert page.subscriptions == ("netflix", "hbomax", "netflix")
    # sin #vod- o con otra etiqueta => ignorado
    assert page.rents == ("itunes",)


def test_parse_page_partial_document():
    page = parse_page("<html><body><h1>Tylko tytuł</h1></body></html>")

    assert page.polish_title == "Tylko tytuł"
    assert page.english_title is None
    assert page.year is None
    assert page.genres == ()
    assert page.filmweb_href is None
    assert page.imdb_href is None
    assert page.subscriptions == ()
    assert page.rents == ()
    assert page.missing == ("english_title", "year")


def test_parse_page_empty_heading_is_absent():
    page = parse_page("<h1>  </h1><h2>Inception</h2>")
    assert page.polish_title is None
    assert page.english_title == "Inception"


@pytest.mark.parametrize("body", ["", "   \n\t "])
def test_parse_page_empty_document_raises(body):
    with pytest.raises(ExtractionError):
        parse_page(body)
