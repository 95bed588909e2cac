from __future__ import annotations

"""
upflix/extract.py

Lectura de campos de una ficha de upflix.pl (selectores CSS fijos).

Política de degradación:
- Documento vacío => ExtractionError (no hay nada que interpretar).
- Cualquier otro documento => PageFields parcial: lo que no se encuentre
  queda a None / vacío, sin romper.
"""

import re
from dataclasses import dataclass
from typing import Final

from bs4 import BeautifulSoup
from bs4.element import Tag

from upflix.errors import ExtractionError

SUBSCRIPTION_LABEL: Final[str] = "ABONAMENT"
RENT_LABEL: Final[str] = "WYPOŻYCZENIE"

_VOD_RE: Final[re.Pattern[str]] = re.compile(r"#vod-(\w+)")


@dataclass(frozen=True)
class PageFields:
    """Campos leídos del HTML, antes de resolver enlaces canónicos."""

    polish_title: str | None = None
    english_title: str | None = None
    year: str | None = None
    genres: tuple[str, ...] = ()
    filmweb_href: str | None = None
    imdb_href: str | None = None
    subscriptions: tuple[str, ...] = ()
    rents: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()


def _first_text(soup: BeautifulSoup, selector: str) -> str | None:
    el = soup.select_one(selector)
    if el is None:
        return None
    text = el.get_text(strip=True)
    return text or None


def _first_href(soup: BeautifulSoup, selector: str) -> str | None:
    el = soup.select_one(selector)
    if not isinstance(el, Tag):
        return None
    href = el.get("href")
    if isinstance(href, list):
        href = href[0] if href else None
    if not isinstance(href, str):
        return None
    return href.strip() or None


def _vod_provider(el: Tag) -> str | None:
    href = el.get("href")
    if not isinstance(href, str):
        return None
    m = _VOD_RE.search(href)
    return m.group(1) if m else None


def _vods(soup: BeautifulSoup) -> tuple[list[str], list[str]]:
    subscriptions: list[str] = []
    rents: list[str] = []
    for el in soup.select("#sc a"):
        label = el.get_text(strip=True)
        if label == SUBSCRIPTION_LABEL:
            target = subscriptions
        elif label == RENT_LABEL:
            target = rents
        else:
            continue
        provider = _vod_provider(el)
        if provider is not None:
            target.append(provider)
    return subscriptions, rents


def parse_page(html: str) -> PageFields:
    if not html or not html.strip():
        raise ExtractionError("empty upstream document")

    soup = BeautifulSoup(html, "html.parser")

    polish_title = _first_text(soup, "h1")
    english_title = _first_text(soup, "h2")
    year = _first_text(soup, ".yr")
    genres = tuple(
        text for text in (a.get_text(strip=True) for a in soup.select(".ge a")) if text
    )
    subscriptions, rents = _vods(soup)

    fields = {
        "polish_title": polish_title,
        "english_title": english_title,
        "year": year,
    }
    missing = tuple(name for name, value in fields.items() if value is None)

    return PageFields(
        polish_title=polish_title,
        english_title=english_title,
        year=year,
        genres=genres,
        filmweb_href=_first_href(soup, "a.fw"),
        imdb_href=_first_href(soup, "a.im"),
        subscriptions=tuple(subscriptions),
        rents=tuple(rents),
        missing=missing,
    )
