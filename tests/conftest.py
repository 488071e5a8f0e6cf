import threading
from typing import Dict, List, Optional

import pytest

from fieldlog.config import config
from fieldlog.exceptions import PhotoLookupFailed, TaxonomyLookupFailed


ROBIN_MARKUP = """{{Taxobox
| name = European robin
| regnum = [[Animal]]ia
| phylum = [[Chordate|Chordata]]
| classis = [[bird|Aves]]
| ordo = [[Passeriformes]]
| familia = [[Muscicapidae]]
}}"""

ROBIN_EXTRACT = (
    "<p>The <b>European robin</b> (<i>Erithacus rubecula</i>), known simply as the "
    "<b>robin</b> or <b>robin redbreast</b> in the British Isles, is a small "
    "insectivorous passerine bird.</p>"
)

FOX_MARKUP = """{{Taxobox
| regnum = [[Animal]]ia
| classis = [[Mammal]]ia
| ordo = [[Carnivora]]
}}"""

FOX_EXTRACT = "<p>The <b>red fox</b> (<i>Vulpes vulpes</i>) is the largest of the true foxes.</p>"

FUCHSIA_MARKUP = """{{Taxobox
| regnum = [[Plant]]ae
| unranked_divisio = [[Angiosperms]]
| ordo = [[Myrtales]]
}}"""

FUCHSIA_EXTRACT = "<p><i>Fuchsia magellanica</i>, the <b>hummingbird fuchsia</b> or <b>hardy fuchsia</b>, is a species of flowering plant.</p>"

DISAMBIGUATION_EXTRACT = "<p><i>Mercury</i> may refer to:</p>"


def make_page(title: str, pageid: int, markup: str, extract: str) -> Dict:
    """Build one page of an encyclopedia response."""
    return {
        "pageid": pageid,
        "ns": 0,
        "title": title,
        "extract": extract,
        "revisions": [{"contentformat": "text/x-wiki", "*": markup}],
        "canonicalurl": f"https://en.wikipedia.org/wiki/{title.replace(' ', '_')}",
    }


def make_response(pages: List[Dict], redirects: Optional[List[Dict]] = None) -> Dict:
    """Wrap pages into an encyclopedia response keyed by page id."""
    query = {"pages": {str(page["pageid"]): page for page in pages}}
    if redirects:
        query["redirects"] = redirects
    return {"batchcomplete": "", "query": query}


def make_photo_response(count: int = 2) -> Dict:
    return {
        "stat": "ok",
        "photos": {
            "page": 1,
            "photo": [
                {
                    "id": str(1000 + i),
                    "owner": "12345@N00",
                    "title": f"photo {i}" if i else "",
                    "url_q": f"https://live.staticflickr.com/1/{1000 + i}_q.jpg",
                }
                for i in range(count)
            ],
        },
    }


class FakeTaxonomyClient:
    """Encyclopedia client serving canned pages by requested name.

    Names without a page are left out of the response. An optional gate
    holds every request until it is set.
    """

    def __init__(self, pages: Optional[Dict[str, Dict]] = None, redirects=None, fail: bool = False):
        self.pages = pages or {}
        self.redirects = redirects or []
        self.fail = fail
        self.calls: List[List[str]] = []
        self.gate: Optional[threading.Event] = None

    def fetch_taxonomy(self, names):
        self.calls.append(list(names))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise TaxonomyLookupFailed("connection refused", names)
        pages = [self.pages[name] for name in names if name in self.pages]
        redirects = [pair for pair in self.redirects if pair["from"] in names]
        return make_response(pages, redirects)


class FakePhotoClient:
    """Photo client returning the same canned response for every name."""

    def __init__(self, response: Optional[Dict] = None, fail: bool = False):
        self.response = response if response is not None else make_photo_response()
        self.fail = fail
        self.calls: List[str] = []

    def fetch_photos(self, name):
        self.calls.append(name)
        if self.fail:
            raise PhotoLookupFailed("photo service unavailable", [name])
        return self.response


@pytest.fixture
def robin_page():
    return make_page("European robin", 10, ROBIN_MARKUP, ROBIN_EXTRACT)


@pytest.fixture
def fuchsia_page():
    return make_page("Fuchsia magellanica", 20, FUCHSIA_MARKUP, FUCHSIA_EXTRACT)


@pytest.fixture
def isolated_cache(tmp_path):
    """Point the lookup cache at a temporary directory."""
    original_base = config.cache_base_dir
    original_dir = config.cache_dir
    original_use_cache = config.use_cache
    config.cache_base_dir = str(tmp_path / "cache")
    config.cache_dir = str(tmp_path / "cache")
    config.use_cache = True
    try:
        yield tmp_path / "cache"
    finally:
        from fieldlog.cache_manager import _close_cache
        _close_cache()
        config.cache_base_dir = original_base
        config.cache_dir = original_dir
        config.use_cache = original_use_cache
