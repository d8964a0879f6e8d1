from pathlib import Path

import pytest

from tubefetch.extractors import ExtractorCaches

DATA_DIR = Path(__file__).parent / "data"


def read_fixture(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def player_js() -> str:
    return read_fixture("player.js")


@pytest.fixture
def watch_html() -> str:
    return read_fixture("watch.html")


@pytest.fixture
def caches() -> ExtractorCaches:
    """Fresh caches so tests never share player scripts or watch pages."""
    return ExtractorCaches()
