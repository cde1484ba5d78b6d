import pytest
from PIL import Image

from playlist_card_forge.backend.deck import CardRecord


class RecordingCanvas:
    """Stands in for a reportlab canvas and remembers every call per page."""

    def __init__(self):
        self.pages = [[]]

    def _record(self, name, *args, **kwargs):
        self.pages[-1].append((name, args, kwargs))

    def setLineWidth(self, width):
        self._record("setLineWidth", width)

    def setStrokeColor(self, color):
        self._record("setStrokeColor", color)

    def setFont(self, name, size):
        self._record("setFont", name, size)

    def line(self, x1, y1, x2, y2):
        self._record("line", x1, y1, x2, y2)

    def drawCentredString(self, x, y, text):
        self._record("drawCentredString", x, y, text)

    def drawImage(self, image, x, y, width=None, height=None):
        self._record("drawImage", image, x, y, width=width, height=height)

    def showPage(self):
        self.pages.append([])

    @property
    def finished_pages(self):
        return self.pages[:-1]

    def calls(self, page, name):
        return [call for call in self.finished_pages[page] if call[0] == name]


@pytest.fixture
def recording_canvas():
    return RecordingCanvas()


@pytest.fixture
def fake_encoder():
    encoded = []

    async def encoder(url):
        encoded.append(url)
        return Image.new("RGB", (8, 8), "white")

    encoder.encoded = encoded
    return encoder


def make_card(i):
    return CardRecord(
        url=f"https://open.spotify.com/track/track{i}",
        song_name=f"Song {i}",
        artist=f"Artist {i}",
        release_year=str(1960 + i),
    )


@pytest.fixture
def make_deck():
    def factory(n):
        return [make_card(i) for i in range(n)]
    return factory


@pytest.fixture
def beatles_card():
    return CardRecord(
        artist="The Beatles",
        song_name="Yesterday",
        release_year="1965",
        url="https://open.spotify.com/track/abc123",
    )
