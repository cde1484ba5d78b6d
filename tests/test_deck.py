import json

import pytest

from playlist_card_forge.backend import deck
from playlist_card_forge.backend.deck import (
    CardRecord, DeckImportError, extract_playlist_id, extract_release_year,
    fetch_spotify_playlist, load_csv_deck, load_deck_file, load_json_deck,
)

TRACK = {"number": "1", "artist": "The Beatles", "songName": "Yesterday",
         "releaseYear": "1965", "url": "https://open.spotify.com/track/abc123"}


def test_card_record_uses_camel_case_on_the_wire():
    card = CardRecord.model_validate(TRACK)
    assert card.song_name == "Yesterday"
    assert card.model_dump(by_alias=True) == {
        "url": TRACK["url"], "songName": "Yesterday", "artist": "The Beatles", "releaseYear": "1965",
    }


def test_card_record_is_immutable():
    card = CardRecord.model_validate(TRACK)
    with pytest.raises(Exception):
        card.url = "https://example.com"


def test_load_json_deck_keeps_order():
    second = dict(TRACK, songName="Help!", number="2")
    cards = load_json_deck(json.dumps([TRACK, second]))
    assert [c.song_name for c in cards] == ["Yesterday", "Help!"]
    assert all(type(c) is CardRecord for c in cards)


def test_load_json_deck_allows_missing_number():
    track = {k: v for k, v in TRACK.items() if k != "number"}
    assert len(load_json_deck(json.dumps([track]))) == 1


@pytest.mark.parametrize("text, message", [
    ("{not json", "Invalid JSON syntax"),
    ('{"a": 1}', "JSON array"),
    ('[1]', "Entry 0"),
])
def test_load_json_deck_rejects_bad_input(text, message):
    with pytest.raises(DeckImportError, match=message):
        load_json_deck(text)


def test_load_json_deck_names_the_broken_entry():
    broken = dict(TRACK)
    del broken["url"]
    with pytest.raises(DeckImportError, match="Entry 1: url"):
        load_json_deck(json.dumps([TRACK, broken]))


def test_load_json_deck_requires_string_year():
    with pytest.raises(DeckImportError, match="Entry 0"):
        load_json_deck(json.dumps([dict(TRACK, releaseYear=1965)]))


def test_load_csv_deck(tmp_path):
    path = tmp_path / "deck.csv"
    path.write_text(
        "artist,songName,releaseYear,url\n"
        "The Beatles,Yesterday,1965,https://open.spotify.com/track/abc123\n"
        "ABBA,Waterloo,,https://open.spotify.com/track/def456\n",
        encoding="utf-8",
    )
    cards = load_deck_file(str(path))
    assert [c.artist for c in cards] == ["The Beatles", "ABBA"]
    assert cards[1].release_year == ""


def test_load_csv_deck_names_the_broken_row(tmp_path):
    path = tmp_path / "deck.csv"
    path.write_text("artist,songName\nThe Beatles,Yesterday\n", encoding="utf-8")
    with pytest.raises(DeckImportError, match="Row 1"):
        load_csv_deck(str(path))


def test_load_deck_file_dispatches_on_extension(tmp_path):
    json_path = tmp_path / "deck.json"
    json_path.write_text(json.dumps([TRACK]), encoding="utf-8")
    assert load_deck_file(str(json_path))[0].artist == "The Beatles"
    with pytest.raises(DeckImportError):
        load_deck_file(str(tmp_path / "deck.txt"))


@pytest.mark.parametrize("value, expected", [
    ("https://open.spotify.com/playlist/37i9dQZF1DX4WYpdgoIcn6?si=abc", "37i9dQZF1DX4WYpdgoIcn6"),
    ("spotify:playlist:37i9dQZF1DX4WYpdgoIcn6", "37i9dQZF1DX4WYpdgoIcn6"),
    ("  37i9dQZF1DX4WYpdgoIcn6 ", "37i9dQZF1DX4WYpdgoIcn6"),
    ("https://open.spotify.com/album/abc", None),
    ("not an id!", None),
])
def test_extract_playlist_id(value, expected):
    assert extract_playlist_id(value) == expected


@pytest.mark.parametrize("value, expected", [
    ("1965-08-06", "1965"),
    ("1971", "1971"),
    ("", "Unknown"),
    (None, "Unknown"),
])
def test_extract_release_year(value, expected):
    assert extract_release_year(value) == expected


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        return self.payload


def track_item(track_id, name, artists, release_date):
    return {"track": {"id": track_id, "name": name, "artists": [{"name": a} for a in artists],
                      "album": {"release_date": release_date}}}


def test_fetch_spotify_playlist_follows_paging(monkeypatch):
    first = {
        "name": "Party",
        "owner": {"display_name": "dj"},
        "tracks": {
            "items": [
                track_item("t1", "Yesterday", ["The Beatles"], "1965-08-06"),
                {"track": None},
                {"track": {"id": None, "name": "Local file"}},
            ],
            "next": "https://api.spotify.com/v1/playlists/p1/tracks?offset=100",
        },
    }
    second = {"items": [track_item("t2", "Under Pressure", ["Queen", "David Bowie"], None)], "next": None}
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append((url, headers))
        return FakeResponse(200, first if len(calls) == 1 else second)

    monkeypatch.setattr(deck.requests, "get", fake_get)
    cards, meta = fetch_spotify_playlist("p1", "token", log=lambda msg: None)

    assert meta == {"name": "Party", "author": "dj"}
    assert [c.url for c in cards] == ["https://open.spotify.com/track/t1", "https://open.spotify.com/track/t2"]
    assert cards[1].artist == "Queen, David Bowie"
    assert cards[1].release_year == "Unknown"
    assert calls[0][1] == {"Authorization": "Bearer token"}
    assert calls[1][0].endswith("offset=100")


@pytest.mark.parametrize("status, message", [
    (404, "Playlist not found"),
    (401, "Authentication expired"),
    (500, "Status 500"),
])
def test_fetch_spotify_playlist_errors(monkeypatch, status, message):
    monkeypatch.setattr(deck.requests, "get", lambda *a, **kw: FakeResponse(status))
    with pytest.raises(DeckImportError, match=message):
        fetch_spotify_playlist("p1", "token", log=lambda msg: None)
