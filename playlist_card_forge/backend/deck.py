import csv
import json
import os
import re
from typing import List, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

SPOTIFY_API_BASE = "https://api.spotify.com/v1"
SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"
PLAYLIST_FIELDS = "name,owner(display_name),tracks(next,items(track(id,name,artists(name),album(release_date))))"
REQUEST_TIMEOUT = 10
UNKNOWN_YEAR = "Unknown"


class DeckImportError(ValueError):
    pass


class CardRecord(BaseModel):
    """One printed card. Field names are camelCase on the wire."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    song_name: str = Field(alias="songName")
    artist: str
    release_year: str = Field(default=UNKNOWN_YEAR, alias="releaseYear")


class ImportedTrack(CardRecord):
    release_year: str = Field(alias="releaseYear")
    # Row number from the exported track table; not printed.
    number: Optional[str] = None


def _format_validation_error(error):
    problems = []
    for item in error.errors():
        field = ".".join(str(part) for part in item['loc']) or "record"
        problems.append(f"{field}: {item['msg']}")
    return "; ".join(problems)


def load_json_deck(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DeckImportError(f"Invalid JSON syntax: {e}") from e
    if not isinstance(data, list):
        raise DeckImportError("Expected a JSON array of tracks")

    cards = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise DeckImportError(f"Entry {i}: expected an object with artist, songName, releaseYear and url")
        try:
            track = ImportedTrack.model_validate(item, strict=True)
        except ValidationError as e:
            raise DeckImportError(f"Entry {i}: {_format_validation_error(e)}") from e
        cards.append(CardRecord(url=track.url, song_name=track.song_name,
                                artist=track.artist, release_year=track.release_year))
    return cards


def load_csv_deck(file_path):
    cards = []
    with open(file_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        for i, row in enumerate(reader):
            try:
                cards.append(CardRecord.model_validate(row))
            except ValidationError as e:
                raise DeckImportError(f"Row {i + 1}: {_format_validation_error(e)}") from e
    return cards


def load_deck_file(file_path):
    ext = os.path.splitext(file_path)[1].lower()
    if ext == '.json':
        with open(file_path, 'r', encoding='utf-8') as f:
            return load_json_deck(f.read())
    if ext == '.csv':
        return load_csv_deck(file_path)
    raise DeckImportError(f"Unsupported deck file type: {file_path}")


def extract_playlist_id(value):
    """Playlist id from an open.spotify.com URL, a spotify: URI or a bare id."""
    trimmed = value.strip()
    match = re.search(r'spotify\.com/playlist/([a-zA-Z0-9]+)', trimmed)
    if match:
        return match.group(1)
    match = re.search(r'spotify:playlist:([a-zA-Z0-9]+)', trimmed)
    if match:
        return match.group(1)
    if re.fullmatch(r'[a-zA-Z0-9]+', trimmed):
        return trimmed
    return None


def extract_release_year(release_date):
    if not release_date:
        return UNKNOWN_YEAR
    return release_date.split('-')[0]


def _spotify_get(url, access_token, params=None):
    response = requests.get(url, params=params, headers={'Authorization': f"Bearer {access_token}"},
                            timeout=REQUEST_TIMEOUT)
    if response.status_code == 404:
        raise DeckImportError("Playlist not found. Please check the URL or ID.")
    if response.status_code == 401:
        raise DeckImportError("Authentication expired. Please log in again.")
    if response.status_code != 200:
        raise DeckImportError(f"Failed to fetch playlist (Status {response.status_code})")
    return response.json()


def _track_to_card(track):
    artists = ", ".join(a['name'] for a in track.get('artists') or [] if a.get('name')) or "Unknown Artist"
    album = track.get('album') or {}
    return CardRecord(
        url=SPOTIFY_TRACK_URL.format(track_id=track['id']),
        song_name=track.get('name') or "Unknown Track",
        artist=artists,
        release_year=extract_release_year(album.get('release_date')),
    )


def fetch_spotify_playlist(playlist_id, access_token, log=print) -> Tuple[List[CardRecord], dict]:
    log(f"Fetching playlist {playlist_id} from Spotify...")
    data = _spotify_get(f"{SPOTIFY_API_BASE}/playlists/{playlist_id}", access_token,
                        params={'fields': PLAYLIST_FIELDS})
    playlist_name = data.get('name') or "Unknown Playlist"
    owner = (data.get('owner') or {}).get('display_name') or "Unknown"

    cards = []
    page = data.get('tracks') or {}
    while True:
        for item in page.get('items') or []:
            track = item.get('track')
            # Local files and removed tracks have no id to link to
            if not track or not track.get('id'):
                continue
            cards.append(_track_to_card(track))
        if not page.get('next'):
            break
        page = _spotify_get(page['next'], access_token)

    if not cards:
        log(f"Warning: No tracks found in playlist {playlist_id}")
    log(f"Found {len(cards)} tracks for {playlist_name}.")
    return cards, {'name': playlist_name, 'author': owner}
