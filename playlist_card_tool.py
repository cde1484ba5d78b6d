import argparse
import os
import sys

from tqdm import tqdm

from playlist_card_forge.backend.deck import extract_playlist_id, fetch_spotify_playlist, load_deck_file
from playlist_card_forge.backend.engine import (
    CardEngine, DEFAULT_CUT_LINE_COLOR, DEFAULT_CUT_LINE_THICKNESS_MM, DEFAULT_FILENAME,
)
from playlist_card_forge.backend.layout import PAGE_PADDING_MM, SheetGeometry
from playlist_card_forge.backend.qr import encode_qr_async


def parse_input(input_str, access_token=None):
    """Cards from a JSON/CSV deck file, or from a Spotify playlist URL, URI or id."""
    if os.path.exists(input_str):
        cards = load_deck_file(input_str)
        return cards, {'name': os.path.splitext(os.path.basename(input_str))[0], 'author': None}
    playlist_id = extract_playlist_id(input_str)
    if not playlist_id:
        raise ValueError(f"Not a deck file or Spotify playlist: {input_str}")
    if not access_token:
        raise ValueError("A Spotify access token is required to fetch playlists (--token or SPOTIFY_ACCESS_TOKEN)")
    return fetch_spotify_playlist(playlist_id, access_token, log=tqdm.write)


def run(args):
    cards, metadata = parse_input(args.input, args.token)
    if not cards:
        print("No cards found to print.")
        return None

    print(f"\nProcessing: {metadata['name']}")
    print(f"Cards: {len(cards)}")

    geometry = SheetGeometry(padding=args.padding_mm)
    with tqdm(total=len(cards), desc="Encoding QR codes", unit="card", leave=False) as pbar:
        async def encoder(url):
            image = await encode_qr_async(url)
            pbar.update(1)
            return image

        engine = CardEngine(
            progress_callback=tqdm.write,
            encoder=encoder,
            geometry=geometry,
            cut_line_color=args.cut_line_color,
            cut_line_thickness_mm=args.cut_line_thickness,
        )
        output_path = engine.write_pdf(cards, args.output_dir, args.filename)

    print(f"\nDone! File saved to: {output_path}")
    return output_path


def main(argv=None):
    parser = argparse.ArgumentParser(description="Playlist QR Card Printer CLI")
    parser.add_argument('--input', help='JSON or CSV deck file, or a Spotify playlist URL, URI or id')
    parser.add_argument('--token', default=os.getenv("SPOTIFY_ACCESS_TOKEN"),
                        help='Spotify access token for playlist input (default: $SPOTIFY_ACCESS_TOKEN)')
    parser.add_argument('--output_dir', default="Output", help='Directory where the PDF is saved (default: "Output").')
    parser.add_argument('--filename', default=DEFAULT_FILENAME, help=f'PDF file name (default: "{DEFAULT_FILENAME}").')
    parser.add_argument('--padding_mm', type=float, default=PAGE_PADDING_MM, help='Page padding around the card grid in mm')
    parser.add_argument('--cut_line_color', default=DEFAULT_CUT_LINE_COLOR, help='Hex colour of the cut marks')
    parser.add_argument('--cut_line_thickness', type=float, default=DEFAULT_CUT_LINE_THICKNESS_MM,
                        help='Cut mark thickness in mm')
    args = parser.parse_args(argv)

    if not args.input:
        parser.print_help()
        return 2
    try:
        run(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
