import asyncio
import os
from io import BytesIO

from pydantic import ValidationError
from reportlab import rl_config
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from playlist_card_forge.backend.deck import CardRecord
from playlist_card_forge.backend.layout import (
    BACK, DEFAULT_GEOMETRY, FRONT, build_layout_plan, page_count, registration_points,
)
from playlist_card_forge.backend.qr import encode_qr_async

# --- CONFIGURATION ---
MM_TO_PT = 72 / 25.4
DEFAULT_FILENAME = "playlist-qr-cards.pdf"

# Defaults
DEFAULT_CUT_LINE_THICKNESS_MM = 0.2
DEFAULT_CUT_LINE_COLOR = "#000000"
CROSS_SIZE_MM = 2

TEXT_FONT = "Helvetica"
TEXT_SIZE = 14
YEAR_FONT = "Helvetica-Bold"
YEAR_SIZE = 42
MIN_YEAR_SIZE = 12
TEXT_INSET_MM = 10
LINE_SPACING = 1.15

# Baselines relative to the cell centre, positive is further down the page
ARTIST_BASELINE_MM = -15
YEAR_BASELINE_MM = 5
SONG_BASELINE_MM = 20

QR_SIZE_MM = 40


class CardRecordError(ValueError):
    def __init__(self, index, message):
        self.index = index
        super().__init__(f"Card {index}: {message}")


class CardEngine:
    def __init__(self, progress_callback=None, encoder=None, geometry=None,
                 cut_line_color=DEFAULT_CUT_LINE_COLOR, cut_line_thickness_mm=DEFAULT_CUT_LINE_THICKNESS_MM):
        self.progress_callback = progress_callback
        self.encoder = encoder or encode_qr_async
        self.geometry = geometry or DEFAULT_GEOMETRY
        self.cut_line_color = HexColor(cut_line_color)
        self.cut_line_thickness_mm = cut_line_thickness_mm

    def log(self, message):
        if self.progress_callback:
            self.progress_callback(message)
        else:
            print(message)

    def check_cards(self, cards):
        """Validate every card up front so nothing is drawn for a broken deck."""
        checked = []
        for index, card in enumerate(cards):
            if isinstance(card, dict):
                try:
                    card = CardRecord.model_validate(card)
                except ValidationError as e:
                    fields = ", ".join(".".join(str(p) for p in err['loc']) for err in e.errors())
                    raise CardRecordError(index, f"invalid record ({fields})") from e
            if not isinstance(card, CardRecord):
                raise CardRecordError(index, f"expected a card record, got {type(card).__name__}")
            if not card.url or not card.url.strip():
                raise CardRecordError(index, "missing url")
            checked.append(card)
        return checked

    def page_size(self):
        return self.geometry.page_width * MM_TO_PT, self.geometry.page_height * MM_TO_PT

    def to_pdf(self, x_mm, y_mm):
        # Layout works top-down in mm, reportlab bottom-up in points
        return x_mm * MM_TO_PT, (self.geometry.page_height - y_mm) * MM_TO_PT

    def draw_registration_marks(self, c, face):
        c.setLineWidth(self.cut_line_thickness_mm * MM_TO_PT)
        c.setStrokeColor(self.cut_line_color)
        half = CROSS_SIZE_MM / 2
        for x, y in registration_points(face, self.geometry):
            c.line(*self.to_pdf(x - half, y), *self.to_pdf(x + half, y))
            c.line(*self.to_pdf(x, y - half), *self.to_pdf(x, y + half))

    def text_width(self):
        return (self.geometry.card_width - TEXT_INSET_MM) * MM_TO_PT

    def wrap(self, text, font, size):
        max_width = self.text_width()
        lines = []
        for line in simpleSplit(text, font, size, max_width):
            # simpleSplit leaves single words wider than the cell intact
            while stringWidth(line, font, size) > max_width and len(line) > 1:
                cut = len(line) - 1
                while cut > 1 and stringWidth(line[:cut], font, size) > max_width:
                    cut -= 1
                lines.append(line[:cut])
                line = line[cut:]
            lines.append(line)
        return lines or [""]

    def fit_size(self, text, font, size, min_size):
        while size > min_size and stringWidth(text, font, size) > self.text_width():
            size -= 1
        return size

    def draw_lines(self, c, lines, center_x_mm, baseline_mm, font, size, upward=False):
        """Draw centred lines starting at baseline_mm, stacking down (or up)."""
        c.setFont(font, size)
        step = size * LINE_SPACING
        ordered = list(reversed(lines)) if upward else lines
        x_pt, y_pt = self.to_pdf(center_x_mm, baseline_mm)
        for i, line in enumerate(ordered):
            offset = i * step
            c.drawCentredString(x_pt, y_pt + offset if upward else y_pt - offset, line)

    def draw_front_face(self, c, card, cell):
        cx, cy = cell.center
        artist_lines = self.wrap(card.artist, TEXT_FONT, TEXT_SIZE)
        self.draw_lines(c, artist_lines, cx, cy + ARTIST_BASELINE_MM, TEXT_FONT, TEXT_SIZE, upward=True)
        year_size = self.fit_size(card.release_year, YEAR_FONT, YEAR_SIZE, MIN_YEAR_SIZE)
        self.draw_lines(c, [card.release_year], cx, cy + YEAR_BASELINE_MM, YEAR_FONT, year_size)
        song_lines = self.wrap(card.song_name, TEXT_FONT, TEXT_SIZE)
        self.draw_lines(c, song_lines, cx, cy + SONG_BASELINE_MM, TEXT_FONT, TEXT_SIZE)

    def draw_back_face(self, c, image, cell):
        qr_x = cell.x + (cell.width - QR_SIZE_MM) / 2
        qr_top = cell.y + (cell.height - QR_SIZE_MM) / 2
        x_pt, y_pt = self.to_pdf(qr_x, qr_top + QR_SIZE_MM)
        size_pt = QR_SIZE_MM * MM_TO_PT
        c.drawImage(ImageReader(image), x_pt, y_pt, width=size_pt, height=size_pt)

    async def render(self, cards, c):
        """Draw every page of the deck onto canvas ``c``, front then back per sheet."""
        cards = self.check_cards(cards)
        plan = build_layout_plan(len(cards), self.geometry)
        total_pages = len(plan)
        for page_number, page in enumerate(plan, start=1):
            label = "Fronts" if page.face == FRONT else "Backs"
            self.log(f"Generating page {page_number}/{total_pages} ({label})...")
            self.draw_registration_marks(c, page.face)
            for entry in page.entries:
                card = cards[entry.card_index]
                if page.face == BACK:
                    # One card at a time so the canvas sees draws in index order
                    image = await self.encoder(card.url)
                    self.draw_back_face(c, image, entry.cell)
                else:
                    self.draw_front_face(c, card, entry.cell)
            c.showPage()
        return total_pages

    async def generate(self, cards):
        if not cards:
            self.log("No cards to print.")
            return None
        rl_config.pageCompression = 1
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=self.page_size())
        c.setTitle("Playlist QR Cards")
        self.log(f"Building PDF: {len(cards)} cards on {page_count(len(cards), self.geometry)} pages...")
        await self.render(cards, c)
        c.save()
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    def generate_pdf(self, cards):
        return asyncio.run(self.generate(cards))

    def write_pdf(self, cards, output_dir, filename=DEFAULT_FILENAME):
        pdf_bytes = self.generate_pdf(cards)
        if pdf_bytes is None:
            return None
        os.makedirs(output_dir, exist_ok=True)
        output_path = os.path.join(output_dir, filename)
        with open(output_path, 'wb') as f:
            f.write(pdf_bytes)
        self.log(f"Saved {output_path}")
        return output_path

    def get_deck_structure(self, cards):
        """Preview of the sheets: 12 slots per page, empty string for unused cells."""
        cards = self.check_cards(cards)
        per_page = self.geometry.cards_per_page
        pages = []
        for page in build_layout_plan(len(cards), self.geometry):
            grid = [""] * per_page
            for entry in page.entries:
                card = cards[entry.card_index]
                slot = entry.position.row * self.geometry.cards_per_row + entry.position.col
                grid[slot] = card.url if page.face == BACK else f"{card.artist} - {card.release_year} - {card.song_name}"
            pages.append({"type": page.face, "group": page.group_index, "cards": grid})
        return pages
