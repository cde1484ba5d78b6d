"""Sheet geometry, pagination and card placement.

Nothing in here draws. Given a deck length and a SheetGeometry it works out
which card lands in which cell of which page. Coordinates are millimetres
measured from the top-left corner of the page.

Backs use the column-flip rule: a card keeps its row and its index, only
the column is mirrored, so after a long-edge duplex print the back of every
card sits behind its own front.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

# --- CONFIGURATION ---
PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0

# A4 with a 3x4 grid and ~10mm to every side:
# min(floor((210-20)/3), floor((297-20)/4)) = 62 for square cards,
# which leaves (210-3*62)/2 = 12 on the x axis.
CARD_WIDTH_MM = 62.0
CARD_HEIGHT_MM = 62.0
PAGE_PADDING_MM = 12.0

CARDS_PER_ROW = 3
CARDS_PER_COLUMN = 4
CARDS_PER_PAGE = CARDS_PER_ROW * CARDS_PER_COLUMN

FRONT = "front"
BACK = "back"
FACES = (FRONT, BACK)


class LayoutError(ValueError):
    pass


@dataclass(frozen=True)
class GridPosition:
    row: int
    col: int


@dataclass(frozen=True)
class CellRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass(frozen=True)
class SheetGeometry:
    page_width: float = PAGE_WIDTH_MM
    page_height: float = PAGE_HEIGHT_MM
    card_width: float = CARD_WIDTH_MM
    card_height: float = CARD_HEIGHT_MM
    padding: float = PAGE_PADDING_MM
    cards_per_row: int = CARDS_PER_ROW
    cards_per_column: int = CARDS_PER_COLUMN

    def __post_init__(self):
        if self.cards_per_row < 1 or self.cards_per_column < 1:
            raise LayoutError("Grid needs at least one row and one column")
        if self.card_width <= 0 or self.card_height <= 0:
            raise LayoutError("Card size must be positive")
        if self.padding < 0:
            raise LayoutError("Padding cannot be negative")
        if self.padding + self.grid_width > self.page_width:
            raise LayoutError(
                f"{self.cards_per_row} cards of {self.card_width}mm plus {self.padding}mm padding "
                f"do not fit a {self.page_width}mm wide page"
            )
        if self.padding + self.grid_height > self.page_height:
            raise LayoutError(
                f"{self.cards_per_column} cards of {self.card_height}mm plus {self.padding}mm padding "
                f"do not fit a {self.page_height}mm high page"
            )

    @property
    def cards_per_page(self) -> int:
        return self.cards_per_row * self.cards_per_column

    @property
    def grid_width(self) -> float:
        return self.cards_per_row * self.card_width

    @property
    def grid_height(self) -> float:
        return self.cards_per_column * self.card_height

    def grid_origin(self, face: str) -> Tuple[float, float]:
        """Top-left corner of the card grid on the given face.

        The back grid is the front grid reflected about the vertical centre
        line of the page. For a horizontally centred grid both are the same.
        """
        if face == FRONT:
            return self.padding, self.padding
        if face == BACK:
            return self.page_width - self.padding - self.grid_width, self.padding
        raise LayoutError(f"Unknown face: {face!r}")


DEFAULT_GEOMETRY = SheetGeometry()


@dataclass(frozen=True)
class PlacementEntry:
    face: str
    card_index: int
    local_index: int
    position: GridPosition
    cell: CellRect


@dataclass(frozen=True)
class PagePlan:
    face: str
    group_index: int
    entries: Tuple[PlacementEntry, ...]


def chunk(items: Sequence, size: int = CARDS_PER_PAGE) -> List[list]:
    if size < 1:
        raise LayoutError(f"Chunk size must be at least 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def group_count(deck_length: int, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> int:
    per_page = geometry.cards_per_page
    return (deck_length + per_page - 1) // per_page


def page_count(deck_length: int, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> int:
    return group_count(deck_length, geometry) * 2


def front_position(index: int, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> GridPosition:
    if not 0 <= index < geometry.cards_per_page:
        raise LayoutError(f"Index {index} is outside a {geometry.cards_per_page} card page")
    return GridPosition(row=index // geometry.cards_per_row, col=index % geometry.cards_per_row)


def mirror_position(position: GridPosition, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> GridPosition:
    return GridPosition(row=position.row, col=(geometry.cards_per_row - 1) - position.col)


def back_position(index: int, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> GridPosition:
    return mirror_position(front_position(index, geometry), geometry)


def position_for(face: str, index: int, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> GridPosition:
    if face == FRONT:
        return front_position(index, geometry)
    if face == BACK:
        return back_position(index, geometry)
    raise LayoutError(f"Unknown face: {face!r}")


def cell_rect(position: GridPosition, face: str = FRONT, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> CellRect:
    origin_x, origin_y = geometry.grid_origin(face)
    return CellRect(
        x=origin_x + position.col * geometry.card_width,
        y=origin_y + position.row * geometry.card_height,
        width=geometry.card_width,
        height=geometry.card_height,
    )


def registration_points(face: str = FRONT, geometry: SheetGeometry = DEFAULT_GEOMETRY) -> List[Tuple[float, float]]:
    """Every grid line intersection, corners included, column by column.

    Front and back marks coincide only for a horizontally centred grid.
    """
    origin_x, origin_y = geometry.grid_origin(face)
    return [
        (origin_x + col * geometry.card_width, origin_y + row * geometry.card_height)
        for col in range(geometry.cards_per_row + 1)
        for row in range(geometry.cards_per_column + 1)
    ]


def plan_page(face: str, group_index: int, group_length: int,
              geometry: SheetGeometry = DEFAULT_GEOMETRY) -> PagePlan:
    first_index = group_index * geometry.cards_per_page
    entries = []
    for local_index in range(group_length):
        position = position_for(face, local_index, geometry)
        entries.append(PlacementEntry(
            face=face,
            card_index=first_index + local_index,
            local_index=local_index,
            position=position,
            cell=cell_rect(position, face, geometry),
        ))
    return PagePlan(face=face, group_index=group_index, entries=tuple(entries))


def build_layout_plan(deck_length: int, geometry: Optional[SheetGeometry] = None) -> Tuple[PagePlan, ...]:
    """Front page then back page for every group of cards, in deck order."""
    geometry = geometry or DEFAULT_GEOMETRY
    if deck_length < 0:
        raise LayoutError(f"Deck length cannot be negative, got {deck_length}")
    pages = []
    for group_index, group in enumerate(chunk(range(deck_length), geometry.cards_per_page)):
        for face in FACES:
            pages.append(plan_page(face, group_index, len(group), geometry))
    return tuple(pages)
