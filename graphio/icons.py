"""
Icon recovery and atlas packing.

The renderer exports every icon twice, once over a black and once over a
white background, as 32x32 RGB images::

    <icon_root>/dark/<category>/<id>.png
    <icon_root>/light/<category>/<id>.png

Compositing a colour ``c`` with alpha ``a`` gives ``d = a*c`` on black and
``l = a*c + (1 - a)`` on white, so ``a = d - l + 1`` per channel and ``c`` can
be solved from either render.  Recovered RGBA icons are deduplicated by their
exact pixel content and packed row-major into a square-ish grid.
"""

from __future__ import annotations

import io
import math
from contextlib import suppress
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import numpy as np
from PIL import Image

from .entities import AnyID, GameData, Icon, Metadata, TileMetadata
from .errors import EmptyDataSet, ImageDimensionMismatch
from .staging import write_file_safely

TILE_WIDTH = 32
TILE_HEIGHT = 32
ICON_EXTENSION = ".png"
DARK_ROOT = "dark"
LIGHT_ROOT = "light"
ATLAS_STEM = "game_icons"

# Collection name -> renderer subdirectory, in processing order.
CATEGORY_DIRS: Tuple[Tuple[str, str], ...] = (
    ("items", "items"),
    ("fluids", "fluids"),
    ("recipes", "recipes"),
    ("machines", "entities"),
    ("beacons", "entities"),
)


def load_icon(path: Path) -> np.ndarray:
    with Image.open(path) as image:
        rgb = image.convert("RGB")
    if rgb.size != (TILE_WIDTH, TILE_HEIGHT):
        raise ImageDimensionMismatch(
            f"expected {path} to be {TILE_WIDTH}x{TILE_HEIGHT}, got {rgb.size[0]}x{rgb.size[1]}"
        )
    return np.asarray(rgb, dtype=np.uint8)


def recover_alpha(dark: np.ndarray, light: np.ndarray) -> np.ndarray:
    """Combine a dark and a light render (H x W x 3, uint8) into RGBA."""

    if dark.shape != light.shape:
        raise ImageDimensionMismatch(f"render shapes differ: {dark.shape} vs {light.shape}")
    d = dark.astype(np.float64) / 255.0
    l = light.astype(np.float64) / 255.0

    alpha = (d - l + 1.0).sum(axis=2) / 3.0
    a = alpha[..., np.newaxis]
    with np.errstate(divide="ignore", invalid="ignore"):
        from_dark = d / a
        from_light = (l - 1.0) / a + 1.0
    colour = (from_dark + from_light) / 2.0

    channels = np.concatenate([colour, a], axis=2) * 255.0
    # Fully transparent pixels have no defined colour.
    channels = np.where(np.isnan(channels), 255.0, channels)
    return np.floor(np.clip(channels, 0.0, 255.0) + 0.5).astype(np.uint8)


def atlas_geometry(tile_count: int) -> Tuple[int, int]:
    """Return ``(columns, rows)`` for ``tile_count`` tiles."""

    if tile_count <= 0:
        raise EmptyDataSet("no icons to pack")
    columns = math.ceil(math.sqrt(tile_count))
    rows = (tile_count + columns - 1) // columns
    return columns, rows


def tile_origin(index: int, columns: int) -> Tuple[int, int]:
    return (index % columns) * TILE_WIDTH, (index // columns) * TILE_HEIGHT


@dataclass
class IconCollection:
    """Unique recovered icons plus the atlas slot assigned to every ID."""

    images: List[np.ndarray] = field(default_factory=list)
    assignments: Dict[AnyID, int] = field(default_factory=dict)
    _slots: Dict[bytes, int] = field(default_factory=dict, repr=False)

    def add(self, id_: AnyID, rgba: np.ndarray) -> int:
        key = rgba.tobytes()
        index = self._slots.get(key)
        if index is None:
            index = len(self.images)
            self._slots[key] = index
            self.images.append(rgba)
        self.assignments[id_] = index
        return index


def collect_icons(
    game_data: GameData,
    icon_root: Path,
    *,
    delete_sources: bool = False,
) -> IconCollection:
    """
    Recover every entity's icon from ``icon_root``.

    Within a category IDs are visited in order of their text so the atlas
    layout only depends on the set of IDs, not on decode order.  Slots are
    shared across categories.
    """

    collection = IconCollection()
    consumed: Set[Path] = set()
    for attr, subdir in CATEGORY_DIRS:
        ids: Iterable[AnyID] = getattr(game_data, attr)
        for id_ in sorted(ids, key=lambda value: value.text):
            filename = id_.text + ICON_EXTENSION
            dark_path = icon_root / DARK_ROOT / subdir / filename
            light_path = icon_root / LIGHT_ROOT / subdir / filename
            rgba = recover_alpha(load_icon(dark_path), load_icon(light_path))
            collection.add(id_, rgba)
            consumed.update((dark_path, light_path))

    if delete_sources:
        _remove_sources(icon_root, consumed)
    return collection


def _remove_sources(icon_root: Path, paths: Iterable[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)
    # Directories may hold files that were never part of the game data.
    for root in (DARK_ROOT, LIGHT_ROOT):
        for subdir in {subdir for _, subdir in CATEGORY_DIRS}:
            with suppress(OSError):
                (icon_root / root / subdir).rmdir()
        with suppress(OSError):
            (icon_root / root).rmdir()


def pack_atlas(images: Sequence[np.ndarray]) -> Tuple[Image.Image, TileMetadata]:
    columns, rows = atlas_geometry(len(images))
    width = columns * TILE_WIDTH
    height = rows * TILE_HEIGHT
    atlas = np.zeros((height, width, 4), dtype=np.uint8)
    for index, image in enumerate(images):
        if image.shape != (TILE_HEIGHT, TILE_WIDTH, 4):
            raise ImageDimensionMismatch(f"tile {index} has shape {image.shape}")
        x, y = tile_origin(index, columns)
        atlas[y : y + TILE_HEIGHT, x : x + TILE_WIDTH] = image
    tile_metadata = TileMetadata(
        tile_size=(TILE_WIDTH, TILE_HEIGHT),
        tile_count=len(images),
        image_size=(width, height),
    )
    return Image.fromarray(atlas), tile_metadata


def apply_icons(
    game_data: GameData,
    assignments: Dict[AnyID, int],
    tile_metadata: TileMetadata,
) -> GameData:
    def with_icon(id_: AnyID, metadata: Metadata) -> Metadata:
        return replace(metadata, icon=Icon.from_index(assignments[id_]))

    return replace(game_data.modify_metadata(with_icon), tile_metadata=tile_metadata)


def transform_icons(
    game_data: GameData,
    icon_root: Path,
    *,
    delete_sources: bool = False,
) -> Tuple[GameData, Image.Image]:
    """Build the atlas for ``game_data`` and return the re-iconed model with it."""

    collection = collect_icons(game_data, icon_root, delete_sources=delete_sources)
    if not collection.images:
        raise EmptyDataSet("game data is empty, no icons to combine")
    atlas, tile_metadata = pack_atlas(collection.images)
    return apply_icons(game_data, collection.assignments, tile_metadata), atlas


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def write_atlas(atlas: Image.Image, directory: Path, *, overwrite: bool = False) -> Path:
    if overwrite:
        destination = directory / f"{ATLAS_STEM}.png"
        destination.parent.mkdir(parents=True, exist_ok=True)
        atlas.save(destination, format="PNG")
        return destination
    return write_file_safely(directory, ATLAS_STEM, "png", encode_png(atlas))
