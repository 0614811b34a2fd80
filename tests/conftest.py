from __future__ import annotations

import pytest

from export_builder import sample_export, write_render_pair
from graphio.assembly import assemble_game_data
from graphio.icons import CATEGORY_DIRS
from graphio.symbols import SymbolTable


@pytest.fixture
def symbols():
    return SymbolTable()


@pytest.fixture
def sample_tokens():
    return sample_export().tokens()


@pytest.fixture
def game_data(sample_tokens, symbols):
    return assemble_game_data(sample_tokens, symbols)


@pytest.fixture
def icon_root(tmp_path, game_data):
    """One opaque render pair per entity; both iron items share a colour."""

    root = tmp_path / "icons"
    shade = 10
    for attr, subdir in CATEGORY_DIRS:
        for id_ in getattr(game_data, attr):
            if id_.text in ("iron-plate", "iron-gear") and attr == "items":
                colour = (120, 120, 130)
            else:
                shade += 10
                colour = (shade, 200, 255 - shade)
            write_render_pair(root, subdir, id_.text, colour, colour)
    return root
