#!/usr/bin/env python3
"""
Run the game data extraction pipeline, or a single stage of it.

Stages:

    decode           raw export output   -> prototypes.json (token list)
    transform_data   prototypes.json     -> game_data.json
    data             raw export output   -> game_data.json
    transform_icons  game_data.json      -> game_icons.png + game_data.json
    all              raw export output   -> game_icons.png + game_data.json

The icon stages read ``<icons>/dark/<category>/<id>.png`` and the matching
``light`` render.  Output files never replace existing ones unless
``--overwrite`` is given; a taken name becomes ``game_data_0.json`` and so on.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from graphio import (
    EntryLogger,
    ExtractionError,
    GameData,
    SymbolTable,
    assemble_game_data,
    decode_output,
    load_game_data,
    load_tokens,
    transform_icons,
    write_atlas,
)
from graphio.serialization import dumps_game_data, dumps_tokens
from graphio.staging import write_file_safely

STAGES = ("decode", "transform_data", "data", "transform_icons", "all")
ICON_STAGES = ("transform_icons", "all")
TOKENS_STEM = "prototypes"
GAME_DATA_STEM = "game_data"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract game data and icons from an export run.")
    parser.add_argument(
        "input",
        type=Path,
        help="Raw export output (decode/data/all), token list JSON (transform_data) "
        "or game data JSON (transform_icons)",
    )
    parser.add_argument("--stage", choices=STAGES, default="all", help="Pipeline stage to run (default: all)")
    parser.add_argument("--icons", type=Path, help="Directory holding the dark/ and light/ icon renders")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for generated files (default: current directory)",
    )
    parser.add_argument(
        "--no-transform-log",
        action="store_true",
        help="Do not print one line per decoded entity",
    )
    parser.add_argument("--entry-log", type=Path, help="Also write the per-entity lines to this file")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing output files instead of picking a fresh name",
    )
    parser.add_argument(
        "--delete-icons",
        action="store_true",
        help="Remove the source renders once the atlas has been built",
    )
    args = parser.parse_args(argv)
    if args.stage in ICON_STAGES and args.icons is None:
        parser.error(f"--icons is required for stage {args.stage!r}")
    return args


def write_output(directory: Path, stem: str, extension: str, contents: str, *, overwrite: bool) -> Path:
    data = contents.encode("utf-8")
    if overwrite:
        directory.mkdir(parents=True, exist_ok=True)
        destination = directory / f"{stem}.{extension}"
        destination.write_bytes(data)
        return destination
    return write_file_safely(directory, stem, extension, data)


def read_tokens(path: Path) -> List[str]:
    output = path.read_text(encoding="utf-8", errors="replace")
    print(f"[+] Loaded {path} ({len(output)} characters)")
    tokens = decode_output(output)
    print(f"[+] Decoded {len(tokens)} tokens")
    return tokens


def assemble(tokens: Sequence[str], symbols: SymbolTable, logger: EntryLogger) -> GameData:
    game_data = assemble_game_data(tokens, symbols, logger=logger)
    print(
        f"[+] Assembled {len(game_data.machines)} machines, {len(game_data.beacons)} beacons, "
        f"{len(game_data.recipes)} recipes, {len(game_data.items)} items "
        f"({len(game_data.modules)} modules) and {len(game_data.fluids)} fluids"
    )
    return game_data


def run(args: argparse.Namespace) -> int:
    symbols = SymbolTable()
    logger = EntryLogger(destination=args.entry_log, echo=not args.no_transform_log)
    output_dir: Path = args.output_dir
    game_data: Optional[GameData] = None

    if args.stage == "decode":
        tokens = read_tokens(args.input)
        path = write_output(output_dir, TOKENS_STEM, "json", dumps_tokens(tokens), overwrite=args.overwrite)
        print(f"[+] Token list written to {path}")
        return 0

    if args.stage == "transform_data":
        tokens = load_tokens(args.input)
        print(f"[+] Loaded {len(tokens)} tokens from {args.input}")
        game_data = assemble(tokens, symbols, logger)
    elif args.stage in ("data", "all"):
        game_data = assemble(read_tokens(args.input), symbols, logger)
    else:
        game_data = load_game_data(args.input, symbols)
        print(f"[+] Loaded game data from {args.input}")
    logger.flush()
    if args.entry_log is not None and logger.lines:
        print(f"[i] Entry log written to {args.entry_log}")

    if args.stage in ICON_STAGES:
        game_data, atlas = transform_icons(game_data, args.icons, delete_sources=args.delete_icons)
        tiles = game_data.tile_metadata
        print(
            f"[+] Packed {tiles.tile_count} unique icons into a "
            f"{tiles.image_size[0]}x{tiles.image_size[1]} atlas"
        )
        if args.delete_icons:
            print(f"[i] Removed source renders under {args.icons}")
        atlas_path = write_atlas(atlas, output_dir, overwrite=args.overwrite)
        print(f"[+] Atlas written to {atlas_path}")

    path = write_output(output_dir, GAME_DATA_STEM, "json", dumps_game_data(game_data), overwrite=args.overwrite)
    print(f"[+] Game data written to {path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except (ExtractionError, OSError) as exc:
        print(f"[!] {args.stage} failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
