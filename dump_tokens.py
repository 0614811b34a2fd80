#!/usr/bin/env python3
"""
Dump the framed tokens of a raw export run.

Tokens carry no field names, so when assembly reports a problem at
``token #N`` this is the quickest way to look at the neighbourhood.  Control
characters are rendered visibly; the unit separator between a localised key
and its value shows up as ``␟``.
"""

from __future__ import annotations

import argparse
import itertools
import sys
from pathlib import Path
from typing import Sequence

from graphio.errors import ExtractionError
from graphio.records import UNIT_SEPARATOR, TokenReader, decode_output
from graphio.symbols import SymbolTable


def render_token(token: str) -> str:
    text = token.replace(UNIT_SEPARATOR, "␟")
    return "".join(char if char.isprintable() or char == "␟" else f"\\x{ord(char):02x}" for char in text)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dump the tokens of a raw export run.")
    parser.add_argument("input", type=Path, help="Text file holding the raw export output")
    parser.add_argument("--start", type=int, default=0, help="Index of the first token to print (default 0)")
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of tokens to print (default: no limit)",
    )
    parser.add_argument(
        "--header",
        action="store_true",
        help="Only print the record counts declared by the first token",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        tokens = decode_output(args.input.read_text(encoding="utf-8", errors="replace"))
        if args.header:
            counts = TokenReader(tokens, SymbolTable()).read_header()
            print(
                f"machines={counts.machines} beacons={counts.beacons} recipes={counts.recipes} "
                f"items={counts.items} fluids={counts.fluids} (total {counts.total})"
            )
            return 0
    except (ExtractionError, OSError) as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 1

    selected = itertools.islice(enumerate(tokens), args.start, None)
    if args.limit is not None:
        selected = itertools.islice(selected, args.limit)
    count = 0
    for position, token in selected:
        print(f"#{position:<6} {render_token(token)}")
        count += 1
    if count == 0:
        print("No tokens in the requested window.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
