"""
Decoder for the flat record stream printed by the export script.

The host process writes the payload into its regular log output, so the raw
text looks like this (control bytes shown symbolically)::

    ...engine chatter...
    \\x01\\x02<machines>\\x1f<beacons>\\x1f<recipes>\\x1f<items>\\x1f<fluids>\\x03
    \\x02<token>\\x03
    \\x02<key>\\x1f<localised value>\\x03
    ...
    \\x04
    ...more chatter...

Only the text between the first start sentinel and the last end sentinel is
considered.  Inside it, every token is framed by ``\\x02 ... \\x03``; anything
outside a frame is log noise and is dropped.  Tokens carry no field names:
each entity kind is read back in a fixed order, so a :class:`TokenReader`
simply hands out the next token and converts it to the requested type.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, Iterator, List, Optional, Sequence

from .entities import Metadata
from .errors import MalformedRecord, NumericParseError, SchemaMismatch, UnknownVariant
from .numeric import parse_int, parse_ratio
from .symbols import Symbol, SymbolTable

START_SENTINEL = "\x01"
END_SENTINEL = "\x04"
TOKEN_OPEN = "\x02"
TOKEN_CLOSE = "\x03"
UNIT_SEPARATOR = "\x1f"

# The host answers an unknown locale key with exactly this shape.
UNKNOWN_KEY_PREFIX = 'Unknown key: "'
UNKNOWN_KEY_SUFFIX = '"'
HEADER_FIELDS = 5


def extract_payload(output: str) -> str:
    """Return the text between the first start and the last end sentinel."""

    text = output.replace("\r\n", "\n")
    start = text.find(START_SENTINEL)
    if start == -1:
        raise MalformedRecord("no start marker in output")
    end = text.rfind(END_SENTINEL)
    if end == -1:
        raise MalformedRecord("no end marker in output")
    if end < start:
        raise MalformedRecord("end marker precedes start marker in output")
    return text[start + 1 : end]


def iter_framed_tokens(payload: Iterable[str]) -> Iterator[str]:
    """
    Yield every ``TOKEN_OPEN ... TOKEN_CLOSE`` framed region in order.

    Characters outside a frame are skipped, and so is an unterminated frame
    at the end of the payload.
    """

    chars = iter(payload)
    for char in chars:
        if char != TOKEN_OPEN:
            continue
        buffer: List[str] = []
        for inner in chars:
            if inner == TOKEN_CLOSE:
                yield "".join(buffer)
                break
            buffer.append(inner)
        else:
            return


def decode_output(output: str) -> List[str]:
    """Raw host output → ordered list of payload tokens."""

    return list(iter_framed_tokens(extract_payload(output)))


@dataclass(frozen=True)
class RecordCounts:
    machines: int
    beacons: int
    recipes: int
    items: int
    fluids: int

    @property
    def total(self) -> int:
        return self.machines + self.beacons + self.recipes + self.items + self.fluids


@dataclass(frozen=True)
class AllowedEffects:
    """Which module modifier channels a machine or beacon lets through."""

    energy: bool
    speed: bool
    productivity: bool
    pollution: bool


class TokenReader:
    """Positional cursor over the decoded token list."""

    def __init__(self, tokens: Sequence[str], symbols: SymbolTable) -> None:
        self._tokens = tokens
        self._position = 0
        self.symbols = symbols

    @property
    def position(self) -> int:
        return self._position

    def remaining(self) -> int:
        return len(self._tokens) - self._position

    def at_end(self) -> bool:
        return self._position >= len(self._tokens)

    def _where(self) -> str:
        return f"token #{self._position - 1}"

    def read_line(self) -> str:
        if self._position >= len(self._tokens):
            raise MalformedRecord(f"unexpected end of data after {len(self._tokens)} tokens")
        token = self._tokens[self._position]
        self._position += 1
        return token

    def read_str(self) -> Symbol:
        return self.symbols.intern(self.read_line())

    def read_usize(self) -> int:
        line = self.read_line()
        try:
            value = parse_int(line)
        except NumericParseError as exc:
            raise NumericParseError(f"{self._where()}: cannot read count: {exc}") from exc
        if value < 0:
            raise NumericParseError(f"{self._where()}: expected non-negative count, got {line!r}")
        return value

    def read_int(self) -> int:
        line = self.read_line()
        try:
            return parse_int(line)
        except NumericParseError as exc:
            raise NumericParseError(f"{self._where()}: {exc}") from exc

    def read_ratio(self) -> Fraction:
        line = self.read_line()
        try:
            return parse_ratio(line)
        except NumericParseError as exc:
            raise NumericParseError(f"{self._where()}: {exc}") from exc

    def read_flags(self, width: int, what: str) -> tuple[bool, ...]:
        line = self.read_line()
        if len(line) != width:
            raise SchemaMismatch(f"{self._where()}: expected {what} to be {width} bits, got {line!r}")
        bits = []
        for char in line:
            if char not in "01":
                raise SchemaMismatch(f"{self._where()}: expected 0 or 1 in {what}, got {line!r}")
            bits.append(char == "1")
        return tuple(bits)

    def read_flag(self, what: str) -> bool:
        return self.read_flags(1, what)[0]

    def read_kind(self, choices: Sequence[str], what: str) -> str:
        line = self.read_line()
        if line not in choices:
            raise UnknownVariant(f"{self._where()}: unknown {what} {line!r}")
        return line

    def read_allowed_effects(self) -> AllowedEffects:
        energy, speed, productivity, pollution = self.read_flags(4, "allowed_effects")
        return AllowedEffects(energy=energy, speed=speed, productivity=productivity, pollution=pollution)

    def _read_localised(self, required: bool) -> Optional[Symbol]:
        line = self.read_line()
        parts = line.split(UNIT_SEPARATOR)
        if len(parts) < 2:
            raise MalformedRecord(f"{self._where()}: no value part in localised string {line!r}")
        if len(parts) > 2:
            raise MalformedRecord(f"{self._where()}: extra part in localised string {line!r}")
        key, value = parts
        if is_unknown_key_echo(key, value):
            return self.symbols.intern(key) if required else None
        return self.symbols.intern(value)

    def read_localised_str(self) -> Symbol:
        symbol = self._read_localised(True)
        assert symbol is not None
        return symbol

    def read_optional_localised_str(self) -> Optional[Symbol]:
        return self._read_localised(False)

    def read_metadata(self) -> Metadata:
        name = self.read_localised_str()
        description = self.read_optional_localised_str()
        return Metadata(localised_name=name, localised_description=description)

    def read_header(self) -> RecordCounts:
        line = self.read_line()
        parts = line.split(UNIT_SEPARATOR)
        if len(parts) != HEADER_FIELDS:
            raise SchemaMismatch(
                f"expected {HEADER_FIELDS} lengths on the first line, got {len(parts)}"
            )
        counts = []
        for part in parts:
            try:
                value = parse_int(part)
            except NumericParseError as exc:
                raise NumericParseError(f"cannot read lengths from the first line: {exc}") from exc
            if value < 0:
                raise NumericParseError(f"negative length {part!r} on the first line")
            counts.append(value)
        return RecordCounts(*counts)


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def is_unknown_key_echo(key: str, value: str) -> bool:
    """True when ``value`` is the host's ``Unknown key: "<key>"`` placeholder.

    Lengths are compared in UTF-8 bytes, the unit the host measures strings in.
    """

    return (
        _utf8_len(value) == _utf8_len(UNKNOWN_KEY_PREFIX) + _utf8_len(key) + _utf8_len(UNKNOWN_KEY_SUFFIX)
        and value.startswith(UNKNOWN_KEY_PREFIX)
        and value.endswith(UNKNOWN_KEY_SUFFIX)
    )
