#!/usr/bin/env python3
# ucd_parse.py
"""
Parsers for the two Unicode Character Database files the coverage data is
built from: UnicodeData.txt (which code points are assigned) and Blocks.txt
(named block ranges).
"""
import enum, logging, re
from functools import lru_cache
from typing import Iterable, List, NamedTuple, Optional, Tuple

from bitvector import CODEPOINT_CEILING, BitVector
from coverage_errors import MalformedInput, MissingField, RangeInvariantViolation

log = logging.getLogger(__name__)

# Blocks.txt switched from "start; end; name" to "start..end; name" in 3.1.
RANGE_BLOCK_GRAMMAR_SINCE = (3, 1)
# Block names are unique starting with 3.2.
UNIQUE_BLOCK_NAMES_SINCE = (3, 2)

EXCLUDED_DESC_RE = re.compile(r'^<(control|.*Private Use.*|.*Surrogate.*)>$')
RANGE_FIRST_RE = re.compile(r'^<.*First>$')
RANGE_LAST_RE = re.compile(r'^<.*Last>$')

RANGE_BLOCK_RE = re.compile(r'^([0-9A-Fa-f]+)\.\.([0-9A-Fa-f]+);\s*(.+)?\s*$')
LEGACY_BLOCK_RE = re.compile(r'^([0-9A-Fa-f]+);\s*([0-9A-Fa-f]+);\s*(.+)?\s*$')

# Blocks whose first 0x20 code points are split off as control character blocks.
CONTROL_SPLITS = {
    'Basic Latin': 'C0 Control Character',
    'Latin-1 Supplement': 'C1 Control Character',
}
CONTROL_SPLIT_SIZE = 0x20

# Pre-3.2 renames keyed by block start, so that names stay unique.
LEGACY_RENAMES = {
    0xF0000: 'Supplementary Private Use Area-A',
    0x100000: 'Supplementary Private Use Area-B',
}
# Pre-3.2 "Specials" block holding only the byte order mark; a second
# "Specials" block exists, and fonts shouldn't map the BOM anyway.
LEGACY_DROPPED_BLOCK_START = 0xFEFF

@lru_cache(maxsize=128)
def parse_unicode_version(version: str) -> Tuple[int, ...]:
    """
    '6.3.0' -> (6, 3); '3.0-Update1' -> (3, 0, 1); '4.0-Update' -> (4,).
    Trailing zeros are dropped so that '4.1' and '4.1.0' compare equal.
    """
    v = re.sub(r'-Update$', '-Update0', version.strip())
    v = v.replace('-Update', '.')
    try:
        parts = [int(p) for p in v.split('.')]
    except ValueError:
        raise ValueError(f"Invalid Unicode version: {version!r}") from None
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)

class RecordKind(enum.Enum):
    ORDINARY = 'ordinary'
    RANGE_START = 'range_start'
    RANGE_END = 'range_end'
    EXCLUDED = 'excluded'

class UnicodeDataRecord(NamedTuple):
    codepoint: int
    description: str
    kind: RecordKind
    line_no: int

def classify_description(desc: str) -> RecordKind:
    # Control chars, surrogates and PUAs count as unassigned, ranges included.
    if EXCLUDED_DESC_RE.match(desc):
        return RecordKind.EXCLUDED
    if RANGE_FIRST_RE.match(desc):
        return RecordKind.RANGE_START
    if RANGE_LAST_RE.match(desc):
        return RecordKind.RANGE_END
    return RecordKind.ORDINARY

def parse_unicode_data(lines: Iterable[str]):
    """Yield a classified record for every non-blank UnicodeData.txt line."""
    for line_no, line in enumerate(lines, 1):
        line = line.rstrip('\r\n')
        if not line.strip():
            continue
        fields = line.split(';')
        if len(fields) < 3:
            raise MissingField(f"Corrupt UnicodeData content at line {line_no}: {line!r}")
        code, desc = fields[0].strip(), fields[1]
        try:
            cp = int(code, 16)
        except ValueError:
            raise MalformedInput(f"Bad code point {code!r} at line {line_no}") from None
        yield UnicodeDataRecord(cp, desc, classify_description(desc), line_no)

class AssignmentMap(NamedTuple):
    bits: BitVector
    assigned_count: int

class AssignmentMapBuilder:
    """Builds the assigned-codepoint bitmap from UnicodeData.txt."""

    def __init__(self, ceiling: int = CODEPOINT_CEILING):
        self.ceiling = ceiling

    def build(self, lines: Iterable[str]) -> AssignmentMap:
        bits = BitVector()
        count = 0
        pending: Optional[UnicodeDataRecord] = None

        for rec in parse_unicode_data(lines):
            if rec.kind is RecordKind.EXCLUDED:
                continue

            if rec.kind is RecordKind.RANGE_START:
                if pending is not None:
                    raise RangeInvariantViolation(
                        f"Broken UnicodeData; range start at line {rec.line_no} "
                        f"while range from line {pending.line_no} is still open")
                pending = rec
                continue

            if rec.kind is RecordKind.RANGE_END:
                if pending is None:
                    raise RangeInvariantViolation(
                        f"Broken UnicodeData; range end without start at line {rec.line_no}")
                first, last = pending.codepoint, rec.codepoint
                if last < first:
                    raise RangeInvariantViolation(
                        f"Broken UnicodeData; end < start at line {rec.line_no} "
                        f"(U+{first:04X}..U+{last:04X})")
                pending = None
                last = min(last, self.ceiling - 1)
                if first <= last:
                    count += bits.set_range(first, last)
                continue

            if rec.codepoint < self.ceiling:
                count += bits.set(rec.codepoint)

        if pending is not None:
            raise RangeInvariantViolation(
                f"Broken UnicodeData; range start at line {pending.line_no} never closed")

        log.debug("assignment map: %d code points assigned", count)
        return AssignmentMap(bits.freeze(), count)

class Block(NamedTuple):
    name: str
    start: int
    end: int
    assigned_total: int

def block_grammar(unicode_version: str):
    if parse_unicode_version(unicode_version) >= RANGE_BLOCK_GRAMMAR_SINCE:
        return RANGE_BLOCK_RE
    return LEGACY_BLOCK_RE

def parse_blocks(lines: Iterable[str], unicode_version: str) -> List[Tuple[str, int, int]]:
    """Raw (name, start, end) triples from a Blocks.txt of the given version."""
    pattern = block_grammar(unicode_version)
    raw = []
    for line_no, line in enumerate(lines, 1):
        text = line.split('#', 1)[0].strip()
        if not text:
            continue
        m = pattern.match(text)
        if not m:
            raise MalformedInput(f"Unparsable Blocks line {line_no} for Unicode {unicode_version}: {line.rstrip()!r}")
        name = (m.group(3) or '').strip()
        if not name:
            continue
        start, end = int(m.group(1), 16), int(m.group(2), 16)
        if end < start:
            raise MalformedInput(f"Block {name!r} ends before it starts at line {line_no}")
        raw.append((name, start, end))
    return raw

class BlockTableBuilder:
    """Builds the ordered, uniquely named block table for one Unicode version."""

    def build(self, lines: Iterable[str], assignment: AssignmentMap, unicode_version: str) -> Tuple[Block, ...]:
        legacy_names = parse_unicode_version(unicode_version) < UNIQUE_BLOCK_NAMES_SINCE
        blocks = []

        for name, start, end in parse_blocks(lines, unicode_version):
            control_name = CONTROL_SPLITS.get(name)
            if control_name:
                blocks.append(Block(control_name, start, start + CONTROL_SPLIT_SIZE - 1, 0))
                start += CONTROL_SPLIT_SIZE

            if legacy_names:
                if start == LEGACY_DROPPED_BLOCK_START:
                    log.debug("dropping legacy block %r at U+%04X", name, start)
                    continue
                name = LEGACY_RENAMES.get(start, name)

            blocks.append(Block(name, start, end, assignment.bits.count(start, end)))

        blocks.sort(key=lambda b: b.start)

        seen = set()
        for b in blocks:
            if b.name in seen:
                raise MalformedInput(f"Duplicate block name {b.name!r} in Unicode {unicode_version} block list")
            seen.add(b.name)
        return tuple(blocks)
