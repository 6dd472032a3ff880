#!/usr/bin/env python3
# font_coverage.py
"""
Summarize the Unicode blocks covered by TrueType/OpenType fonts.

For every block three numbers are reported, in order:
 * total number of code points Unicode assigns in the block
 * code points the font maps within the block AND assigned by Unicode
 * code points the font maps within the block but NOT assigned by Unicode

All code points in control chars, surrogates and private use areas are
treated as unassigned. Fonts in a TrueType Collection are counted separately.
"""
import argparse, csv, json, logging, sys
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Tuple

from bitvector import WORD_MASK, WORD_SHIFT, BitVector, popcount, range_masks
from coverage_errors import EXIT_OK, EXIT_PARTIAL, FontCoverageError, MissingReferenceVersion, NoUsableInput
from font_codepoints import FontCodepointExtractor
from reference_data import DEFAULT_DATA_DIR, ReferenceData, list_versions, load_reference_data

log = logging.getLogger(__name__)

DEFAULT_UNICODE_VERSION = '6.3.0'
CSV_HEADER = ('Block Name', 'Start', 'End', 'Total codepoints', 'Assigned', 'Reserved')

class BlockCoverage(NamedTuple):
    name: str
    start: int
    end: int
    assigned_total: int
    expected: int
    unexpected: int

@dataclass(frozen=True)
class CoverageResult:
    font_name: str
    unicode_version: str
    blocks: Tuple[BlockCoverage, ...]

    def visible_blocks(self, show_empty: bool = False) -> List[BlockCoverage]:
        return [b for b in self.blocks if show_empty or b.expected or b.unexpected]

def _count_block(font_bits: BitVector, assign_map: BitVector, start: int, end: int) -> Tuple[int, int]:
    # essentially count bits in (font_map & assign_map & range_mask)
    expected = unexpected = 0
    base = start >> WORD_SHIFT
    if base >= len(font_bits):
        return 0, 0
    for offset, mask in enumerate(range_masks(start, end)):
        font_word = font_bits.word(base + offset)
        if not font_word:
            continue
        bits = font_word & mask
        assigned = assign_map.word(base + offset)
        if not assigned:
            unexpected += popcount(bits)
        elif assigned == WORD_MASK:
            expected += popcount(bits)
        else:
            expected += popcount(bits & assigned)
            unexpected += popcount(bits & ~assigned)
    return expected, unexpected

def compute_coverage(font_bits: BitVector, reference: ReferenceData, font_name: str = '') -> CoverageResult:
    """Per-block expected/unexpected counts of ``font_bits`` against ``reference``."""
    rows = []
    for block in reference.blocks:
        expected, unexpected = _count_block(font_bits, reference.assign_map, block.start, block.end)
        rows.append(BlockCoverage(block.name, block.start, block.end, block.assigned_total, expected, unexpected))
    return CoverageResult(font_name, reference.unicode_version, tuple(rows))

def aggregate_codepoints(font_bit_sets: Iterable[BitVector]) -> BitVector:
    """Union of several fonts' code point sets."""
    combined = None
    for bits in font_bit_sets:
        combined = bits.copy() if combined is None else combined | bits
    if combined is None:
        raise NoUsableInput("No font data to aggregate")
    return combined.freeze()

def check_coverage(font_paths: Iterable[str], reference: ReferenceData,
                   require_outline: bool = False, aggregate: bool = False):
    """
    Scan ``font_paths`` and compute coverage for each usable font, or a single
    result for their union with ``aggregate``. Returns (results, extractor);
    the extractor records which files failed.
    """
    extractor = FontCodepointExtractor(require_outline=require_outline)
    scanned = list(extractor.scan(font_paths))
    if not scanned:
        raise NoUsableInput("No valid font specified, quitting")

    if aggregate:
        bits = aggregate_codepoints(s.bits for s in scanned)
        results = [compute_coverage(bits, reference, ' + '.join(s.name for s in scanned))]
    else:
        results = [compute_coverage(s.bits, reference, s.name) for s in scanned]
    return results, extractor

def format_text(result: CoverageResult, show_empty: bool = False) -> str:
    lines = ['', f"=== {result.font_name}", '']
    for b in result.visible_blocks(show_empty):
        lines.append(f"{b.name} (U+{b.start:04X}-U+{b.end:04X}) => "
                     f"{b.assigned_total} / {b.expected} / {b.unexpected}")
    return '\n'.join(lines) + '\n'

def write_csv(result: CoverageResult, out, show_empty: bool = False):
    out.write(f"\n=== {result.font_name}\n\n")
    writer = csv.writer(out, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for b in result.visible_blocks(show_empty):
        writer.writerow((b.name, f"U+{b.start:04X}", f"U+{b.end:04X}",
                         b.assigned_total, b.expected, b.unexpected))

def coverage_report(results: List[CoverageResult], show_empty: bool = False) -> list:
    return [{
        'font': r.font_name,
        'unicode_version': r.unicode_version,
        'blocks': [{
            'name': b.name,
            'start': f"U+{b.start:04X}",
            'end': f"U+{b.end:04X}",
            'assigned_total': b.assigned_total,
            'expected': b.expected,
            'unexpected': b.unexpected,
        } for b in r.visible_blocks(show_empty)],
    } for r in results]

def write_report(results: List[CoverageResult], out, fmt: str = 'text', show_empty: bool = False, pretty: bool = False):
    if fmt == 'json':
        out.write(json.dumps(coverage_report(results, show_empty), indent=2 if pretty else None, ensure_ascii=False))
        out.write('\n')
        return
    for r in results:
        if fmt == 'csv':
            write_csv(r, out, show_empty)
        else:
            out.write(format_text(r, show_empty))
    out.write('\n')

def main(argv=None):
    ap = argparse.ArgumentParser(
        description='Prints a summary of Unicode blocks covered by TrueType/OpenType fonts, with glyph counts.',
        epilog='Numbers in each line: code points assigned by Unicode in the block / '
               'font code points assigned by Unicode / font code points NOT assigned by Unicode.')
    ap.add_argument('fonts', nargs='*', metavar='FONT_FILE', help='Font files (ttf/otf/ttc)')
    ap.add_argument('-i', '--ignore-empty-glyphs', action='store_true',
                    help='Ignore code points that have no corresponding glyph outline')
    ap.add_argument('-l', '--list-versions', action='store_true',
                    help='List Unicode versions with installed reference data')
    ap.add_argument('-s', '--csv', action='store_true', help='Generate CSV output')
    ap.add_argument('--json', action='store_true', help='Generate JSON output')
    ap.add_argument('--pretty', action='store_true', help='Pretty-print JSON')
    ap.add_argument('-u', '--unicode-version', default=DEFAULT_UNICODE_VERSION,
                    help=f'Unicode version used as reference (default {DEFAULT_UNICODE_VERSION})')
    ap.add_argument('-z', '--show-empty', action='store_true',
                    help='List Unicode blocks with no glyph in font (hidden by default)')
    ap.add_argument('-a', '--aggregate', action='store_true',
                    help='Report the union of all fonts instead of one report per font')
    ap.add_argument('--data-dir', default=DEFAULT_DATA_DIR,
                    help=f'Reference data directory (default: {DEFAULT_DATA_DIR})')
    verbosity = ap.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    args = ap.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format='%(message)s')

    if args.list_versions:
        print("Supported Unicode versions on this system:\n")
        for version in list_versions(args.data_dir):
            print(version)
        return EXIT_OK

    fmt = 'json' if args.json else 'csv' if args.csv else 'text'
    try:
        # Load before scanning so a missing version produces no partial output.
        reference = load_reference_data(args.unicode_version, args.data_dir)
        results, extractor = check_coverage(args.fonts, reference,
                                            require_outline=args.ignore_empty_glyphs,
                                            aggregate=args.aggregate)
    except MissingReferenceVersion as e:
        log.error("%s", e)
        log.error("Use '%s -l' to list supported versions", ap.prog)
        return e.exit_code
    except FontCoverageError as e:
        log.error("%s", e)
        return e.exit_code

    write_report(results, sys.stdout, fmt, show_empty=args.show_empty, pretty=args.pretty)
    if extractor.failed:
        log.warning("%d font file(s) could not be read", len(extractor.failed))
        return EXIT_PARTIAL
    return EXIT_OK

if __name__ == '__main__':
    sys.exit(main())
