#!/usr/bin/env python3
# font_codepoints.py
"""Extract the code points a font maps, as a BitVector, using fontTools."""
import logging
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

from fontTools.pens.boundsPen import ControlBoundsPen
from fontTools.ttLib import TTCollection, TTFont

from bitvector import CODEPOINT_CEILING, BitVector
from coverage_errors import DuplicateFont, UnreadableFont

log = logging.getLogger(__name__)

COLLECTION_SUFFIXES = ('.ttc', '.otc')
# fontTools' default Unicode preferences, then the Microsoft Symbol subtable.
CMAP_PREFERENCES = ((3, 10), (0, 6), (0, 4), (3, 1), (0, 3), (0, 2), (0, 1), (0, 0), (3, 0))

@contextmanager
def open_fonts(path):
    """
    Yield the fonts inside ``path``: every member of a collection, or the
    single font. Members of a collection share one file handle, so they are
    only closed together once the caller is done with all of them.
    """
    p = Path(path)
    if not p.is_file():
        raise UnreadableFont(f"File '{path}' not found")

    container = None
    if p.suffix.lower() in COLLECTION_SUFFIXES:
        try:
            container = TTCollection(str(p))
            fonts = list(container.fonts)
            log.info("'%s' is a Truetype Collection, reading all %d embedded fonts", path, len(fonts))
        except Exception as e:
            log.debug("'%s' is not a readable collection (%s), trying as a single font", path, e)
            container = None

    if container is None:
        try:
            container = TTFont(str(p))
        except Exception as e:
            raise UnreadableFont(f"Failed to read font '{path}': {e}") from e
        fonts = [container]

    try:
        yield fonts
    finally:
        container.close()

def font_display_name(font: TTFont, fallback: Optional[str] = None) -> Optional[str]:
    """Full font name (name ID 4), else family + subfamily, else ``fallback``."""
    if 'name' not in font:
        return fallback
    name_table = font['name']

    def lookup(nid):
        # Microsoft platform first, then Apple
        n = name_table.getName(nid, 3, 1) or name_table.getName(nid, 1, 0)
        return str(n).strip() if n else ''

    full = lookup(4)
    if full:
        return full
    family = ' '.join(s for s in (lookup(1), lookup(2)) if s)
    return family or fallback

def _outline_test(font: TTFont):
    if 'glyf' in font:
        glyf = font['glyf']

        def has_outline(gname):
            # Empty loca entries decompile to zero contours; composites are -1.
            return gname in glyf and glyf[gname].numberOfContours != 0
        return has_outline

    glyph_set = font.getGlyphSet()

    def has_outline(gname):
        if gname not in glyph_set:
            return False
        pen = ControlBoundsPen(glyph_set)
        glyph_set[gname].draw(pen)
        return pen.bounds is not None
    return has_outline

def font_codepoints(font: TTFont, require_outline: bool = False) -> BitVector:
    """
    Code points mapped by the font's best Unicode cmap, below the codepoint
    ceiling. With ``require_outline``, code points whose glyph is empty are
    left out.
    """
    if 'cmap' not in font:
        raise UnreadableFont("Cmap table not found")
    cmap = font.getBestCmap(cmapPreferences=CMAP_PREFERENCES)
    if cmap is None:
        log.warning("No Unicode or symbol cmap subtable found, font maps no code points")
        cmap = {}

    has_outline = lru_cache(maxsize=None)(_outline_test(font)) if require_outline else None
    bits = BitVector()
    for cp, gname in cmap.items():
        if cp >= CODEPOINT_CEILING:
            continue
        if has_outline is not None and not has_outline(gname):
            continue
        bits.set(cp)
    return bits.freeze()

class ScannedFont(NamedTuple):
    name: str
    path: str
    bits: BitVector

class FontCodepointExtractor:
    """
    Scan font files into code point sets. Missing or unreadable fonts and
    fonts whose name was already scanned are logged and skipped.
    """

    def __init__(self, require_outline: bool = False):
        self.require_outline = require_outline
        self.failed: List[str] = []
        self.duplicates: List[str] = []
        self._seen = set()

    def _extract(self, path, font: TTFont, index: int, member_count: int) -> ScannedFont:
        fallback = Path(path).name if member_count == 1 else f"{Path(path).name}#{index}"
        try:
            name = font_display_name(font, fallback)
        except Exception as e:
            raise UnreadableFont(f"Failed to read name table of '{fallback}': {e}") from e
        if name in self._seen:
            raise DuplicateFont(f"Font '{name}' has already been scanned, skipping")

        log.info("Start scanning %s ...", name)
        try:
            bits = font_codepoints(font, self.require_outline)
        except UnreadableFont as e:
            raise UnreadableFont(f"{e} for '{name}', abandon parsing") from e
        except Exception as e:
            raise UnreadableFont(f"Failed to read cmap of '{name}': {e}") from e
        self._seen.add(name)
        log.debug("%s: %d code points", name, bits.count())
        return ScannedFont(name, str(path), bits)

    def scan(self, paths: Iterable):
        for path in paths:
            try:
                with open_fonts(path) as fonts:
                    scanned = []
                    for index, font in enumerate(fonts):
                        try:
                            scanned.append(self._extract(path, font, index, len(fonts)))
                        except DuplicateFont as e:
                            log.warning("%s", e)
                            self.duplicates.append(str(path))
                        except UnreadableFont as e:
                            log.warning("%s", e)
                            self.failed.append(str(path))
            except UnreadableFont as e:
                log.warning("%s, skipping", e)
                self.failed.append(str(path))
                continue
            yield from scanned
