import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.t2CharStringPen import T2CharStringPen
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.ttLib import TTCollection, TTFont

from reference_data import ReferenceData

def _glyph_name(cp):
    return f"cp{cp:04X}"

def _draw_square(pen):
    pen.moveTo((100, 0))
    pen.lineTo((500, 0))
    pen.lineTo((500, 700))
    pen.lineTo((100, 700))
    pen.closePath()

def _square():
    pen = TTGlyphPen(None)
    _draw_square(pen)
    return pen.glyph()

def _charstring(empty):
    pen = T2CharStringPen(600, None)
    if not empty:
        _draw_square(pen)
    return pen.getCharString()

def build_font(path, codepoints, empty=(), full_name="Test Sans Regular", family="Test Sans", cff=False):
    """
    Write a minimal font mapping ``codepoints``; those in ``empty`` get no
    outline. With ``cff`` the outlines go in a CFF table instead of glyf.
    """
    codepoints = sorted(set(codepoints))
    names = [".notdef"] + [_glyph_name(cp) for cp in codepoints]
    empty_names = {_glyph_name(cp) for cp in empty}
    ps_name = full_name.replace(" ", "")

    fb = FontBuilder(1000, isTTF=not cff)
    fb.setupGlyphOrder(names)
    fb.setupCharacterMap({cp: _glyph_name(cp) for cp in codepoints})
    if cff:
        charstrings = {n: _charstring(n in empty_names) for n in names}
        fb.setupCFF(ps_name, {"FullName": full_name}, charstrings, {})
    else:
        fb.setupGlyf({n: (TTGlyphPen(None).glyph() if n in empty_names else _square()) for n in names})
    fb.setupHorizontalMetrics({n: (600, 0) for n in names})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({
        "familyName": family,
        "styleName": "Regular",
        "fullName": full_name,
        "psName": ps_name,
    })
    fb.setupOS2()
    fb.setupPost()
    fb.save(str(path))
    return path

def build_collection(path, member_paths):
    coll = TTCollection()
    coll.fonts = [TTFont(str(p)) for p in member_paths]
    coll.save(str(path))
    return path

@pytest.fixture
def make_font(tmp_path):
    def make(name, codepoints, **kwargs):
        return build_font(tmp_path / name, codepoints, **kwargs)
    return make

@pytest.fixture
def make_collection(tmp_path):
    def make(name, member_paths):
        return build_collection(tmp_path / name, member_paths)
    return make

UNICODE_DATA = """\
0000;<control>;Cc;0;BN;;;;;N;NULL;;;;
001F;<control>;Cc;0;S;;;;;N;INFORMATION SEPARATOR ONE;;;;
0020;SPACE;Zs;0;WS;;;;;N;;;;;
0041;LATIN CAPITAL LETTER A;Lu;0;L;;;;;N;;;;0061;
0042;LATIN CAPITAL LETTER B;Lu;0;L;;;;;N;;;;0062;
0061;LATIN SMALL LETTER A;Ll;0;L;;;;;N;;;0041;;0041
0080;<control>;Cc;0;BN;;;;;N;;;;;
00A0;NO-BREAK SPACE;Zs;0;CS;<noBreak> 0020;;;;N;NON-BREAKING SPACE;;;;
00E9;LATIN SMALL LETTER E WITH ACUTE;Ll;0;L;0065 0301;;;;N;LATIN SMALL LETTER E ACUTE;;00C9;;00C9
4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;
9FCC;<CJK Ideograph, Last>;Lo;0;L;;;;;N;;;;;
D800;<Non Private Use High Surrogate, First>;Cs;0;L;;;;;N;;;;;
DB7F;<Non Private Use High Surrogate, Last>;Cs;0;L;;;;;N;;;;;
E000;<Private Use, First>;Co;0;L;;;;;N;;;;;
F8FF;<Private Use, Last>;Co;0;L;;;;;N;;;;;
FEFF;ZERO WIDTH NO-BREAK SPACE;Cf;0;BN;;;;;N;BYTE ORDER MARK;;;;
FFFD;REPLACEMENT CHARACTER;So;0;ON;;;;;N;;;;;
20000;<CJK Ideograph Extension B, First>;Lo;0;L;;;;;N;;;;;
2A6D6;<CJK Ideograph Extension B, Last>;Lo;0;L;;;;;N;;;;;
E0001;LANGUAGE TAG;Cf;0;BN;;;;;N;;;;;
F0000;<Plane 15 Private Use, First>;Co;0;L;;;;;N;;;;;
FFFFD;<Plane 15 Private Use, Last>;Co;0;L;;;;;N;;;;;
"""

BLOCKS = """\
# Blocks-6.3.0.txt
# Format: Start Code..End Code; Block Name

0000..007F; Basic Latin
0080..00FF; Latin-1 Supplement
4E00..9FFF; CJK Unified Ideographs
D800..DB7F; High Surrogates
E000..F8FF; Private Use Area
FE70..FEFF; Arabic Presentation Forms-B
FFF0..FFFF; Specials
20000..2A6DF; CJK Unified Ideographs Extension B
F0000..FFFFF; Supplementary Private Use Area-A

# EOF
"""

# The four assigned BMP letters/spaces in UNICODE_DATA below U+0080.
BASIC_LATIN_ASSIGNED = 4
CJK_COUNT = 0x9FCC - 0x4E00 + 1
EXT_B_COUNT = 0x2A6D6 - 0x20000 + 1

@pytest.fixture
def reference():
    return ReferenceData.build("6.3.0", UNICODE_DATA.splitlines(), BLOCKS.splitlines())
