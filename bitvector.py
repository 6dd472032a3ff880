#!/usr/bin/env python3
# bitvector.py
"""
Bit-per-codepoint sets stored as 32-bit words.

Word ``i`` holds codepoints ``i*32 .. i*32+31``, least significant bit first,
which is also the layout persisted in reference data files.
"""
from typing import Iterable, List

WORD_BITS = 32
WORD_SHIFT = 5
WORD_MASK = 0xFFFFFFFF

# BMP, SMP and SIP only; higher planes have nothing displayable yet.
CODEPOINT_CEILING = 0x30000

def popcount(word: int) -> int:
    return bin(word).count("1")

def range_masks(start: int, end: int) -> List[int]:
    """
    Masks for words ``start >> 5 .. end >> 5`` selecting the inclusive range
    [start, end]: low bits cleared in the first word, high bits cleared in the
    last word, everything set in between.
    """
    if end < start:
        raise ValueError(f"range end U+{end:04X} before start U+{start:04X}")
    masks = [WORD_MASK] * ((end >> WORD_SHIFT) - (start >> WORD_SHIFT) + 1)
    masks[0] &= ~((1 << (start & 0x1F)) - 1) & WORD_MASK
    masks[-1] &= WORD_MASK >> (31 - (end & 0x1F))
    return masks

class BitVector:
    __slots__ = ("_words", "_frozen")

    def __init__(self, words: Iterable[int] = ()):
        self._words = [w & WORD_MASK for w in words]
        self._frozen = False

    @classmethod
    def from_codepoints(cls, codepoints: Iterable[int], ceiling: int = CODEPOINT_CEILING) -> "BitVector":
        bv = cls()
        for cp in codepoints:
            if 0 <= cp < ceiling:
                bv.set(cp)
        return bv

    @property
    def words(self) -> tuple:
        return tuple(self._words)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def word(self, index: int) -> int:
        return self._words[index] if 0 <= index < len(self._words) else 0

    def __len__(self):
        # Number of words currently allocated, not number of set bits.
        return len(self._words)

    def _check_writable(self):
        if self._frozen:
            raise ValueError("BitVector is frozen")

    def _grow(self, index: int):
        if index >= len(self._words):
            self._words.extend([0] * (index + 1 - len(self._words)))

    def set(self, cp: int) -> bool:
        """Set bit ``cp``; returns True if it was previously unset."""
        self._check_writable()
        if cp < 0:
            raise ValueError(f"negative codepoint: {cp}")
        idx = cp >> WORD_SHIFT
        self._grow(idx)
        bit = 1 << (cp & 0x1F)
        was_unset = not (self._words[idx] & bit)
        self._words[idx] |= bit
        return was_unset

    def set_range(self, first: int, last: int) -> int:
        """Set every bit in [first, last]; returns how many were newly set."""
        self._check_writable()
        if first < 0:
            raise ValueError(f"negative codepoint: {first}")
        base = first >> WORD_SHIFT
        self._grow(last >> WORD_SHIFT)
        added = 0
        for offset, mask in enumerate(range_masks(first, last)):
            old = self._words[base + offset]
            added += popcount(mask & ~old)
            self._words[base + offset] = old | mask
        return added

    def test(self, cp: int) -> bool:
        if cp < 0:
            return False
        return bool(self.word(cp >> WORD_SHIFT) & (1 << (cp & 0x1F)))

    def __contains__(self, cp: int) -> bool:
        return self.test(cp)

    def count(self, start: int = 0, end: int = None) -> int:
        """Population count over the inclusive range [start, end]."""
        if end is None:
            end = len(self._words) * WORD_BITS - 1
        if end < start:
            return 0
        base = start >> WORD_SHIFT
        return sum(popcount(self.word(base + offset) & mask)
                   for offset, mask in enumerate(range_masks(start, end)))

    def codepoints(self):
        for idx, w in enumerate(self._words):
            while w:
                low = w & -w
                yield (idx << WORD_SHIFT) + low.bit_length() - 1
                w ^= low

    def union(self, other: "BitVector") -> "BitVector":
        """New vector holding the bitwise OR; the shorter one is zero-extended."""
        size = max(len(self._words), len(other._words))
        return BitVector(self.word(i) | other.word(i) for i in range(size))

    __or__ = union

    def freeze(self) -> "BitVector":
        self._frozen = True
        return self

    def copy(self) -> "BitVector":
        return BitVector(self._words)

    def _trimmed(self) -> List[int]:
        words = list(self._words)
        while words and not words[-1]:
            words.pop()
        return words

    def __eq__(self, other):
        if not isinstance(other, BitVector):
            return NotImplemented
        return self._trimmed() == other._trimmed()

    def __repr__(self):
        return f"BitVector(words={len(self._words)}, bits={self.count()})"
