#!/usr/bin/env python3
# reference_data.py
"""
Per-Unicode-version reference data: the assignment bitmap plus the block
table. Stored as <data_dir>/<version>/reference.json, written once and only
read afterwards.
"""
import json, logging, os, tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Tuple

from bitvector import BitVector
from coverage_errors import ArtifactAlreadyExists, MalformedInput, MissingReferenceVersion
from ucd_parse import AssignmentMapBuilder, Block, BlockTableBuilder, parse_unicode_version

log = logging.getLogger(__name__)

ARTIFACT_NAME = 'reference.json'
ARTIFACT_FORMAT = 1
DEFAULT_DATA_DIR = 'include'

@dataclass(frozen=True)
class ReferenceData:
    unicode_version: str
    assign_map: BitVector
    assigned_count: int
    blocks: Tuple[Block, ...]

    def __post_init__(self):
        self.assign_map.freeze()
        object.__setattr__(self, 'blocks', tuple(self.blocks))

    @classmethod
    def build(cls, unicode_version: str, unicode_data: Iterable[str], blocks: Iterable[str]) -> 'ReferenceData':
        assignment = AssignmentMapBuilder().build(unicode_data)
        table = BlockTableBuilder().build(blocks, assignment, unicode_version)
        return cls(unicode_version, assignment.bits, assignment.assigned_count, table)

    def block(self, name: str) -> Block:
        for b in self.blocks:
            if b.name == name:
                return b
        raise KeyError(name)

    def to_json(self) -> dict:
        return {
            'format': ARTIFACT_FORMAT,
            'unicode_version': self.unicode_version,
            'assigned_count': self.assigned_count,
            'assign_map': list(self.assign_map.words),
            'blocks': [b._asdict() for b in self.blocks],
        }

    @classmethod
    def from_json(cls, obj: dict) -> 'ReferenceData':
        try:
            if obj['format'] != ARTIFACT_FORMAT:
                raise MalformedInput(f"Unsupported reference data format: {obj['format']!r}")
            blocks = tuple(Block(str(b['name']), int(b['start']), int(b['end']), int(b['assigned_total']))
                           for b in obj['blocks'])
            return cls(str(obj['unicode_version']), BitVector(int(w) for w in obj['assign_map']),
                       int(obj['assigned_count']), blocks)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedInput(f"Corrupt reference data: {e!r}") from e

def artifact_path(unicode_version: str, data_dir=DEFAULT_DATA_DIR) -> Path:
    return Path(data_dir) / unicode_version / ARTIFACT_NAME

def save_reference_data(ref: ReferenceData, data_dir=DEFAULT_DATA_DIR) -> Path:
    """
    Write the artifact; an existing one for the same version is never replaced.
    The data goes to a temp file next to it first and is linked into place, so
    a failed write never leaves a truncated artifact behind.
    """
    dest = artifact_path(ref.unicode_version, data_dir)
    payload = json.dumps(ref.to_json(), indent=1)
    dest.parent.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        raise ArtifactAlreadyExists(
            f"Reference data already generated for Unicode {ref.unicode_version}: {dest}")
    fd, temp_path = tempfile.mkstemp(prefix='.reference-', suffix='.json', dir=dest.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(payload)
            f.write('\n')
        try:
            os.link(temp_path, dest)
        except FileExistsError:
            raise ArtifactAlreadyExists(
                f"Reference data already generated for Unicode {ref.unicode_version}: {dest}") from None
    finally:
        os.unlink(temp_path)
    log.info("Reference data for Unicode %s written to %s", ref.unicode_version, dest)
    return dest

@lru_cache(maxsize=16)
def _load_cached(path: str) -> ReferenceData:
    with open(path, encoding='utf-8') as f:
        try:
            obj = json.load(f)
        except ValueError as e:
            raise MalformedInput(f"Corrupt reference data in {path}: {e}") from e
    return ReferenceData.from_json(obj)

def load_reference_data(unicode_version: str, data_dir=DEFAULT_DATA_DIR) -> ReferenceData:
    path = artifact_path(unicode_version, data_dir)
    if not path.is_file():
        raise MissingReferenceVersion(unicode_version)
    ref = _load_cached(str(path.resolve()))
    if ref.unicode_version != unicode_version:
        raise MalformedInput(f"{path} holds Unicode {ref.unicode_version}, expected {unicode_version}")
    return ref

def _version_sort_key(version: str):
    try:
        return (0, parse_unicode_version(version), version)
    except ValueError:
        return (1, (), version)

def list_versions(data_dir=DEFAULT_DATA_DIR) -> List[str]:
    root = Path(data_dir)
    if not root.is_dir():
        return []
    found = [p.name for p in root.iterdir() if (p / ARTIFACT_NAME).is_file()]
    return sorted(found, key=_version_sort_key)
