#!/usr/bin/env python3
# gen_reference_data.py
"""
Build reference data for one Unicode version from a UCD mirror.

To generate Unicode 6.3.0 data, mirror https://www.unicode.org/Public/6.3.0
to ./Unicode-mirror/6.3.0 and run `gen_reference_data.py 6.3.0`; the result
lands in ./include/6.3.0/reference.json. Some early versions lack Blocks.txt;
copy it from the nearest earlier version.
"""
import argparse, logging, sys
from pathlib import Path
from typing import Tuple

from coverage_errors import ArtifactAlreadyExists, FontCoverageError, MissingUcdData
from reference_data import DEFAULT_DATA_DIR, ReferenceData, artifact_path, save_reference_data
from ucd_parse import parse_unicode_version

log = logging.getLogger(__name__)

DEFAULT_MIRROR_DIR = 'Unicode-mirror'
# From 4.1 on, the UCD files live under ucd/ without a version suffix.
UCD_SUBDIR_SINCE = (4, 1)

def resolve_ucd_files(unicode_version: str, mirror_dir=DEFAULT_MIRROR_DIR) -> Tuple[Path, Path]:
    base = Path(mirror_dir) / unicode_version
    if not base.is_dir():
        raise MissingUcdData(
            f"No UCD data for Unicode version '{unicode_version}' is found; please mirror from unicode.org")

    if parse_unicode_version(unicode_version) >= UCD_SUBDIR_SINCE:
        unicode_data = base / 'ucd' / 'UnicodeData.txt'
        blocks = base / 'ucd' / 'Blocks.txt'
    else:
        # Older releases carry version suffixes, e.g. UnicodeData-3.0.1.txt
        unicode_data = next(iter(sorted(base.glob('UnicodeData*.txt'))), None)
        blocks = next(iter(sorted(base.glob('Blocks*.txt'))), None)

    if unicode_data is None or not unicode_data.is_file():
        raise MissingUcdData("UnicodeData*.txt not found")
    if blocks is None or not blocks.is_file():
        raise MissingUcdData("Blocks*.txt not found")
    return unicode_data, blocks

def generate(unicode_version: str, mirror_dir=DEFAULT_MIRROR_DIR, data_dir=DEFAULT_DATA_DIR) -> Path:
    dest = artifact_path(unicode_version, data_dir)
    if dest.exists():
        raise ArtifactAlreadyExists(f"File already generated for Unicode {unicode_version}, quitting")

    unicode_data_path, blocks_path = resolve_ucd_files(unicode_version, mirror_dir)
    log.info("Reading %s and %s", unicode_data_path, blocks_path)

    # UCD files are ASCII apart from a few Latin-1 comments in old releases.
    with open(unicode_data_path, encoding='utf-8', errors='replace') as ud, \
         open(blocks_path, encoding='utf-8', errors='replace') as bl:
        ref = ReferenceData.build(unicode_version, ud, bl)

    log.info("Unicode %s: %d assigned code points in %d blocks",
             unicode_version, ref.assigned_count, len(ref.blocks))
    return save_reference_data(ref, data_dir)

def main(argv=None):
    ap = argparse.ArgumentParser(description='Generate font coverage reference data from Unicode UCD files')
    ap.add_argument('unicode_version', help='Unicode version, e.g. 6.3.0 or 3.0-Update1')
    ap.add_argument('--mirror', default=DEFAULT_MIRROR_DIR,
                    help=f'Directory holding mirrored UCD releases (default: {DEFAULT_MIRROR_DIR})')
    ap.add_argument('--data-dir', default=DEFAULT_DATA_DIR,
                    help=f'Where reference data is installed (default: {DEFAULT_DATA_DIR})')
    ap.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s: %(message)s')
    try:
        parse_unicode_version(args.unicode_version)
    except ValueError as e:
        ap.error(str(e))

    try:
        generate(args.unicode_version, args.mirror, args.data_dir)
    except FontCoverageError as e:
        log.error("%s", e)
        return e.exit_code
    log.info("File generation is successful.")
    return 0

if __name__ == '__main__':
    sys.exit(main())
