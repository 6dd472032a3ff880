#!/usr/bin/env python3
# coverage_errors.py
"""Error taxonomy shared by the reference-data builder and the coverage report."""

EXIT_OK = 0
EXIT_NO_USABLE_INPUT = 2
EXIT_MISSING_VERSION = 3
EXIT_PARTIAL = 4
EXIT_MALFORMED = 5
EXIT_ARTIFACT_EXISTS = 6
EXIT_MISSING_UCD = 7

class FontCoverageError(Exception):
    exit_code = 1

class MalformedInput(FontCoverageError):
    """UCD source data that cannot be trusted; aborts the build."""
    exit_code = EXIT_MALFORMED

class MissingField(MalformedInput):
    pass

class RangeInvariantViolation(MalformedInput):
    """First/Last pairing broken, or Last < First."""

class MissingUcdData(FontCoverageError):
    exit_code = EXIT_MISSING_UCD

class ArtifactAlreadyExists(FontCoverageError):
    exit_code = EXIT_ARTIFACT_EXISTS

class MissingReferenceVersion(FontCoverageError):
    exit_code = EXIT_MISSING_VERSION

    def __init__(self, version: str):
        super().__init__(f"No data for Unicode version '{version}'")
        self.version = version

class NoUsableInput(FontCoverageError):
    exit_code = EXIT_NO_USABLE_INPUT

# Per-font problems: logged by the scanner, the font is skipped.
class UnreadableFont(FontCoverageError):
    pass

class DuplicateFont(FontCoverageError):
    pass
