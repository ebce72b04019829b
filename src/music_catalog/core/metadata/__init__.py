"""Audio metadata extraction and fingerprinting."""

from .extractor import (
    ExtractedMetadata,
    Fingerprinter,
    MutagenMetadataExtractor,
    compute_fingerprint,
)

__all__ = [
    "ExtractedMetadata",
    "Fingerprinter",
    "MutagenMetadataExtractor",
    "compute_fingerprint",
]
