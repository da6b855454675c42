"""Artifact subpackage: glyph container parsing, embedding and storage."""
from .svg import (
    ParsedArtifact,
    embed_metadata,
    file_to_payload,
    metadata_from_json,
    parse_json_artifact,
    parse_svg,
    render_json_artifact,
)
from .store import ArtifactStore, read_segment, write_segment

__all__ = [
    "ParsedArtifact",
    "embed_metadata",
    "file_to_payload",
    "metadata_from_json",
    "parse_json_artifact",
    "parse_svg",
    "render_json_artifact",
    "ArtifactStore",
    "read_segment",
    "write_segment",
]
