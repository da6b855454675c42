"""Artifact and segment file persistence.

Reads and writes take an exclusive lock on the artifact file so two
processes never interleave a read-modify-write of the same glyph.
"""
import fcntl
from pathlib import Path

from ..core.model import ArtifactMetadata, SegmentFile
from ..ledger.segments import segment_filename
from .svg import ParsedArtifact, embed_metadata, parse_json_artifact, parse_svg, render_json_artifact


class ArtifactStore:
    """One glyph file on disk (``.svg`` or ``.json``).

    Attributes:
        path: Path to the artifact file
        kind: "svg" or "json", from the file suffix
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.kind = "json" if self.path.suffix.lower() == ".json" else "svg"

    def read(self) -> ParsedArtifact:
        """Read and parse the artifact.

        Raises:
            FileNotFoundError: If the file does not exist
            ArtifactParseError: If the metadata container is unusable
        """
        with open(self.path, "r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                text = f.read()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if self.kind == "json":
            return parse_json_artifact(text)
        return parse_svg(text)

    def render(self, meta: ArtifactMetadata, template: str | None = None) -> str:
        if self.kind == "json":
            return render_json_artifact(meta)
        if template is None:
            template = self.path.read_text(encoding="utf-8")
        return embed_metadata(template, meta)

    def write(self, meta: ArtifactMetadata, template: str | None = None, path: str | Path | None = None) -> Path:
        """Embed metadata and write the artifact.

        Args:
            meta: Metadata to embed
            template: Original artifact text (read from disk when omitted)
            path: Destination (defaults to the artifact's own path)

        Returns:
            Path written
        """
        target = Path(path) if path is not None else self.path
        content = self.render(meta, template)

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a+", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.seek(0)
                f.truncate()
                f.write(content)
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        return target


def write_segment(directory: str | Path, meta: ArtifactMetadata, segment: SegmentFile, blob: bytes) -> Path:
    """Write canonical segment bytes next to the artifact.

    The bytes are written exactly as hashed, so the file's SHA-256 is its cid.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / segment_filename(meta, segment.segment_index)
    with open(target, "wb") as f:
        f.write(blob)
    return target


def read_segment(path: str | Path) -> bytes:
    with open(path, "rb") as f:
        return f.read()
