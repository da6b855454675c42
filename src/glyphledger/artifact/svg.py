"""Embedded metadata container.

A glyph is an SVG whose canonical ``<metadata>`` block holds the ledger
JSON. Blocks marked ``data-noncanonical="1"`` are display copies and are
ignored. Plain ``.json`` artifacts carry the same document directly.
"""
import json
import mimetypes
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import escape

from ..core.constants import SIGIL_CTX, SIGIL_TYPE
from ..core.errors import ArtifactParseError, StructuralError
from ..core.model import ArtifactMetadata, Payload
from ..identity.keys import phi_from_public_key
from ..ledger.legacy import make_payload

NONCANONICAL_ATTR = "data-noncanonical"

# attribute -> (wire key, int?)
ATTRIBUTE_FALLBACKS = (
    ("data-pulse", "pulse", True),
    ("data-beat", "beat", True),
    ("data-step-index", "stepIndex", True),
    ("data-harmonic-day", "chakraDay", False),
    ("data-chakra-day", "chakraDay", False),
    ("data-kai-signature", "contentSignature", False),
    ("data-phi-key", "ownerKey", False),
)

_CANONICAL_BLOCK = re.compile(
    r'''<metadata\b(?![^>]*\bdata-noncanonical\s*=\s*["']1["'])([^>]*?)(?:/>|>.*?</metadata>)''',
    re.IGNORECASE | re.DOTALL,
)
_SVG_OPEN = re.compile(r"<svg\b([^>]*?)(/?)>", re.IGNORECASE)


@dataclass
class ParsedArtifact:
    """Artifact text plus its decoded metadata."""
    text: str
    metadata: ArtifactMetadata
    kind: str = "svg"

    @property
    def context_ok(self) -> bool:
        return self.metadata.context is None or self.metadata.context == SIGIL_CTX

    @property
    def type_ok(self) -> bool:
        return self.metadata.type is None or self.metadata.type == SIGIL_TYPE


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def metadata_from_json(data: dict) -> ArtifactMetadata:
    """Decode embedded JSON into metadata.

    Fills ownerKey from creatorPublicKey when only the key is present.
    """
    meta = ArtifactMetadata.from_dict(data)
    if meta.owner_key is None and meta.creator_public_key:
        meta.owner_key = phi_from_public_key(meta.creator_public_key)
    return meta


def _apply_attribute_fallbacks(root: ET.Element, data: dict) -> None:
    for attr, key, as_int in ATTRIBUTE_FALLBACKS:
        if data.get(key) is not None:
            continue
        for element in root.iter():
            value = element.get(attr)
            if value is None:
                continue
            if as_int:
                try:
                    data[key] = int(value)
                except ValueError:
                    pass
            else:
                data[key] = value
            break


def parse_svg(text: str) -> ParsedArtifact:
    """Parse an SVG glyph and extract its canonical metadata.

    Raises:
        ArtifactParseError: If the SVG is malformed, has no canonical
            metadata block, more than one, or the block is not a JSON object
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ArtifactParseError(f"SVG is not well-formed XML: {e}") from e

    blocks = [el for el in root.iter() if _local_name(el.tag) == "metadata"]
    canonical = [el for el in blocks if el.get(NONCANONICAL_ATTR) != "1"]
    if not canonical:
        raise ArtifactParseError("no canonical <metadata> block")
    if len(canonical) > 1:
        raise ArtifactParseError(f"{len(canonical)} canonical <metadata> blocks; expected one")

    raw = (canonical[0].text or "").strip()
    if raw:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ArtifactParseError(f"<metadata> is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ArtifactParseError("<metadata> JSON must be an object")
    else:
        data = {}

    _apply_attribute_fallbacks(root, data)
    try:
        meta = metadata_from_json(data)
    except StructuralError as e:
        raise ArtifactParseError(str(e)) from e
    return ParsedArtifact(text=text, metadata=meta, kind="svg")


def parse_json_artifact(text: str) -> ParsedArtifact:
    """Parse a bare-JSON artifact.

    Raises:
        ArtifactParseError: If the document is not a JSON object
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ArtifactParseError(f"artifact is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ArtifactParseError("artifact JSON must be an object")
    try:
        meta = metadata_from_json(data)
    except StructuralError as e:
        raise ArtifactParseError(str(e)) from e
    return ParsedArtifact(text=text, metadata=meta, kind="json")


def embed_metadata(text: str, meta: ArtifactMetadata) -> str:
    """Write metadata into the canonical block of an SVG.

    Replaces the canonical block's content (keeping its attributes), or
    inserts a new block right after the opening ``<svg>`` tag.

    Raises:
        ArtifactParseError: If there is no <svg> element to embed into
    """
    body = escape(json.dumps(meta.to_dict(), indent=2, ensure_ascii=False))

    def replace(match: re.Match) -> str:
        return f"<metadata{match.group(1)}>{body}</metadata>"

    if _CANONICAL_BLOCK.search(text):
        return _CANONICAL_BLOCK.sub(replace, text, count=1)

    def insert(match: re.Match) -> str:
        block = f"<metadata>{body}</metadata>"
        if match.group(2):
            return f"<svg{match.group(1)}>{block}</svg>"
        return f"<svg{match.group(1)}>{block}"

    if not _SVG_OPEN.search(text):
        raise ArtifactParseError("no <svg> element to embed metadata into")
    return _SVG_OPEN.sub(insert, text, count=1)


def render_json_artifact(meta: ArtifactMetadata) -> str:
    return json.dumps(meta.to_dict(), indent=2, ensure_ascii=False) + "\n"


def file_to_payload(path: str | Path) -> Payload:
    """Read a file from disk as a transfer payload."""
    path = Path(path)
    mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return make_payload(path.name, mime, path.read_bytes())
