"""
Vault Codec: the v1 vault file text format.

A vault file is a sequence of lines:

    V:v1
    ID:<key id>
    K:<base64 wrapped key>
    IV:<base64 key-wrapping IV>
    SG:<base64 password signature>
    S:<base64 KDF salt>
    <blank>
    <chunk IV>
    <chunk data line>
    ...
    <blank>

The header block comes first, followed by zero or more body chunks, each
terminated by a blank line. Lines starting with ``#`` (ignoring leading
whitespace) are comments: they are skipped anywhere in the file and are not
written back on serialization.
"""
import logging
from collections.abc import Iterable

from .exceptions import MalformedHeaderError
from .models import VERSION, EncryptedDataChunk, KeyRecord

logger = logging.getLogger("keyvault")

# header tag -> KeyRecord attribute, in serialization order
HEADER_FIELDS = (
    ("V", "version"),
    ("ID", "id"),
    ("K", "encrypted_key"),
    ("IV", "iv"),
    ("SG", "signature"),
    ("S", "salt"),
)

_SEPARATOR = ":"


def is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


def is_blank(line: str) -> bool:
    return line == ""


def split_file(lines: Iterable[str]) -> list[list[str]]:
    """Split file lines into blank-line delimited blocks.

    Comment lines are dropped. Consecutive blank lines never produce an
    empty block.
    """
    blocks: list[list[str]] = []
    current: list[str] = []
    for line in lines:
        if is_blank(line):
            if current:
                blocks.append(current)
                current = []
        elif not is_comment(line):
            current.append(line)
    if current:
        blocks.append(current)
    return blocks


def parse_header(header_lines: list[str]) -> KeyRecord:
    """Parse the six header lines into a locked ``KeyRecord``.

    Raises:
        MalformedHeaderError: On a wrong line count, a line without ``:``,
            an empty key or value, an unknown or repeated tag, a missing
            tag, or an unsupported version.
    """
    if len(header_lines) != len(HEADER_FIELDS):
        raise MalformedHeaderError(
            f"Invalid {VERSION} header: expected {len(HEADER_FIELDS)} lines, "
            f"got {len(header_lines)}"
        )
    known = dict(HEADER_FIELDS)
    parsed: dict[str, str] = {}
    for line in header_lines:
        tag, sep, value = line.partition(_SEPARATOR)
        if not sep or not tag or not value:
            raise MalformedHeaderError(
                f"Invalid {VERSION} header line: {line!r}"
            )
        if tag not in known:
            raise MalformedHeaderError(f"Unknown {VERSION} header tag: {tag!r}")
        if known[tag] in parsed:
            raise MalformedHeaderError(f"Repeated {VERSION} header tag: {tag!r}")
        parsed[known[tag]] = value
    missing = [tag for tag, attr in HEADER_FIELDS if attr not in parsed]
    if missing:
        raise MalformedHeaderError(
            f"Missing {VERSION} header tag(s): {', '.join(missing)}"
        )
    if parsed["version"] != VERSION:
        raise MalformedHeaderError(
            f"Unsupported vault version: {parsed['version']!r}"
        )
    return KeyRecord(**parsed)


def parse_body(blocks: list[list[str]]) -> list[EncryptedDataChunk]:
    """Map each block to a chunk: first line is the IV, the rest is data."""
    return [
        EncryptedDataChunk(iv=block[0], data=list(block[1:]))
        for block in blocks
        if block
    ]


def parse_file(lines: Iterable[str]) -> tuple[KeyRecord, list[EncryptedDataChunk]]:
    """Parse a whole vault file.

    Args:
        lines: File lines without line terminators.

    Returns:
        Tuple of (header record, body chunks).

    Raises:
        MalformedHeaderError: If the header is missing or invalid.
    """
    blocks = split_file(lines)
    if not blocks:
        raise MalformedHeaderError(f"Invalid {VERSION} file: no header found")
    header = parse_header(blocks[0])
    body = parse_body(blocks[1:])
    logger.debug("Parsed vault file for key %s: %d chunk(s)", header.id, len(body))
    return header, body


def stringify_header(header: KeyRecord) -> list[str]:
    return [
        f"{tag}{_SEPARATOR}{getattr(header, attr)}"
        for tag, attr in HEADER_FIELDS
    ]


def stringify_body(body: Iterable[EncryptedDataChunk]) -> list[str]:
    lines: list[str] = []
    for chunk in body:
        lines.append(chunk.iv)
        lines.extend(chunk.data)
        lines.append("")
    return lines


def stringify(header: KeyRecord, body: Iterable[EncryptedDataChunk]) -> list[str]:
    """Serialize a record and its chunks to file lines.

    The decrypted key, if any, is never written.
    """
    return [*stringify_header(header), "", *stringify_body(body)]


def loads(text: str) -> tuple[KeyRecord, list[EncryptedDataChunk]]:
    """Parse vault file text."""
    return parse_file(text.splitlines())


def dumps(header: KeyRecord, body: Iterable[EncryptedDataChunk]) -> str:
    """Serialize to vault file text, one line per entry."""
    return "\n".join(stringify(header, body)) + "\n"
