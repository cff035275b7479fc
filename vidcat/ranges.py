import re
from dataclasses import dataclass

from vidcat.errors import InvalidRangeSyntax, RangeNotSatisfiable

# upper bound on what an open-ended range (`bytes=N-`) is served in one response
WINDOW_SIZE = 1024 * 1024

_RANGE_RE = re.compile(r"bytes=([0-9]+)-([0-9]*)")


@dataclass(frozen=True)
class RangeRequest:
    start: int
    end: int | None


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start + 1


def parse_range(header: str | None) -> RangeRequest | None:
    """Parse a single `Range: bytes=<start>-[<end>]` header value.

    Returns None when no header was sent. Any other shape (suffix ranges,
    multiple ranges, other units) raises InvalidRangeSyntax.
    """
    if header is None:
        return None
    match = _RANGE_RE.fullmatch(header.strip())
    if match is None:
        raise InvalidRangeSyntax(f"Invalid range header: {header!r}")
    start, end = match.groups()
    return RangeRequest(start=int(start), end=int(end) if end else None)


def resolve_range(
    request: RangeRequest | None,
    total: int,
    window_size: int = WINDOW_SIZE,
) -> ByteRange | None:
    """Clamp a parsed range against the resource length.

    None means the full resource was requested.
    """
    if request is None:
        return None
    if not 0 <= request.start < total:
        raise RangeNotSatisfiable(
            f"Range start {request.start} is beyond resource length {total}",
            total=total,
        )
    if request.end is not None:
        end = min(request.end, total - 1)
    else:
        end = min(request.start + window_size - 1, total - 1)
    if end < request.start:
        raise RangeNotSatisfiable(
            f"Range {request.start}-{request.end} is empty",
            total=total,
        )
    return ByteRange(start=request.start, end=end)
