"""
Fixed-size splitting and reassembly of binary buffers.

assemble_chunks(split_buffer(data, n)) == data for every buffer and n >= 1.
"""

from typing import Iterable, List


def split_buffer(buffer: bytes, chunk_size: int) -> List[bytes]:
    """
    Split a buffer left-to-right into chunk_size pieces.

    Every piece is exactly chunk_size bytes except the last, which holds the
    remainder (1..chunk_size bytes). An empty buffer yields no pieces.

    Args:
        buffer: Bytes-like object to split
        chunk_size: Maximum piece length (>= 1)

    Returns:
        Ordered list of pieces
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    view = memoryview(buffer)
    return [bytes(view[i : i + chunk_size]) for i in range(0, len(view), chunk_size)]


def assemble_chunks(ordered_buffers: Iterable[bytes]) -> bytes:
    """Concatenate pieces in the given order."""
    return b"".join(ordered_buffers)


def chunk_sizes(total_size: int, chunk_size: int) -> List[int]:
    """Sizes split_buffer would produce for a buffer of total_size bytes."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    full, remainder = divmod(total_size, chunk_size)
    sizes = [chunk_size] * full
    if remainder:
        sizes.append(remainder)
    return sizes
