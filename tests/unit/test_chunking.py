"""
Tests for fixed-size splitting and reassembly.
"""

import os

import pytest

from weightvault.storage.chunking import assemble_chunks, chunk_sizes, split_buffer


@pytest.mark.parametrize("length", [0, 1, 9, 10, 11, 25, 100])
@pytest.mark.parametrize("chunk_size", [1, 3, 10, 64])
def test_split_then_assemble_reproduces_buffer(length, chunk_size):
    """assemble(split(B, C)) == B for any buffer and chunk size."""
    data = os.urandom(length)
    assert assemble_chunks(split_buffer(data, chunk_size)) == data


def test_split_piece_lengths():
    """Every piece is chunk_size long except the remainder at the end."""
    pieces = split_buffer(b"a" * 25, 10)
    assert [len(p) for p in pieces] == [10, 10, 5]


def test_split_evenly_divisible_has_full_last_chunk():
    pieces = split_buffer(b"b" * 30, 10)
    assert [len(p) for p in pieces] == [10, 10, 10]


def test_split_empty_buffer():
    assert split_buffer(b"", 10) == []


def test_split_accepts_bytearray_and_returns_bytes():
    pieces = split_buffer(bytearray(b"abcdef"), 4)
    assert pieces == [b"abcd", b"ef"]
    assert all(isinstance(p, bytes) for p in pieces)


def test_split_rejects_zero_chunk_size():
    with pytest.raises(ValueError):
        split_buffer(b"abc", 0)


def test_assemble_respects_given_order():
    assert assemble_chunks([b"c", b"a", b"b"]) == b"cab"


def test_chunk_sizes_matches_split():
    data = b"x" * 47
    assert chunk_sizes(len(data), 10) == [len(p) for p in split_buffer(data, 10)]


def test_chunk_sizes_for_120_mib_in_50_mib_chunks():
    """120 MiB with 50 MiB chunks is stored as [50, 50, 20] MiB."""
    mib = 1024 * 1024
    assert chunk_sizes(120 * mib, 50 * mib) == [50 * mib, 50 * mib, 20 * mib]
