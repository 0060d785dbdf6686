import pytest

from ccstream.streaming.range import parse_range_header
from ccstream.utils.exceptions import InvalidRangeError, MissingRangeHeaderError

LENGTH = 5_000_000


def test_open_ended_range_is_capped_to_default_chunk():
    rng = parse_range_header("bytes=0-", LENGTH)
    assert (rng.start, rng.end) == (0, 999_999)
    assert rng.content_length == 1_000_000
    assert rng.content_range == "bytes 0-999999/5000000"


def test_open_ended_range_near_end_is_clamped():
    rng = parse_range_header("bytes=4999000-", LENGTH)
    assert rng.end == 4_999_999
    assert rng.content_length == 1_000


def test_explicit_range():
    rng = parse_range_header("bytes=100-199", LENGTH)
    assert (rng.start, rng.end, rng.content_length) == (100, 199, 100)


def test_single_byte_range():
    rng = parse_range_header("bytes=4999999-4999999", LENGTH)
    assert rng.content_length == 1


def test_custom_default_chunk_size():
    rng = parse_range_header("bytes=10-", LENGTH, default_chunk_size=10)
    assert rng.end == 19


def test_header_is_case_and_whitespace_tolerant():
    rng = parse_range_header("  Bytes = 5 - 9 ", LENGTH)
    assert (rng.start, rng.end) == (5, 9)


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_header(header):
    with pytest.raises(MissingRangeHeaderError) as exc_info:
        parse_range_header(header, LENGTH)
    assert exc_info.value.http_status == 400
    assert exc_info.value.code == "MISSING_RANGE_HEADER"


@pytest.mark.parametrize(
    "header",
    [
        "bytes=-500",
        "bytes=0-10,20-30",
        "items=0-10",
        "bytes=abc-",
        "bytes=10-5",
        "bytes=5000000-",
        "bytes=0-5000000",
    ],
)
def test_invalid_ranges(header):
    with pytest.raises(InvalidRangeError) as exc_info:
        parse_range_header(header, LENGTH)
    assert exc_info.value.http_status == 400


def test_empty_resource_is_unsatisfiable():
    with pytest.raises(InvalidRangeError):
        parse_range_header("bytes=0-", 0)
