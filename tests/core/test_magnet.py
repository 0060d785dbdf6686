import base64

import pytest

from ccstream.core.magnet import extract_info_hash, parse_magnet
from ccstream.utils.exceptions import InvalidMagnetError

HEX = "0123456789abcdef0123456789abcdef01234567"


def test_extract_info_hash_lowercases():
    magnet = f"magnet:?xt=urn:btih:{HEX.upper()}&dn=Example"
    assert extract_info_hash(magnet) == HEX


def test_extract_info_hash_ignores_parameter_order():
    magnet = f"magnet:?dn=Example&tr=udp://t:80&xt=urn:btih:{HEX}"
    assert extract_info_hash(magnet) == HEX


@pytest.mark.parametrize(
    "magnet",
    [
        "",
        "magnet:?dn=nohash",
        "magnet:?xt=urn:btih:0123",
        "not a magnet at all",
    ],
)
def test_extract_info_hash_rejects_missing_hash(magnet):
    with pytest.raises(InvalidMagnetError) as exc_info:
        extract_info_hash(magnet)
    assert exc_info.value.http_status == 400
    assert exc_info.value.code == "INVALID_MAGNET"


def test_parse_magnet_hex():
    uri = f"magnet:?xt=urn:btih:{HEX}&dn=example&tr=http://t/announce&ws=http://seed/f"
    mi = parse_magnet(uri)
    assert mi.info_hash == HEX
    assert mi.display_name == "example"
    assert mi.trackers == ["http://t/announce"]
    assert mi.web_seeds == ["http://seed/f"]


def test_parse_magnet_base32():
    ih = bytes.fromhex("89abcdef89abcdef89abcdef89abcdef89abcd12")
    b32 = base64.b32encode(ih).decode().lower()
    mi = parse_magnet(f"magnet:?xt=urn:btih:{b32}")
    assert mi.info_hash == ih.hex()


def test_parse_magnet_requires_scheme():
    with pytest.raises(InvalidMagnetError):
        parse_magnet(f"http://example.com/?xt=urn:btih:{HEX}")
