import pytest

from pyizar.src.utils import encryption
from pyizar.src.utils.encryption import (
    PRIOS_DEFAULT_KEY1, PRIOS_DEFAULT_KEY2, PRIOS_HEADER_SENTINEL,
    convert_key, decode_prios, decrypt_prios, find_key_index, initialize_keys, uint32_from_bytes
)

SAP_FRAME = bytes.fromhex("1944304C72242421D401A2013D4013DD8B46A4999C1293E582CC")


def test_uint32_from_bytes_byte_order():
    data = bytes([0x00, 0x01, 0x02, 0x03, 0x04])
    assert uint32_from_bytes(data, 1) == 0x01020304
    assert uint32_from_bytes(data, 1, reverse=True) == 0x04030201
    with pytest.raises(IndexError):
        uint32_from_bytes(data, 3)


def test_convert_key_folds_halves():
    assert convert_key(PRIOS_DEFAULT_KEY1) == 0x39BC8A10 ^ 0xE66D83F8
    assert convert_key("51728910 E66D83F8") == 0x51728910 ^ 0xE66D83F8


@pytest.mark.parametrize("bad_key", ["", "39BC8A10", "39BC8A10E66D83F8AA", "ZZBC8A10E66D83F8"])
def test_convert_key_rejects_invalid_keys(bad_key):
    with pytest.raises(ValueError):
        convert_key(bad_key)


def test_default_keys_used_without_configured_key():
    assert initialize_keys() == [convert_key(PRIOS_DEFAULT_KEY1), convert_key(PRIOS_DEFAULT_KEY2)]
    assert initialize_keys("") == initialize_keys(None)


def test_configured_key_replaces_defaults():
    assert initialize_keys("0000000000000000") == [0]


def test_decode_validates_header_sentinel():
    decoded = decode_prios(SAP_FRAME, SAP_FRAME, convert_key(PRIOS_DEFAULT_KEY1))

    assert len(decoded) == len(SAP_FRAME) - 15
    assert decoded[0] == PRIOS_HEADER_SENTINEL


def test_decode_with_wrong_key_is_empty():
    assert decode_prios(SAP_FRAME, SAP_FRAME, 0) == b''


def test_decode_short_input_is_empty():
    key = convert_key(PRIOS_DEFAULT_KEY1)
    assert decode_prios(SAP_FRAME, SAP_FRAME[:15], key) == b''
    assert decode_prios(SAP_FRAME[:9], SAP_FRAME, key) == b''


def test_decrypt_tries_keys_in_order_and_stops_at_first_success(monkeypatch):
    calls = []

    def fake_decode(origin, frame, key):
        calls.append(key)
        return b'\x4b\x01' if key in (2, 3) else b''

    monkeypatch.setattr(encryption, "decode_prios", fake_decode)

    assert decrypt_prios(SAP_FRAME, SAP_FRAME, [1, 2, 3]) == b'\x4b\x01'
    assert calls == [1, 2]


def test_decrypt_exhausted_returns_empty(monkeypatch):
    calls = []

    def fake_decode(origin, frame, key):
        calls.append(key)
        return b''

    monkeypatch.setattr(encryption, "decode_prios", fake_decode)

    assert decrypt_prios(SAP_FRAME, SAP_FRAME, [5, 6, 7]) == b''
    assert calls == [5, 6, 7]


def test_find_key_index():
    keys = [0, convert_key(PRIOS_DEFAULT_KEY1)]
    assert find_key_index(SAP_FRAME, SAP_FRAME, keys) == 1
    assert find_key_index(SAP_FRAME, SAP_FRAME, [0]) is None
