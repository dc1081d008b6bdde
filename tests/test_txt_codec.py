"""
Brief: Tests for lanbeacon.txt encode/decode.

Inputs:
  - None

Outputs:
  - None
"""

from lanbeacon import txt


def test_encode_renders_scalars_in_order():
    """
    Brief: encode() keeps mapping order and renders bools as true/false.

    Inputs:
      - mapping with str, int, bool values

    Outputs:
      - None: Asserts encoded entries
    """
    out = txt.encode({"path": "/", "ver": 2, "secure": True, "debug": False})
    assert out == [b"path=/", b"ver=2", b"secure=true", b"debug=false"]


def test_encode_none_and_empty():
    assert txt.encode(None) == []
    assert txt.encode({}) == []


def test_decode_lowercases_keys_and_keeps_values():
    """
    Brief: decode() lowercases keys but preserves value case and extra '='.

    Inputs:
      - list of raw entries

    Outputs:
      - None: Asserts mapping
    """
    out = txt.decode([b"Path=/Index", b"expr=a=b", b"flag", b""])
    assert out == {"path": "/Index", "expr": "a=b", "flag": ""}


def test_decode_accepts_single_values_and_none():
    assert txt.decode(None) == {}
    assert txt.decode(b"k=v") == {"k": "v"}
    assert txt.decode("K=V") == {"k": "V"}
    assert txt.decode(["a=1", b"b=2"]) == {"a": "1", "b": "2"}


def test_decode_replaces_invalid_utf8():
    out = txt.decode([b"name=\xff\xfe"])
    assert set(out) == {"name"}
    assert "�" in out["name"]


def test_decode_reads_encode_output():
    encoded = txt.encode({"ID": "abc", "n": 1.5})
    assert txt.decode(encoded) == {"id": "abc", "n": "1.5"}
