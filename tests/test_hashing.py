from __future__ import annotations

import hashlib
import re

import pytest

from pynagare._hashing import canonical_json, encode_key
from pynagare.exceptions import NagareConfigError


def test_canonical_json_sorts_and_compacts() -> None:
    assert canonical_json({"b": [1, 2], "a": {"d": 1, "c": None}}) == '{"a":{"c":null,"d":1},"b":[1,2]}'


def test_encode_key_is_eight_lowercase_hex_chars() -> None:
    assert re.fullmatch(r"[0-9a-f]{8}", encode_key(["todos", {"page": 1}]))


def test_encode_key_matches_md5_prefix() -> None:
    expected = hashlib.md5(b'["todos",1]', usedforsecurity=False).hexdigest()[:8]

    assert encode_key(["todos", 1]) == expected


def test_dict_ordering_does_not_matter() -> None:
    assert encode_key({"page": 1, "q": "x"}) == encode_key({"q": "x", "page": 1})


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("1", 1),
        (["a", "b"], ["b", "a"]),
        ({"page": 1}, {"page": 2}),
    ],
)
def test_distinct_keys_encode_differently(left: object, right: object) -> None:
    assert encode_key(left) != encode_key(right)


def test_tuple_and_list_are_the_same_key() -> None:
    assert encode_key(("todos", 1)) == encode_key(["todos", 1])


@pytest.mark.parametrize("key", [{1, 2}, object(), float("nan")])
def test_unserializable_key_raises(key: object) -> None:
    with pytest.raises(NagareConfigError):
        encode_key(key)
