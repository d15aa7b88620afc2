from __future__ import annotations

import pytest

from netbox_updates.utils.index import compare_versions, is_valid_version, parse_version_string


@pytest.mark.parametrize(
    "text, expected",
    [
        ("netbox-2.9.8", "2.9.8"),
        ("/opt/netbox/netbox-3.7.10", "3.7.10"),
        ("https://github.com/netbox-community/netbox/releases/tag/v2.9.9", "2.9.9"),
        ("netbox-develop", None),
        ("", None),
    ],
)
def test_parse_version_string(text: str, expected: str) -> None:
    assert parse_version_string(text) == expected


@pytest.mark.parametrize("text", ["2.9", "2.9.x", "v2.9.9", "2.9.9.1", " 2.9.9", "latest", ""])
def test_is_valid_version_rejects_anything_but_a_triple(text: str) -> None:
    assert not is_valid_version(text)


def test_is_valid_version_accepts_triple() -> None:
    assert is_valid_version("2.10.0")


def test_compare_versions_is_numeric_not_lexical() -> None:
    assert compare_versions("2.10.0", "2.9.9") == 1
    assert compare_versions("2.9.8", "2.9.9") == -1
    assert compare_versions("3.0.0", "3.0.0") == 0
