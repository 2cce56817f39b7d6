from urllib.parse import parse_qsl, urlsplit

import pytest

from bear_mcp import urls
from bear_mcp.errors import CallbackDecodeError
from bear_mcp.urls import build_url, decode_query, encode_params


def test_search_url_keeps_insertion_order():
    url = build_url("search", {"term": "foo", "tag": "bar"})
    assert url == "bear://x-callback-url/search?term=foo&tag=bar"
    assert dict(parse_qsl(urlsplit(url).query)) == {"term": "foo", "tag": "bar"}


def test_no_params_means_no_query_string():
    assert build_url("today") == "bear://x-callback-url/today"
    assert build_url("today", {"search": None, "show_window": False}) == "bear://x-callback-url/today"


def test_unset_values_are_omitted():
    query = encode_params({"id": "ABC", "title": None, "header": "H"})
    assert query == "id=ABC&header=H"


def test_flags_are_yes_or_absent():
    query = encode_params({"pin": True, "edit": False, "show_window": True})
    assert query == "pin=yes&show_window=yes"
    assert "no" not in query


def test_keys_and_values_are_percent_encoded():
    query = encode_params({"text": "a b&c=d/é", "x-success": "http://localhost:1/callback"})
    assert query == "text=a%20b%26c%3Dd%2F%C3%A9&x-success=http%3A%2F%2Flocalhost%3A1%2Fcallback"
    assert dict(parse_qsl(query)) == {"text": "a b&c=d/é", "x-success": "http://localhost:1/callback"}


def test_every_defined_key_appears_exactly_once():
    params = {"a": "1", "b": None, "c": True, "d": "", "e": False}
    keys = [k for k, _ in parse_qsl(encode_params(params), keep_blank_values=True)]
    assert keys == ["a", "c", "d"]


def test_custom_scheme():
    assert build_url("tags", {"token": "t"}, scheme="bear-beta") == "bear-beta://x-callback-url/tags?token=t"


def test_json_array_fields_are_parsed():
    assert decode_query("notes=%5B%5D") == {"notes": []}
    result = decode_query("tags=%5B%22work%22%2C%22home%22%5D")
    assert result == {"tags": ["work", "home"]}


def test_array_fields_fall_back_to_raw_string():
    assert decode_query("tags=work%2Chome") == {"tags": "work,home"}
    assert decode_query("notes=%7B%7D") == {"notes": "{}"}


@pytest.mark.parametrize("raw, expected", [("yes", True), ("no", False), ("YES", False), ("", False)])
def test_flag_fields(raw, expected):
    assert decode_query(f"is_trashed={raw}") == {"is_trashed": expected}
    assert decode_query(f"pin={raw}") == {"pin": expected}


def test_other_fields_are_plain_strings():
    result = decode_query("identifier=ABC-1&title=Hello+World&note=%23%20Title")
    assert result == {"identifier": "ABC-1", "title": "Hello World", "note": "# Title"}


def test_invalid_utf8_is_a_decode_error():
    with pytest.raises(CallbackDecodeError):
        decode_query("note=%FF%FE")


def test_rule_table_is_consulted(monkeypatch):
    monkeypatch.setitem(urls.DECODE_RULES, "count", int)
    assert decode_query("count=3&other=3") == {"count": 3, "other": "3"}
    with pytest.raises(CallbackDecodeError):
        decode_query("count=three")
