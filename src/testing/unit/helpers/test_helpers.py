import logging

import pytest

from mongobench.helpers import (
    _fatal,
    _make_exception,
    credentials_prefix,
    embed_credentials,
    ensure_mongodb_scheme,
    extract_url_credentials,
    find_endpoint_credentials,
    mask_credentials,
    split_endpoints,
)


def test_make_exception_chains_message():
    assert str(_make_exception("outer")) == "outer"
    assert str(_make_exception("outer", ValueError("inner"))) == "outer\nInner err: inner"


def test_fatal_logs_and_exits(caplog):
    with caplog.at_level(logging.CRITICAL, logger="mongobench"):
        with pytest.raises(SystemExit) as exc_info:
            _fatal("Could not start", OSError("no route"))

    assert exc_info.value.code == 1
    assert "Could not start\nInner err: no route" in caplog.text


def test_split_endpoints():
    assert split_endpoints("mongodb://a|mongodb://b") == ["mongodb://a", "mongodb://b"]
    assert split_endpoints(" h1 || h2 ") == ["h1", "h2"]
    assert split_endpoints("|") == []


@pytest.mark.parametrize(
    "url, expected",
    [
        ("mongodb://u:p@host:27017/db", ("u", "p")),
        ("mongodb://u@host", ("u", "")),
        ("u:p@host", ("u", "p")),
        ("mongodb://host", None),
    ],
)
def test_extract_url_credentials(url, expected):
    assert extract_url_credentials(url) == expected


def test_credentials_round_trip_for_display():
    prefix = credentials_prefix("bench", "pw")
    assert prefix == "bench:pw@"
    assert credentials_prefix("bench", "") == "bench@"
    assert credentials_prefix("", "pw") == ""

    url = embed_credentials("mongodb://h1:27017", prefix)
    assert url == "mongodb://bench:pw@h1:27017"
    assert mask_credentials(url, "bench", prefix) == "mongodb://bench:XXXXXX@h1:27017"
    # URLs with their own credentials are left alone
    assert embed_credentials("mongodb://a:b@h1", prefix) == "mongodb://a:b@h1"


def test_ensure_mongodb_scheme():
    assert ensure_mongodb_scheme("h1:27017") == "mongodb://h1:27017"
    assert ensure_mongodb_scheme("mongodb+srv://c.example.net") == "mongodb+srv://c.example.net"


def test_find_endpoint_credentials():
    assert find_endpoint_credentials("mongodb://h1|mongodb://u:p@h2") == ("u", "p")
    assert find_endpoint_credentials("mongodb://a:b@h1|mongodb://u:p@h2") == ("a", "b")
    assert find_endpoint_credentials("mongodb://h1|mongodb://h2") is None
