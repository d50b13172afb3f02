from __future__ import annotations

import pytest

from e2transcode import enigma2
from e2transcode.enigma2 import StatusError, TransportError, discover_streams
from e2transcode.models import ReceiverSettings


def test_discovery_skipped_without_host_or_port(fake_session) -> None:
    streams = {"a": "url1"}
    for receiver in (ReceiverSettings(host="10.0.0.5"), ReceiverSettings(port="80"), ReceiverSettings()):
        assert discover_streams(receiver, streams) == {"a": "url1"}
        assert receiver.reference == ""
    assert fake_session.requested == []


def test_discovery_merges_bouquet_channels(receiver_session, favourites_ref: str) -> None:
    receiver = ReceiverSettings(host="10.0.0.5", port="80")
    streams = {"static": "http://example/static.m3u8"}

    result = discover_streams(receiver, streams)

    assert result is streams
    assert receiver.bouquet == "Favourites (TV)"
    assert receiver.reference == favourites_ref
    assert streams == {
        "static": "http://example/static.m3u8",
        "das_erste_hd": "http://10.0.0.5:80/1:0:19:283D:3FB:1:C00000:0:0:0:",
        "zdf_hd": "http://10.0.0.5:80/1:0:19:2B66:3F3:1:C00000:0:0:0:",
    }
    assert receiver_session.requested == [
        "http://10.0.0.5/web/getservices",
        enigma2.services_url("10.0.0.5", favourites_ref),
    ]


def test_discovered_entry_overrides_static_entry(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist><e2service><e2servicename>TV</e2servicename>"
        b"<e2servicereference>1:7:1:bq</e2servicereference></e2service></e2servicelist>",
    )
    fake_session.add(
        enigma2.services_url("box", "1:7:1:bq"),
        b"<e2servicelist><e2service><e2servicename>A</e2servicename>"
        b"<e2servicereference>1:0:1:A</e2servicereference></e2service></e2servicelist>",
    )
    streams = {"a": "url1"}

    discover_streams(ReceiverSettings(host="box", port="8001", bouquet="TV"), streams)

    assert streams == {"a": "http://box:8001/1:0:1:A"}


def test_later_channel_wins_on_same_key(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist><e2service><e2servicename>TV</e2servicename>"
        b"<e2servicereference>bq</e2servicereference></e2service></e2servicelist>",
    )
    fake_session.add(
        enigma2.services_url("box", "bq"),
        b"<e2servicelist>"
        b"<e2service><e2servicename>Sky News</e2servicename><e2servicereference>first</e2servicereference></e2service>"
        b"<e2service><e2servicename>sky-news</e2servicename><e2servicereference>second</e2servicereference></e2service>"
        b"</e2servicelist>",
    )
    streams: dict = {}

    discover_streams(ReceiverSettings(host="box", port="80", bouquet="TV"), streams)

    assert streams == {"sky_news": "http://box:80/second"}


def test_bouquet_lookup_picks_first_exact_match(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist>"
        b"<e2service><e2servicename>favourites (tv)</e2servicename><e2servicereference>lower</e2servicereference></e2service>"
        b"<e2service><e2servicename>Favourites (TV) 2</e2servicename><e2servicereference>partial</e2servicereference></e2service>"
        b"<e2service><e2servicename>Favourites (TV)</e2servicename><e2servicereference>first</e2servicereference></e2service>"
        b"<e2service><e2servicename>Favourites (TV)</e2servicename><e2servicereference>second</e2servicereference></e2service>"
        b"</e2servicelist>",
    )
    fake_session.add(enigma2.services_url("box", "first"), b"<e2servicelist/>")
    receiver = ReceiverSettings(host="box", port="80")

    discover_streams(receiver, {})

    assert receiver.reference == "first"
    assert fake_session.requested[-1] == enigma2.services_url("box", "first")


def test_missing_bouquet_leaves_streams_unchanged(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist><e2service><e2servicename>Radio</e2servicename>"
        b"<e2servicereference>1:7:2</e2servicereference></e2service></e2servicelist>",
    )
    receiver = ReceiverSettings(host="box", port="80", bouquet="Favourites (TV)")
    streams = {"a": "url1"}

    discover_streams(receiver, streams)

    assert streams == {"a": "url1"}
    assert receiver.reference == ""
    assert fake_session.requested == ["http://box/web/getservices"]


def test_malformed_bouquet_list_discovers_nothing(fake_session) -> None:
    fake_session.add("http://box/web/getservices", b"<e2servicelist><broken")
    streams = {"a": "url1"}

    discover_streams(ReceiverSettings(host="box", port="80"), streams)

    assert streams == {"a": "url1"}
    assert len(fake_session.requested) == 1


def test_bouquet_fetch_failure_propagates(fake_session) -> None:
    fake_session.add("http://box/web/getservices", b"", status_code=500)
    with pytest.raises(StatusError):
        discover_streams(ReceiverSettings(host="box", port="80"), {})


def test_channel_fetch_failure_propagates(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist><e2service><e2servicename>Favourites (TV)</e2servicename>"
        b"<e2servicereference>bq</e2servicereference></e2service></e2servicelist>",
    )
    with pytest.raises(TransportError):
        discover_streams(ReceiverSettings(host="box", port="80"), {})


def test_bouquet_without_reference_is_not_enumerated(fake_session) -> None:
    fake_session.add(
        "http://box/web/getservices",
        b"<e2servicelist><e2service><e2servicename>Favourites (TV)</e2servicename></e2service></e2servicelist>",
    )
    receiver = ReceiverSettings(host="box", port="80")
    streams = {"a": "url1"}

    discover_streams(receiver, streams)

    assert streams == {"a": "url1"}
    assert receiver.reference == ""
    assert fake_session.requested == ["http://box/web/getservices"]
