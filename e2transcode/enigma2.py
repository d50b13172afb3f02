"""
Live channel discovery against an Enigma2 receiver web interface.

The receiver exposes its service directory as XML below ``/web/getservices``.
Discovery looks up the configured bouquet in the top level listing and then
enumerates the channels of that bouquet into the stream map.

Deutsch:
    Senderermittlung über die Weboberfläche eines Enigma2-Receivers.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote_plus
from xml.etree import ElementTree as ET

import requests

from . import __version__
from .models import DEFAULT_BOUQUET, ReceiverSettings, ServiceDirectoryEntry, StreamMap

log = logging.getLogger(__name__)

USER_AGENT = f"e2transcode/{__version__}"
SERVICE_LIST_TAG = "e2servicelist"
SERVICE_TAG = "e2service"
SERVICE_NAME_TAG = "e2servicename"
SERVICE_REFERENCE_TAG = "e2servicereference"


class FetchError(Exception):
    """Raised when a receiver document cannot be fetched. / Abruf fehlgeschlagen."""


class TransportError(FetchError):
    def __init__(self, url: str, cause: Exception):
        super().__init__(f"GET error: {url}: {cause}")
        self.url = url
        self.cause = cause


class StatusError(FetchError):
    def __init__(self, url: str, status_code: int):
        super().__init__(f"Status error: {url}: {status_code}")
        self.url = url
        self.status_code = status_code


class ReadError(FetchError):
    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Read body: {url}: {cause}")
        self.url = url
        self.cause = cause


def fetch_xml(url: str) -> bytes:
    """
    Fetch ``url`` once and return the raw body of a 200 response.

    Deutsch:
        Ruft ``url`` einmal ab und liefert den Rohinhalt einer 200-Antwort.
    """

    session = _get_http_session()
    log.debug("GET %s", url)
    try:
        response = session.get(url, stream=True)
    except requests.RequestException as exc:
        raise TransportError(url, exc) from exc
    with response:
        if response.status_code != 200:
            raise StatusError(url, response.status_code)
        try:
            return response.content
        except (requests.RequestException, OSError) as exc:
            raise ReadError(url, exc) from exc


def parse_service_list(payload: bytes) -> List[ServiceDirectoryEntry]:
    """
    Decode an ``e2servicelist`` document into ordered entries.

    Undecodable payloads yield an empty list; a receiver answering with
    garbage is treated like one without services.

    Deutsch:
        Dekodiert eine ``e2servicelist``; fehlerhafte Daten ergeben eine leere Liste.
    """

    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        log.warning("ignoring malformed service list: %s", exc)
        return []
    if root.tag != SERVICE_LIST_TAG:
        log.warning("ignoring service list with unexpected root element <%s>", root.tag)
        return []

    entries: List[ServiceDirectoryEntry] = []
    for service in root.findall(SERVICE_TAG):
        entries.append(
            ServiceDirectoryEntry(
                name=service.findtext(SERVICE_NAME_TAG, default=""),
                reference=service.findtext(SERVICE_REFERENCE_TAG, default=""),
            )
        )
    return entries


def channel_name(name: str) -> str:
    """Map a display name to a stream key (``"Das-Erste HD"`` -> ``"das_erste_hd"``)."""

    return name.lower().replace(" ", "_").replace("-", "_")


def services_url(host: str, reference: str = "") -> str:
    url = f"http://{host}/web/getservices"
    if reference:
        url += "?sRef=" + quote_plus(reference)
    return url


def stream_url(host: str, port: str, reference: str) -> str:
    return f"http://{host}:{port}/{reference}"


def list_services(host: str, reference: str = "") -> List[ServiceDirectoryEntry]:
    """
    List the bouquets of ``host``, or the channels of bouquet ``reference``.

    Deutsch:
        Listet die Bouquets bzw. die Sender eines Bouquets.
    """

    return parse_service_list(fetch_xml(services_url(host, reference)))


def find_bouquet(entries: List[ServiceDirectoryEntry], name: str) -> Optional[ServiceDirectoryEntry]:
    for entry in entries:
        if entry.name == name:
            return entry
    return None


def discover_streams(receiver: ReceiverSettings, streams: StreamMap) -> StreamMap:
    """
    Merge the channels of the receiver's bouquet into ``streams``.

    ``streams`` is mutated in place and returned. Discovered keys overwrite
    existing entries. ``receiver.reference`` is set when the bouquet is found.
    Fetch failures propagate as :class:`FetchError`.

    Deutsch:
        Übernimmt die Sender des konfigurierten Bouquets in die Stream-Tabelle.
    """

    if not receiver.enabled:
        log.debug("no enigma2 receiver configured, skipping discovery")
        return streams

    if not receiver.bouquet:
        receiver.bouquet = DEFAULT_BOUQUET

    bouquets = list_services(receiver.host)
    match = find_bouquet(bouquets, receiver.bouquet)
    if match is None:
        log.info(
            "bouquet %r not found on %s (%d bouquets listed)", receiver.bouquet, receiver.host, len(bouquets)
        )
        return streams
    receiver.reference = match.reference
    if not receiver.reference:
        log.info("bouquet %r on %s has no service reference", receiver.bouquet, receiver.host)
        return streams

    channels = list_services(receiver.host, receiver.reference)
    for channel in channels:
        key = channel_name(channel.name)
        if key in streams:
            log.debug("discovered channel %s replaces %s", key, streams[key])
        streams[key] = stream_url(receiver.host, receiver.port, channel.reference)
    log.info("discovered %d channels in bouquet %r on %s", len(channels), receiver.bouquet, receiver.host)
    return streams


def _get_http_session() -> requests.Session:
    global _HTTP_SESSION
    if _HTTP_SESSION is None:
        session = requests.Session()
        session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "Accept": "application/xml, text/xml, */*",
            }
        )
        _HTTP_SESSION = session
    return _HTTP_SESSION


_HTTP_SESSION: Optional[requests.Session] = None
