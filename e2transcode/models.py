"""
Settings models shared by the resolver and the server.

Deutsch:
    Gemeinsame Einstellungsmodelle für Resolver und Server.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any, Dict

StreamMap = Dict[str, str]  # channel key -> playable URL

DEFAULT_BOUQUET = "Favourites (TV)"
DEFAULT_FFMPEG_BINARY = "ffmpeg"
DEFAULT_FFPROBE_BINARY = "ffprobe"


@dataclass(frozen=True)
class VideoProfile:
    """
    Target video rendition; bitrate in kbps.

    Deutsch:
        Ziel-Videoprofil; Bitrate in kbps.
    """

    width: int
    height: int
    bitrate: int


@dataclass(frozen=True)
class AudioProfile:
    bitrate: int  # kbps


@dataclass
class VODSettings:
    """
    Video-on-demand transcoding settings.

    Deutsch:
        Einstellungen für Video-on-Demand.
    """

    media_dir: str = ""
    transcode_dir: str = ""
    video_profiles: Dict[str, VideoProfile] = field(default_factory=dict)
    video_keyframes: bool = False
    audio_profile: AudioProfile = field(default_factory=lambda: AudioProfile(bitrate=0))
    cache: bool = False
    cache_dir: str = ""
    ffmpeg_binary: str = ""
    ffprobe_binary: str = ""


@dataclass
class ReceiverSettings:
    """
    Enigma2 receiver used for live channel discovery.

    ``reference`` stays empty until discovery finds the configured bouquet.

    Deutsch:
        Enigma2-Receiver für die Senderermittlung.
    """

    host: str = ""
    port: str = ""
    bouquet: str = ""
    reference: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.host) and bool(self.port)


@dataclass(frozen=True)
class ServiceDirectoryEntry:
    """
    Single ``e2service`` element of a receiver service list.

    Deutsch:
        Einzelner Eintrag einer Receiver-Serviceliste.
    """

    name: str
    reference: str


@dataclass
class RootSettings:
    debug: bool = False
    pprof: bool = False
    config: str = ""


@dataclass
class ServerSettings:
    """
    Fully resolved server configuration handed to the server at startup.

    Deutsch:
        Vollständig aufgelöste Serverkonfiguration.
    """

    bind: str = ""
    cert: str = ""
    key: str = ""
    static: str = ""
    proxy: bool = False
    base_dir: str = ""
    profiles: str = ""
    streams: StreamMap = field(default_factory=dict)
    vod: VODSettings = field(default_factory=VODSettings)
    enigma2: ReceiverSettings = field(default_factory=ReceiverSettings)
    hls_proxy: Dict[str, str] = field(default_factory=dict)

    def abs_path(self, *elem: str) -> str:
        """Join ``elem`` below the base directory."""

        return posixpath.join(self.base_dir, *elem)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bind": self.bind,
            "cert": self.cert,
            "key": self.key,
            "static": self.static,
            "proxy": self.proxy,
            "basedir": self.base_dir,
            "profiles": self.profiles,
            "streams": dict(self.streams),
            "hls-proxy": dict(self.hls_proxy),
            "vod": {
                "media-dir": self.vod.media_dir,
                "transcode-dir": self.vod.transcode_dir,
                "video-profiles": {
                    name: {"width": p.width, "height": p.height, "bitrate": p.bitrate}
                    for name, p in self.vod.video_profiles.items()
                },
                "video-keyframes": self.vod.video_keyframes,
                "audio-profile": {"bitrate": self.vod.audio_profile.bitrate},
                "cache": self.vod.cache,
                "cache-dir": self.vod.cache_dir,
                "ffmpeg-binary": self.vod.ffmpeg_binary,
                "ffprobe-binary": self.vod.ffprobe_binary,
            },
            "enigma2": {
                "ip": self.enigma2.host,
                "port": self.enigma2.port,
                "bouquet": self.enigma2.bouquet,
                "reference": self.enigma2.reference,
            },
        }
