"""
Server settings resolution.

Turns raw key/value settings (file values plus command line overrides) into a
fully populated :class:`~e2transcode.models.ServerSettings`: defaults are
computed, working directories are created, required fields are checked and
live channels are discovered from an optional Enigma2 receiver.

Deutsch:
    Auflösung der Servereinstellungen.
"""

from __future__ import annotations

import copy
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from . import enigma2
from .models import (
    DEFAULT_FFMPEG_BINARY,
    DEFAULT_FFPROBE_BINARY,
    AudioProfile,
    ReceiverSettings,
    RootSettings,
    ServerSettings,
    VideoProfile,
    VODSettings,
)
from .schemas import settings_validator

log = logging.getLogger(__name__)

SYSTEM_BASE_DIR = "/etc/transcode"
TRANSCODE_DIR_PREFIX = "go-transcode-vod"

DEFAULTS: Dict[str, Any] = {
    "bind": "127.0.0.1:8080",
    "cert": "",
    "key": "",
    "static": "",
    "proxy": False,
    "basedir": "",
    "profiles": "",
}


class ConfigurationError(Exception):
    """Raised when the server cannot start with the given settings. / Ungültige Konfiguration."""


def load_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML settings file into a raw settings mapping.

    Deutsch:
        Liest eine YAML-Einstellungsdatei.
    """

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"failed to parse settings file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"settings file {path} must contain a mapping")
    return data


def merge_overrides(raw: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Layer defaults, ``raw`` and non-``None`` ``overrides`` (in that order).

    Deutsch:
        Kombiniert Standardwerte, Dateiwerte und Kommandozeilenwerte.
    """

    merged: Dict[str, Any] = dict(DEFAULTS)
    merged.update(copy.deepcopy(dict(raw)))
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def resolve_root(raw: Mapping[str, Any]) -> RootSettings:
    return RootSettings(
        debug=bool(raw.get("debug")),
        pprof=bool(raw.get("pprof")),
        config=_text(raw.get("config")),
    )


def resolve(raw: Mapping[str, Any]) -> ServerSettings:
    """
    Resolve raw settings into the effective server configuration.

    Raises :class:`ConfigurationError` for anything the server cannot start
    with: invalid settings shape, directories that cannot be created, no VOD
    video profile, or a receiver that cannot be queried.

    Deutsch:
        Löst Rohwerte in die wirksame Serverkonfiguration auf.
    """

    _validate_shape(raw)

    settings = ServerSettings(
        bind=_text(raw.get("bind")),
        cert=_text(raw.get("cert")),
        key=_text(raw.get("key")),
        static=_text(raw.get("static")),
        proxy=bool(raw.get("proxy")),
    )

    settings.base_dir = _text(raw.get("basedir")) or _default_base_dir()
    settings.profiles = _text(raw.get("profiles")) or f"{settings.base_dir}/profiles"
    settings.streams = _string_map(raw.get("streams"))

    #
    # VOD
    #
    settings.vod = _build_vod(_section(raw, "vod"))
    settings.vod.transcode_dir = _prepare_transcode_dir(settings.vod.transcode_dir)

    if not settings.vod.video_profiles:
        raise ConfigurationError("specify at least one VOD video profile")

    if settings.vod.cache and settings.vod.cache_dir:
        _make_dirs(settings.vod.cache_dir, "VOD cache")

    if not settings.vod.ffmpeg_binary:
        settings.vod.ffmpeg_binary = DEFAULT_FFMPEG_BINARY
    if not settings.vod.ffprobe_binary:
        settings.vod.ffprobe_binary = DEFAULT_FFPROBE_BINARY

    #
    # HLS proxy
    #
    settings.hls_proxy = _string_map(raw.get("hls-proxy"))

    #
    # Enigma2
    #
    settings.enigma2 = _build_receiver(_section(raw, "enigma2"))
    try:
        enigma2.discover_streams(settings.enigma2, settings.streams)
    except enigma2.FetchError as exc:
        raise ConfigurationError(f"enigma2 discovery on {settings.enigma2.host} failed: {exc}") from exc

    log.debug(
        "resolved settings: basedir=%s profiles=%s streams=%d video_profiles=%d",
        settings.base_dir,
        settings.profiles,
        len(settings.streams),
        len(settings.vod.video_profiles),
    )
    return settings


def _validate_shape(raw: Mapping[str, Any]) -> None:
    validator = settings_validator()
    errors = sorted(validator.iter_errors(dict(raw)), key=lambda err: [str(part) for part in err.path])
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.path) or "<root>"
        raise ConfigurationError(f"invalid settings at {location}: {first.message}")


def _default_base_dir() -> str:
    if os.path.exists(SYSTEM_BASE_DIR):
        return SYSTEM_BASE_DIR
    return os.getcwd()


def _build_vod(section: Mapping[str, Any]) -> VODSettings:
    profiles_raw = section.get("video-profiles") or {}
    video_profiles = {
        str(name): VideoProfile(
            width=int(profile["width"]),
            height=int(profile["height"]),
            bitrate=int(profile["bitrate"]),
        )
        for name, profile in profiles_raw.items()
    }
    audio_raw = section.get("audio-profile") or {}
    return VODSettings(
        media_dir=_text(section.get("media-dir")),
        transcode_dir=_text(section.get("transcode-dir")),
        video_profiles=video_profiles,
        video_keyframes=bool(section.get("video-keyframes")),
        audio_profile=AudioProfile(bitrate=int(audio_raw.get("bitrate") or 0)),
        cache=bool(section.get("cache")),
        cache_dir=_text(section.get("cache-dir")),
        ffmpeg_binary=_text(section.get("ffmpeg-binary")),
        ffprobe_binary=_text(section.get("ffprobe-binary")),
    )


def _build_receiver(section: Mapping[str, Any]) -> ReceiverSettings:
    return ReceiverSettings(
        host=_text(section.get("ip") or section.get("host")),
        port=_text(section.get("port")),
        bouquet=_text(section.get("bouquet")),
    )


def _prepare_transcode_dir(path: str) -> str:
    if not path:
        try:
            created = tempfile.mkdtemp(prefix=TRANSCODE_DIR_PREFIX)
        except OSError as exc:
            raise ConfigurationError(f"cannot create temporary VOD transcode directory: {exc}") from exc
        log.debug("using temporary VOD transcode directory %s", created)
        return created
    _make_dirs(path, "VOD transcode")
    return path


def _make_dirs(path: str, purpose: str) -> None:
    try:
        Path(path).mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"cannot create {purpose} directory {path}: {exc}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else {}


def _string_map(value: Optional[Any]) -> Dict[str, str]:
    if not value:
        return {}
    return {str(k): str(v) for k, v in value.items()}


def _text(value: Optional[Any]) -> str:
    if value is None:
        return ""
    return str(value)
