"""
Core module - stream detection, playlist rewriting, proxy relay, player
"""
from .hls_proxy import HlsProxy
from .player import PlayerController, PlayerSession
from .playlist import rewrite_playlist
from .stream_types import StreamType, detect_stream_type

__all__ = [
    "HlsProxy",
    "PlayerController",
    "PlayerSession",
    "rewrite_playlist",
    "StreamType",
    "detect_stream_type",
]
