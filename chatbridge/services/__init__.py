"""
Service Module

Contains the proxy request flow, the stream relay and the model directory.
"""

from chatbridge.services.model_directory import CachedModelList, ModelDirectory
from chatbridge.services.proxy_service import ProxyService
from chatbridge.services.stream_relay import DownstreamChannel, StreamRelay

__all__ = [
    "CachedModelList",
    "DownstreamChannel",
    "ModelDirectory",
    "ProxyService",
    "StreamRelay",
]
