"""
Transport infrastructure: channel management and gRPC call wrappers.
"""

from cottontail_client.infrastructure.transport import (
    ChannelManager,
    MessageSource,
    GrpcTransport,
    GrpcWriteStream,
    ResponseStream,
    StreamObserver,
    WriteStream,
    wait_for_ready,
)

__all__ = [
    "ChannelManager",
    "MessageSource",
    "GrpcTransport",
    "GrpcWriteStream",
    "ResponseStream",
    "StreamObserver",
    "WriteStream",
    "wait_for_ready",
]
