"""Wire codec for the JSON IPC protocol."""

from .codec import FrameDecoder, encode_command

__all__ = ["FrameDecoder", "encode_command"]
