"""Text persistence for trees and the payload hooks it delegates to."""

from .payload import (
    CallbackPayloadCodec,
    IntPayloadCodec,
    JsonPayloadCodec,
    LineSource,
    PayloadCodec,
    get_payload_codec,
    is_token,
)
from .text import (
    dump,
    dumps,
    load,
    loads,
    restore_subtree,
    restore_tree,
    store_subtree,
    store_tree,
)

__all__ = [
    "CallbackPayloadCodec",
    "IntPayloadCodec",
    "JsonPayloadCodec",
    "LineSource",
    "PayloadCodec",
    "get_payload_codec",
    "is_token",
    "dump",
    "dumps",
    "load",
    "loads",
    "restore_subtree",
    "restore_tree",
    "store_subtree",
    "store_tree",
]
