"""Remote visit store client and wire format."""

from site_visits.remote.client import RemoteStoreClient
from site_visits.remote.wire import WIRE_VERSION, decode_document, encode_document

__all__ = [
    "RemoteStoreClient",
    "WIRE_VERSION",
    "decode_document",
    "encode_document",
]
