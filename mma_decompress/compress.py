"""Implementation of the tool's Uncompress: turns the text printed by
Compress[expr] back into the !boR body and decodes it."""
import base64
import binascii
import zlib
from .diagnostics import MessageLog, DecodeError
from .bor import Decoder, Decoded
from . import util


HEADER = b"!boR"
# "1:" in front of the base64 data
FORMAT_MARKER_LENGTH = 2
# Copying from a notebook may leave these in the string
PASTE_ARTIFACTS = "\\\n\""


def clean(text: str) -> str:
    text = util.delete_chars(text, PASTE_ARTIFACTS)
    return text.strip()[FORMAT_MARKER_LENGTH:]


def base64_decode(encoded: str) -> bytes:
    encoded = "".join(encoded.split())
    if len(encoded) % 4 == 1:
        raise DecodeError("base64 data has an impossible length", found=len(encoded))
    # Padding is optional
    encoded += "=" * (-len(encoded) % 4)
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as err:
        raise DecodeError("invalid base64 data: {}".format(err)) from err


def inflate(compressed: bytes) -> bytes:
    try:
        return zlib.decompress(compressed)
    except zlib.error as err:
        raise DecodeError("failed to inflate data: {}".format(err)) from err


def decompress(text: str, log: MessageLog = None) -> bytes:
    """Returns the decompressed body without the !boR header"""
    if log is None:
        log = MessageLog()
    bits = inflate(base64_decode(clean(text)))
    header = bits[:len(HEADER)]
    if header != HEADER:
        log.warn("unknown header string {!r} (expected {!r})".format(util.bytes_to_string(header), util.bytes_to_string(HEADER)), offset=0)
    return bits[len(HEADER):]


def decompress_decode(text: str, log: MessageLog = None, **limits) -> Decoded:
    if log is None:
        log = MessageLog()
    try:
        body = decompress(text, log)
        dec = Decoder(body, log=log, **limits)
        (values, bytes_read) = dec.decode_sequence()
    except DecodeError as err:
        log.error(str(err), offset=err.offset)
        raise
    log.info("decoded {} values from {} bytes".format(len(values), bytes_read))
    return Decoded(values=values, bytes_read=bytes_read, messages=log.messages)
