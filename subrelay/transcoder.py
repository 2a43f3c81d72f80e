"""
Turns a fetched subscription body into the relayed text.

The body is URL-safe base64, often without its trailing padding. Once
decoded it is a newline-delimited list of entries; anything from the
first '#' of an entry on is a display comment that gets percent-encoded.
"""

import base64
import binascii
import re
from urllib.parse import quote_plus

from .errors import DecodeError

_URLSAFE_BASE64 = re.compile(r'[A-Za-z0-9_-]*={0,2}')
_LINE_BREAKS = str.maketrans('', '', '\r\n')


def pad(text: str, legacy: bool = False) -> str:
    """Append the '=' characters missing from an unpadded base64 string.

    With legacy=True the count is 4 - len % 4, so already aligned input
    gets four extra characters and no longer decodes.
    """
    missing = 4 - (len(text) % 4)
    if not legacy:
        missing %= 4
    return text + '=' * missing


def decode(raw: bytes, legacy_padding: bool = False) -> str:
    try:
        text = raw.decode('ascii')
    except UnicodeDecodeError as e:
        raise DecodeError(f"illegal base64 data: non-ASCII byte at input byte {e.start}") from e

    padded = pad(text.translate(_LINE_BREAKS), legacy=legacy_padding)
    if not _URLSAFE_BASE64.fullmatch(padded):
        raise DecodeError("illegal base64 data: not URL-safe base64")

    try:
        decoded = base64.urlsafe_b64decode(padded)
    except binascii.Error as e:
        raise DecodeError(f"illegal base64 data: {e}") from e

    # surrogateescape keeps non UTF-8 bytes intact through to the response
    return decoded.decode('utf-8', errors='surrogateescape')


def rewrite_line(line: str) -> str:
    """Percent-encode everything from the first '#' on, keeping a literal '#' in front."""
    index = line.find('#')
    if index == -1:
        return line
    return line[:index] + '#' + quote_plus(line[index:], errors='surrogateescape')


def rewrite(text: str) -> str:
    return '\n'.join(rewrite_line(line) for line in text.split('\n') if line)


def transcode(raw: bytes, legacy_padding: bool = False) -> str:
    return rewrite(decode(raw, legacy_padding=legacy_padding))
