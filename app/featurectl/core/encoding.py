"""Selection key encoding.

Config keys are used as field names in submitted form values, where some
punctuation acts as a structural delimiter. Each reserved character is
replaced by a ``__<ord>__`` token before a key is used as a form field
name and restored afterwards.

Runs of underscores are the only way a key could spell token text on its
own, so every underscore directly followed by another one is written as
the ``__95__`` token. Encoded keys then never hold two adjacent literal
underscores and every key decodes back to itself.

Example:
    >>> encode_key("node.article:teaser")
    'node__46__article__58__teaser'
    >>> decode_key("node__46__article__58__teaser")
    'node.article:teaser'
    >>> encode_key("odd__58__key")
    'odd__95___58__95___key'
"""

import re

# Characters the form layer treats as delimiters
RESERVED_CHARACTERS = ":/,.<>%)("

UNDERSCORE_TOKEN = f"__{ord('_')}__"

ENCODE_MAP: dict[str, str] = {char: f"__{ord(char)}__" for char in RESERVED_CHARACTERS}
DECODE_MAP: dict[str, str] = {token: char for char, token in ENCODE_MAP.items()}
DECODE_MAP[UNDERSCORE_TOKEN] = "_"

_ENCODE_TABLE = str.maketrans(ENCODE_MAP)
_UNDERSCORE_RUN = re.compile(r"_(?=_)")
_TOKEN_PATTERN = re.compile("|".join(re.escape(token) for token in DECODE_MAP))


def decode_key(key: str) -> str:
    """Restore reserved characters in an encoded key.

    Tokens are matched left to right, so the result is the inverse of
    :func:`encode_key`. Characters outside the token set pass through.

    Args:
        key: Encoded key.

    Returns:
        Decoded key.
    """
    return _TOKEN_PATTERN.sub(lambda match: DECODE_MAP[match.group(0)], key)


def encode_key(key: str) -> str:
    """Replace reserved characters in a key with safe tokens.

    Every key can be encoded; keys without reserved characters or double
    underscores are returned unchanged.

    Args:
        key: Raw config key.

    Returns:
        Encoded key safe to use as a form field name.
    """
    return _UNDERSCORE_RUN.sub(UNDERSCORE_TOKEN, key).translate(_ENCODE_TABLE)
