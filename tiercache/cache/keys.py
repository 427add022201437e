"""
TierCache - Tier Key Codec

Builds fully-qualified cache keys shared by every tier, so a key written
through one code path is found by any other.
"""

import re

# Characters with special meaning in Redis MATCH patterns
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def build_key(prefix: str, namespace: str, key: str) -> str:
    """Return ``prefix + namespace + ":" + key``."""
    return f"{prefix}{namespace}:{key}"


def namespace_prefix(prefix: str, namespace: str) -> str:
    """Return the key prefix shared by every entry in a namespace."""
    return build_key(prefix, namespace, "")


def namespace_pattern(prefix: str, namespace: str) -> str:
    """
    Return the glob pattern matching every entry in a namespace.

    Glob metacharacters inside the prefix or namespace are escaped so that
    ``clear("a*")`` never reaches into namespace ``"ab"``.
    """
    return _GLOB_SPECIAL.sub(r"\\\1", namespace_prefix(prefix, namespace)) + "*"
