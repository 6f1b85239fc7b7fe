"""Cache signatures and cache-state classification.

A signature fingerprints the toolchain a cache was built with. Every
component is length-prefixed so that adjacent values cannot run together:
("1", "23") and ("12", "3") give different signatures.
"""

from enum import Enum

SIGNATURE_VERSION = "v1"


class CacheState(str, Enum):
    DISABLED = "disabled"
    VALID = "valid"
    NEW_SIGNATURE = "new-signature"
    EMPTY = "empty"


def compute(runtime_version, package_manager_version, platform_id):
    parts = [str(runtime_version or ""), str(package_manager_version or ""), str(platform_id or "")]
    encoded = ";".join(f"{len(p)}:{p}" for p in parts)
    return f"{SIGNATURE_VERSION};{encoded}"


def classify(current, stored, disabled):
    if disabled:
        return CacheState.DISABLED
    if stored is None:
        return CacheState.EMPTY
    if current == stored:
        return CacheState.VALID
    return CacheState.NEW_SIGNATURE
