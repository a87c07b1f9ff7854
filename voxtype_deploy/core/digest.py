"""
Content digests for pinned artifacts.

Digests are written as ``<algorithm>:<hex>`` (e.g. ``sha256:9f86d0...``).
"""

import hashlib
from pathlib import Path
from typing import Tuple

SUPPORTED_ALGORITHMS = ("sha1", "sha256", "sha512", "blake2b")
CHUNK_SIZE = 1024 * 1024


def _new_hasher(algorithm: str):
    if algorithm == "blake2b":
        return hashlib.blake2b(digest_size=32)
    if algorithm in SUPPORTED_ALGORITHMS:
        return hashlib.new(algorithm)
    raise ValueError(f"Unsupported hash algorithm: {algorithm}")


def parse_digest(digest: str) -> Tuple[str, str]:
    """
    Split a digest string into (algorithm, lowercase hex).

    Raises:
        ValueError: If the digest is malformed or uses an unsupported algorithm
    """
    algorithm, sep, hexdigest = digest.partition(":")
    if not sep or not hexdigest:
        raise ValueError(f"Digest must look like '<algorithm>:<hex>', got: {digest!r}")
    algorithm = algorithm.lower()
    hexdigest = hexdigest.lower()
    expected_length = _new_hasher(algorithm).digest_size * 2
    if len(hexdigest) != expected_length or any(c not in "0123456789abcdef" for c in hexdigest):
        raise ValueError(f"Digest {digest!r} is not a valid {algorithm} hex digest")
    return algorithm, hexdigest


def calculate_file_digest(file_path: Path, algorithm: str = "sha256") -> str:
    """
    Calculate the digest of a file's content.

    Args:
        file_path: Path to the file to hash
        algorithm: Hash algorithm to use (see SUPPORTED_ALGORITHMS)

    Returns:
        Digest string in ``<algorithm>:<hex>`` form
    """
    hasher = _new_hasher(algorithm)
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    except OSError as e:
        raise RuntimeError(f"Failed to calculate hash for {file_path}: {e}")
    return f"{algorithm}:{hasher.hexdigest()}"


def calculate_text_digest(text: str, algorithm: str = "sha256") -> str:
    """Digest of UTF-8 text, in ``<algorithm>:<hex>`` form."""
    hasher = _new_hasher(algorithm)
    hasher.update(text.encode("utf-8"))
    return f"{algorithm}:{hasher.hexdigest()}"
