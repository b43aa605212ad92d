"""File checksums for zmsync.

Google Drive exposes an MD5 checksum for every binary file, so local
archives are hashed with the same algorithm to compare them.
"""

import hashlib
from pathlib import Path

BLOCK_SIZE = 64 * 1024


def compute_file_md5(path: Path) -> str:
    """Compute MD5 hash of a file.

    Reads the file in blocks to handle large archives efficiently.

    Args:
        path: Path to the file to hash.

    Returns:
        Hexadecimal MD5 hash string.
    """
    hasher = hashlib.md5()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(BLOCK_SIZE), b""):
            hasher.update(block)
    return hasher.hexdigest()
