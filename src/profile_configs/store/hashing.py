"""Password digests."""

import hashlib


class Sha256Hasher:
    """Hash collaborator producing SHA-256 hex digests."""

    async def digest(self, value: str) -> str:
        """Compute the digest of ``value``.

        Args:
            value: Text to hash

        Returns:
            SHA-256 hash as hexadecimal string
        """
        return hashlib.sha256(str(value).encode("utf-8")).hexdigest()
