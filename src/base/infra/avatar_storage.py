import logging
import uuid
from pathlib import Path

import aiohttp
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Same whitelist the profile upload endpoint accepts.
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
ALLOWED_IMAGE_TYPES = frozenset(IMAGE_EXTENSIONS)
MAX_AVATAR_BYTES = 5 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024


class AvatarImportError(Exception):
    """Raised when a remote profile picture cannot be fetched or stored."""


class LocalAvatarStorage:
    """Stores avatar images as files under ``root`` and returns their relative reference."""

    def __init__(self, root: str):
        self.root = Path(root)

    async def save(self, data: bytes, content_type: str) -> str:
        name = f"{uuid.uuid4().hex}{IMAGE_EXTENSIONS.get(content_type, '.img')}"
        await run_in_threadpool(self._write, name, data)
        logger.info("Stored avatar %s (%s, %d bytes)", name, content_type, len(data))
        return f"avatars/{name}"

    async def delete(self, ref: str) -> None:
        name = ref.split("/", 1)[-1]
        try:
            await run_in_threadpool((self.root / name).unlink, missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove avatar %s: %s", name, e)
            return
        logger.info("Removed avatar %s", name)

    def _write(self, name: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(data)


class AvatarImporter:
    """Downloads a remote picture and hands it to the avatar storage.

    The MIME type stored comes from the fetch response, so a failed fetch is an
    error for the caller rather than something to skip silently.
    """

    def __init__(self, storage: LocalAvatarStorage, timeout: float = 10.0):
        self.storage = storage
        self.timeout = timeout

    async def import_from_url(self, url: str) -> str:
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(url) as resp:
                    if resp.status >= 400:
                        raise AvatarImportError(f"avatar fetch returned HTTP {resp.status}")
                    content_type = (resp.content_type or "").lower()
                    if content_type not in ALLOWED_IMAGE_TYPES:
                        raise AvatarImportError(f"unsupported avatar type {content_type!r}")
                    if resp.content_length is not None and resp.content_length > MAX_AVATAR_BYTES:
                        raise AvatarImportError("avatar exceeds size limit")

                    chunks = []
                    received = 0
                    async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                        received += len(chunk)
                        if received > MAX_AVATAR_BYTES:
                            raise AvatarImportError("avatar exceeds size limit")
                        chunks.append(chunk)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise AvatarImportError(f"avatar fetch failed: {e}") from e

        try:
            return await self.storage.save(b"".join(chunks), content_type)
        except OSError as e:
            raise AvatarImportError(f"avatar could not be stored: {e}") from e

    async def discard(self, ref: str) -> None:
        """Remove a previously imported avatar whose account was never created."""
        await self.storage.delete(ref)
