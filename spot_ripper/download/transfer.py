"""
Fetch-and-decrypt of one content stream.

The encrypted stream is read in full on a dedicated single-thread
executor while the caller waits on the returned Future. Only one
transfer runs at a time; the orchestrator is reused across all tracks of
a run and owns its executor, so it is used as a context manager.

Steps for one track:
    1. Ask the session for the decryption key of (track, file).
    2. Open the encrypted content stream.
    3. Read it to the end on the worker thread, wait for the result.
    4. Decrypt the whole buffer in memory.

A missing key raises UnauthorizedContentError: decrypting real content
without its key only yields noise. With allow_missing_key the bytes are
passed through undecrypted instead, which is what unencrypted content
(e.g. some previews) needs.

Usage:
    with TransferOrchestrator(session) as transfer:
        decoded = transfer.fetch(content_key, bitrate=320)
"""

from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO, Callable

import requests
import urllib3
from librespot.audio.decrypt import AesAudioDecrypt

from spot_ripper.catalog.models import ContentKey
from spot_ripper.catalog.session import CatalogSession
from spot_ripper.core.config import DEFAULT_READ_CHUNK_SIZE
from spot_ripper.core.exceptions import DecryptionError, TransferError, UnauthorizedContentError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)

Decryptor = Callable[[bytes, "bytes | None"], bytes]


def decrypt_audio(raw: bytes, key: bytes | None) -> bytes:
    """
    Decrypt a whole content file.

    Args:
        raw: Encrypted bytes, from offset 0.
        key: 16-byte AES key, or None for pass-through.

    Returns:
        The decrypted bytes (raw unchanged when key is None).
    """
    if key is None:
        return raw
    return AesAudioDecrypt(key).decrypt_chunk(0, raw)


def read_stream(stream: BinaryIO, chunk_size: int = DEFAULT_READ_CHUNK_SIZE) -> bytes:
    """Read a binary stream to the end and close it."""
    chunks = []
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
    finally:
        stream.close()
    return b"".join(chunks)


class TransferOrchestrator:
    """
    Drives key request, blocking read and decryption for one track at a time.

    Attributes:
        session: Catalog session issuing keys and streams.
        decrypt: Decryption primitive, (raw, key) -> decoded.
        allow_missing_key: Pass bytes through when no key is issued.
        chunk_size: Read size on the content stream.
    """

    def __init__(
        self,
        session: CatalogSession,
        decrypt: Decryptor = decrypt_audio,
        allow_missing_key: bool = False,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    ) -> None:
        self.session = session
        self.decrypt = decrypt
        self.allow_missing_key = allow_missing_key
        self.chunk_size = chunk_size
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> "TransferOrchestrator":
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="transfer")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def fetch(self, content: ContentKey, bitrate: int) -> bytes:
        """
        Fetch and decrypt one content file.

        Args:
            content: Track id, file key and format of the chosen stream.
            bitrate: Nominal bitrate, passed to the session as a hint.

        Returns:
            The whole decoded buffer.

        Raises:
            UnauthorizedContentError: No key was issued and allow_missing_key is off.
            TransferError: Opening or reading the stream failed.
            DecryptionError: The decryption primitive failed.
        """
        if self._executor is None:
            raise RuntimeError("TransferOrchestrator must be used as a context manager")

        token = content.track_id.token
        key = self.session.request_content_key(content.track_id, content.file_key)
        if key is None:
            if not self.allow_missing_key:
                raise UnauthorizedContentError(
                    f"No decryption key issued for track {token} ({content.format_tag})",
                    details={"track_id": token, "file_key": content.file_key}
                )
            logger.warning(f"No decryption key for track {token}, reading it undecrypted")

        stream = self.session.open_content_stream(content.file_key, bitrate)

        future = self._executor.submit(read_stream, stream, self.chunk_size)
        try:
            raw = future.result()
        except (OSError, requests.RequestException, urllib3.exceptions.HTTPError) as e:
            raise TransferError(
                f"Cannot read content stream of track {token}: {e}",
                details={"track_id": token, "file_key": content.file_key, "original_error": str(e)}
            ) from e
        logger.debug(f"Fetched {len(raw)} bytes for track {token}")

        try:
            return self.decrypt(raw, key)
        except Exception as e:
            raise DecryptionError(
                f"Cannot decrypt track {token}: {e}",
                details={"track_id": token, "original_error": str(e)}
            ) from e
