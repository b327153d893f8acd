"""
Filesystem storage for captured truck images.

Images are grouped in one directory per day; tickets keep the path
relative to the storage root.
"""

import uuid
from datetime import datetime
from pathlib import Path

from weighstation.core.config import get_settings
from weighstation.core.logging import get_logger
from weighstation.domain.services import PlateTextNormalizer

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when an image cannot be written."""

    pass


class ImageStorage:
    """
    Saves JPEG snapshots under a dated directory tree.

    Example:
        storage = ImageStorage("./storage/images")
        path = storage.save(jpeg_bytes, "ABC123", "inbound", datetime.now())
        # "2026-10-19/101502_inbound_ABC123_1a2b3c4d.jpg"
    """

    def __init__(self, root: str | Path | None = None):
        """
        Initialize storage.

        Args:
            root: Storage root directory. Defaults to the configured path.
        """
        self.root = Path(root or get_settings().image_storage_path)
        self._normalizer = PlateTextNormalizer()

    def save(
        self,
        image: bytes,
        plate_number: str | None,
        kind: str,
        timestamp: datetime,
    ) -> str:
        """
        Write an image and return its relative path.

        Args:
            image: JPEG bytes.
            plate_number: Plate used in the filename, if known.
            kind: Capture kind ("inbound", "outbound").
            timestamp: Capture time.

        Returns:
            str: Path relative to the storage root.

        Raises:
            StorageError: If the file cannot be written.
        """
        plate = self._normalizer.to_plate(plate_number)
        relative = Path(timestamp.strftime("%Y-%m-%d")) / (
            f"{timestamp.strftime('%H%M%S')}_{kind}_{plate}_{uuid.uuid4().hex[:8]}.jpg"
        )
        target = self.root / relative

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image)
        except OSError as e:
            raise StorageError(f"Failed to save image {relative}: {e}") from e

        logger.debug("image_saved", path=str(relative), size=len(image))
        return relative.as_posix()

    def load(self, relative_path: str) -> bytes:
        """
        Read a stored image back.

        Raises:
            StorageError: If the file does not exist or cannot be read.
        """
        try:
            return (self.root / relative_path).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read image {relative_path}: {e}") from e
