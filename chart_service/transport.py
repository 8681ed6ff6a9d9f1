"""
Artifact storage for rendered charts.
Provides the output filename policy and an atomic local filesystem writer.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .chart.request_model import ChartRequest
from .errors import ArtifactIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """A written chart image."""
    path: str
    ticker: str
    timeframe: str


def artifact_filename(request: ChartRequest) -> str:
    """
    Output filename for a request.

    An explicit image_filename is used as given, so concurrent requests for the
    same ticker/timeframe can avoid overwriting each other. The fallback
    {ticker}_{timeframe}.png is shared: the last writer wins.
    """
    if request.image_filename:
        return request.image_filename
    return f"{request.ticker}_{request.timeframe}.png"


class ArtifactStore(ABC):
    """Abstract destination for rendered images."""

    @abstractmethod
    def save_png(self, filename: str, data: bytes) -> Path:
        """Persist PNG bytes under filename and return the final path."""
        pass


class LocalArtifactStore(ArtifactStore):
    """Local filesystem artifact store."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        logger.info(f"LocalArtifactStore initialized with directory: {self.base_dir}")

    def _get_path(self, filename: str) -> Path:
        """
        Convert filename to filesystem path.

        Raises:
            ArtifactIOError: if the name resolves outside the base directory
        """
        clean_name = filename.strip('/').replace('../', '').replace('..\\', '')
        base = self.base_dir.resolve()
        candidate = (base / clean_name).resolve()
        if candidate == base or not candidate.is_relative_to(base):
            raise ArtifactIOError(f"Refusing to write {filename!r} outside {self.base_dir}")
        return self.base_dir / candidate.relative_to(base)

    def save_png(self, filename: str, data: bytes) -> Path:
        """
        Write PNG bytes atomically.

        The image goes to a temp file in the target directory and is renamed
        into place, so readers never see a partially written chart.

        Raises:
            ArtifactIOError: if the directory cannot be created or written
        """
        file_path = self._get_path(filename)
        tmp_path = None
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode='wb',
                dir=file_path.parent,
                delete=False,
                suffix='.tmp'
            ) as tmp_file:
                tmp_path = Path(tmp_file.name)
                tmp_file.write(data)

            # NamedTemporaryFile creates files as 0600
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, file_path)
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise ArtifactIOError(f"Failed to write {file_path}: {e}") from e

        logger.debug(f"Saved {len(data)} bytes to {file_path}")
        return file_path
