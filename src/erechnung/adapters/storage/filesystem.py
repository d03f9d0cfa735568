"""Storage adapter using local filesystem."""

import logging
import shutil
from pathlib import Path

from ...ports.storage import StoragePort

logger = logging.getLogger(__name__)

ORIGINAL_NAME = "original.pdf"


class FilesystemAdapter(StoragePort):
    """Storage implementation keeping one directory per session.

    Layout:
        <upload_dir>/<session_id>/original.pdf
        <output_dir>/<session_id>/
    """

    def __init__(self, upload_dir: Path, output_dir: Path) -> None:
        self.upload_dir = upload_dir
        self.output_dir = output_dir

    def save_upload(self, session_id: str, content: bytes) -> Path:
        session_dir = self.upload_dir / session_id
        session_dir.mkdir(parents=True, exist_ok=False)
        dest = session_dir / ORIGINAL_NAME
        dest.write_bytes(content)
        logger.debug(f"Stored upload: {dest} ({len(content)} bytes)")
        return dest

    def prepare_output_dir(self, session_id: str) -> Path:
        output = self.output_dir / session_id
        output.mkdir(parents=True, exist_ok=True)
        return output

    def delete_session_files(self, session_id: str) -> None:
        """Remove upload and output directories; missing ones are ignored.

        Both directories are attempted even if the first removal fails. The
        first error is re-raised afterwards.
        """
        errors: list[OSError] = []
        for base in (self.upload_dir, self.output_dir):
            session_dir = base / session_id
            if not session_dir.exists():
                continue
            try:
                shutil.rmtree(session_dir)
            except OSError as e:
                logger.warning(f"Failed to remove {session_dir}: {e}")
                errors.append(e)
            else:
                logger.debug(f"Removed: {session_dir}")
        if errors:
            raise errors[0]
