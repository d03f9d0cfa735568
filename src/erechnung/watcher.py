"""Inbox watcher: turns PDF + YAML pairs dropped into a folder into e-invoices."""

import fnmatch
import logging
import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileMovedEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .adapters.conversion import OcrMyPdfAdapter
from .adapters.embedding import PikePdfEmbedder
from .adapters.storage import FilesystemAdapter
from .adapters.validation import VeraPdfAdapter
from .cleanup import CleanupScheduler
from .config import Settings
from .domain.models import Upload
from .domain.services import InvoiceService
from .domain.sessions import PDF_CONTENT_TYPE, SessionStore
from .domain.status import Completed, describe
from .errors import InvoiceToolError
from .sidecar import MetadataError, load_metadata, sidecar_for

logger = logging.getLogger(__name__)

STABILITY_WAIT = 1.0  # seconds between checks
STABILITY_TIMEOUT = 30  # max seconds to wait
PROCESSED_DIR = ".processed"
FAILED_DIR = ".failed"


def create_invoice_service(settings: Settings) -> InvoiceService:
    """Create an InvoiceService with configured adapters and a fresh store."""
    storage = FilesystemAdapter(settings.storage.upload_dir, settings.storage.output_dir)
    store = SessionStore(storage, max_file_size=settings.invoice.max_file_size_bytes)
    return InvoiceService(
        store=store,
        converter=OcrMyPdfAdapter(settings.invoice.ocrmypdf_path),
        embedder=PikePdfEmbedder(settings.invoice.profile, settings.invoice.version),
        validator=VeraPdfAdapter(settings.invoice.verapdf_path),
        validate_on_generation=settings.invoice.validate_on_generation,
    )


def unique_destination(directory: Path, name: str) -> Path:
    """Return directory/name, adding a counter on collision."""
    directory.mkdir(parents=True, exist_ok=True)
    dest = directory / name
    counter = 1
    stem, suffix = Path(name).stem, Path(name).suffix
    while dest.exists():
        dest = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return dest


class InvoiceInboxHandler(FileSystemEventHandler):
    """Handle new PDFs in the inbox by running them through the service."""

    def __init__(
        self,
        settings: Settings,
        service: InvoiceService,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.settings = settings
        self.service = service
        self.executor = executor
        self.patterns = settings.watch.patterns

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._submit(Path(event.src_path))

    def on_moved(self, event: FileMovedEvent) -> None:
        if not event.is_directory:
            self._submit(Path(event.dest_path))

    def _submit(self, path: Path) -> None:
        if not self._matches_patterns(path):
            return
        if self.executor is None:
            self._handle_file(path)
        else:
            self.executor.submit(self._handle_file, path)

    def _matches_patterns(self, path: Path) -> bool:
        return any(fnmatch.fnmatch(path.name, p) for p in self.patterns)

    def _handle_file(self, path: Path) -> None:
        """Wait for the PDF and its sidecar, then process."""
        logger.info(f"New file detected: {path.name}")

        if not self._wait_for_stability(path):
            logger.warning(f"File or metadata sidecar never became ready: {path.name}")
            return

        try:
            self.process(path)
        except Exception as e:
            logger.exception(f"Failed to handle {path.name}: {e}")

    def _wait_for_stability(self, path: Path) -> bool:
        """Wait until the file size stops changing and the sidecar exists."""
        start = time.time()
        last_size = -1

        while time.time() - start < STABILITY_TIMEOUT:
            if not path.exists():
                return False

            size = path.stat().st_size
            if size > 0 and size == last_size and sidecar_for(path).exists():
                return True

            last_size = size
            time.sleep(STABILITY_WAIT)

        logger.warning(f"Timeout waiting for file: {path.name}")
        return False

    def process(self, path: Path) -> Path | None:
        """Generate the e-invoice for one inbox PDF.

        Returns path of the written e-invoice, or None on failure. Inputs
        are moved to .processed or .failed inside the inbox.
        """
        sidecar = sidecar_for(path)
        try:
            metadata = load_metadata(sidecar, self.settings.defaults)
            session_id = self.service.create_session(
                Upload(path.name, path.read_bytes(), PDF_CONTENT_TYPE)
            )
        except (MetadataError, InvoiceToolError) as e:
            logger.error(f"Rejected {path.name}: {e}")
            self._archive(path, FAILED_DIR)
            return None

        status = self.service.generate(session_id, metadata)
        if not isinstance(status, Completed):
            logger.error(f"Processing failed: {path.name} - {describe(status)}")
            self._archive(path, FAILED_DIR)
            return None

        name = self.service.download_filename(session_id)
        dest = unique_destination(self.settings.watch.outbox, name)
        dest.write_bytes(self.service.download(session_id))

        logger.info(f"Processed: {path.name} -> {dest.name} ({describe(status)})")
        self._archive(path, PROCESSED_DIR)
        return dest

    def _archive(self, path: Path, subdir: str) -> None:
        target = path.parent / subdir
        for file in (path, sidecar_for(path)):
            if file.exists():
                shutil.move(str(file), unique_destination(target, file.name))


def initial_scan(handler: InvoiceInboxHandler, inbox: Path) -> None:
    """Process any PDFs already waiting in the inbox on startup."""
    for pattern in handler.patterns:
        for path in sorted(inbox.glob(pattern)):
            if path.is_file() and sidecar_for(path).exists():
                handler._submit(path)


def run_watcher(settings: Settings) -> None:
    """Run the inbox watcher daemon with periodic session cleanup."""
    inbox = settings.watch.inbox
    inbox.mkdir(parents=True, exist_ok=True)
    settings.watch.outbox.mkdir(parents=True, exist_ok=True)

    service = create_invoice_service(settings)

    logger.info(f"Watching: {inbox}")
    logger.info(f"Outbox: {settings.watch.outbox}")
    logger.info(f"Patterns: {settings.watch.patterns}")
    logger.info(f"Profile: {settings.invoice.profile}")

    scheduler = CleanupScheduler(
        service.store,
        interval=settings.storage.cleanup_interval,
        retention=settings.storage.retention,
    )

    with scheduler, ThreadPoolExecutor(max_workers=settings.watch.workers) as executor:
        handler = InvoiceInboxHandler(settings, service, executor)
        initial_scan(handler, inbox)

        observer = Observer()
        observer.schedule(handler, str(inbox), recursive=False)
        observer.start()

        try:
            while observer.is_alive():
                observer.join(timeout=1)
        except KeyboardInterrupt:
            logger.info("Shutting down...")
            observer.stop()

        observer.join()
