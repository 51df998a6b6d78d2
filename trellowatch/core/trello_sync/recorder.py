import tempfile
from pathlib import Path

from trellowatch.common.logging import get_logger

logger = get_logger("trello_sync.recorder")


class PayloadRecorder:
    """Writes diagnostics into the log directory.

    Unrecognised webhook bodies are kept verbatim so new payload shapes can
    be inspected later; verification probes leave an empty marker file.
    A failed write is logged and never fails the request that caused it.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def record(self, obj_type: str, obj_id: str, body: bytes) -> Path | None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self.directory, prefix=f"{obj_type}_{obj_id}_", delete=False,
            ) as f:
                f.write(body)
        except OSError as e:
            logger.warning("Could not record %s payload for %s: %s", obj_type, obj_id, e)
            return None
        logger.info("Recorded unhandled %s payload for %s to %s", obj_type, obj_id, f.name)
        return Path(f.name)

    def mark_activated(self, path: str) -> Path | None:
        marker = self.directory / f"activated-{path.replace('/', '_')}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            marker.touch()
        except OSError as e:
            logger.warning("Could not write activation marker for %s: %s", path, e)
            return None
        return marker
