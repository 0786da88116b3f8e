"""
Multi-file orchestration.

optimize_files() walks an ordered work list one file at a time. A file
that fails is logged and recorded, and the next one is processed. The
cancellation check runs between files only; a transform that has started
always finishes.

start_batch() / batch_progress() back the simulated batch-job endpoint.
There is no queue behind them: the progress they report is random.
"""

import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional

from .config import DefaultConfig
from .errors import ImageOptimizerError
from .log import get_logger
from .pipeline import TransformResult, transform
from .settings import OptimizationSettings

logger = get_logger(__name__)

SECONDS_PER_FILE = 2
SIMULATED_TOTAL_FILES = 10


class UploadItem(NamedTuple):
    data: bytes
    file_name: str
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class FileError:
    index: int
    file_name: str
    error: str
    kind: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "name": self.file_name, "error": self.error, "type": self.kind}


@dataclass
class BatchOutcome:
    results: List[TransformResult] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)
    cancelled: bool = False


def optimize_files(
    items: Iterable[UploadItem],
    settings: OptimizationSettings,
    cancelled: Optional[Callable[[], bool]] = None,
    max_pixels: int = DefaultConfig.MAX_SURFACE_PIXELS,
) -> BatchOutcome:
    """Transform ``items`` sequentially, preserving input order.

    Args:
        items: Uploaded files in the order they should be processed.
        settings: Shared settings snapshot for every file.
        cancelled: Polled before each file; returning True stops the run.
        max_pixels: Surface area limit forwarded to transform().
    """
    outcome = BatchOutcome()
    work = list(items)

    for index, item in enumerate(work):
        if cancelled is not None and cancelled():
            logger.info(f"Batch cancelled after {index} of {len(work)} files")
            outcome.cancelled = True
            break

        try:
            result = transform(item.data, item.file_name, item.mime_type, settings, max_pixels=max_pixels)
        except ImageOptimizerError as exc:
            logger.warning(f"Skipping {item.file_name}: {exc}")
            outcome.errors.append(
                FileError(index=index, file_name=item.file_name, error=str(exc), kind=type(exc).__name__)
            )
            continue

        outcome.results.append(result)

    return outcome


# --- Simulated batch job -------------------------------------------------------

def start_batch(files: List[Any]) -> Dict[str, Any]:
    batch_id = str(uuid.uuid4())
    logger.info(f"Batch {batch_id} accepted with {len(files)} files")
    return {
        "batchId": batch_id,
        "message": "Batch processing started",
        "estimatedTime": len(files) * SECONDS_PER_FILE,
        "totalFiles": len(files),
    }


def batch_progress(batch_id: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Random progress snapshot for ``batch_id``; nothing is tracked."""
    rng = rng or random.Random()
    # random() stays below 1.0, so this never reports "complete" on its own
    progress = rng.random() * 100
    is_complete = progress >= 100

    return {
        "batchId": batch_id,
        "progress": 100 if is_complete else progress,
        "status": "complete" if is_complete else "processing",
        "processedFiles": SIMULATED_TOTAL_FILES if is_complete else int(progress // 10),
        "totalFiles": SIMULATED_TOTAL_FILES,
        "results": _canned_results() if is_complete else None,
    }


def _canned_results() -> List[Dict[str, Any]]:
    return [
        {
            "name": "image1-optimized.webp",
            "originalName": "image1.jpg",
            "originalSize": 1024000,
            "newSize": 512000,
            "reduction": 50,
            "url": "/uploads/image1-optimized.webp",
        }
    ]
