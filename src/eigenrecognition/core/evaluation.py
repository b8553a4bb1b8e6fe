"""
Evaluation module for eigenface recognition.

This module runs a trained model over a labeled test set and reports per-item
predictions and aggregate accuracy. A bad test item (missing file, wrong image
size, ...) is recorded and skipped; it does not stop the batch.
"""

import time
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from sklearn.metrics import confusion_matrix

from eigenrecognition.core.dataset import LabeledFace, load_face_image
from eigenrecognition.core.matcher import classify
from eigenrecognition.core.model import UNKNOWN_SUBJECT_ID, Model
from eigenrecognition.core.projector import project
from eigenrecognition.errors import RecognitionError
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)


@dataclass
class EvaluationItem:
    """Outcome for one test face."""
    index: int
    true_subject_id: Optional[int] = None
    source: Optional[str] = None
    predicted_subject_id: Optional[int] = None
    confidence: Optional[float] = None
    error: Optional[str] = None

    @property
    def attempted(self) -> bool:
        return self.error is None

    @property
    def correct(self) -> bool:
        return self.attempted and self.predicted_subject_id == self.true_subject_id

    @property
    def rejected(self) -> bool:
        return self.attempted and self.predicted_subject_id == UNKNOWN_SUBJECT_ID


@dataclass
class EvaluationReport:
    """
    Aggregate result of an evaluation run.

    Attributes:
        items: One entry per test face, in input order
        execution_time: Wall time of the run in seconds
    """
    items: List[EvaluationItem] = field(default_factory=list)
    execution_time: float = 0.0

    @property
    def attempted(self) -> int:
        return sum(1 for item in self.items if item.attempted)

    @property
    def correct(self) -> int:
        return sum(1 for item in self.items if item.correct)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.attempted)

    @property
    def rejected(self) -> int:
        return sum(1 for item in self.items if item.rejected)

    @property
    def accuracy(self) -> float:
        attempted = self.attempted
        return self.correct / attempted if attempted > 0 else 0.0

    def labels(self) -> List[int]:
        """Subject IDs seen as ground truth or prediction, sorted."""
        seen = set()
        for item in self.items:
            if item.attempted:
                seen.add(item.true_subject_id)
                seen.add(item.predicted_subject_id)
        return sorted(seen)

    def confusion_matrix(self) -> np.ndarray:
        """Confusion matrix over labels() (rows: true, columns: predicted)."""
        labels = self.labels()
        if not labels:
            return np.zeros((0, 0), dtype=np.int64)
        y_true = [item.true_subject_id for item in self.items if item.attempted]
        y_pred = [item.predicted_subject_id for item in self.items if item.attempted]
        return confusion_matrix(y_true, y_pred, labels=labels)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the report to JSON-friendly types."""
        return {
            'performance': {
                'accuracy': float(self.accuracy),
                'attempted': int(self.attempted),
                'correct': int(self.correct),
                'failed': int(self.failed),
                'rejected': int(self.rejected),
            },
            'labels': self.labels(),
            'confusion_matrix': self.confusion_matrix().tolist(),
            'items': [
                {
                    'index': item.index,
                    'source': item.source,
                    'true_subject_id': item.true_subject_id,
                    'predicted_subject_id': item.predicted_subject_id,
                    'confidence': item.confidence,
                    'correct': item.correct,
                    'error': item.error,
                }
                for item in self.items
            ],
            'execution_time': self.execution_time,
        }


def _unpack_sample(sample):
    if isinstance(sample, LabeledFace):
        return sample.subject_id, sample.image, sample.source
    subject_id, image = sample[0], sample[1]
    source = str(image) if isinstance(image, (str, Path)) else None
    return subject_id, image, source


def evaluate(samples: Sequence, model: Model,
             image_loader: Callable = load_face_image,
             progress_callback: Optional[Callable] = None) -> EvaluationReport:
    """
    Classify every test face with one result and compare to its label.

    Args:
        samples: LabeledFace objects or (subject_id, image_or_path) pairs;
            paths are read with image_loader
        model: Trained or loaded model (not modified)
        image_loader: Function loading an image from a path
        progress_callback: Callback function for progress reporting

    Returns:
        EvaluationReport: Per-item outcomes and aggregate accuracy
    """
    start_time = time.time()
    n_samples = len(samples)
    items = []

    if progress_callback:
        progress_callback(0, f"Evaluating {n_samples} test faces...")

    for i, sample in enumerate(samples):
        item = EvaluationItem(index=i)

        try:
            subject_id, image, item.source = _unpack_sample(sample)
            item.true_subject_id = int(subject_id)
            if isinstance(image, (str, Path)):
                image = image_loader(image)
            result = classify(project(image, model), model, results_no=1)
            item.predicted_subject_id = result.best.subject_id
            item.confidence = result.best.confidence
        except (RecognitionError, OSError, ValueError, TypeError, IndexError) as e:
            item.error = f"{type(e).__name__}: {e}"
            logger.warning("Skipping test face %d (%s): %s", i, item.source or "in memory", e)

        items.append(item)

        if progress_callback and i % max(1, n_samples // 10) == 0:
            progress_callback(100 * (i + 1) / n_samples, f"Evaluated test face {i + 1}/{n_samples}")

    report = EvaluationReport(items=items, execution_time=time.time() - start_time)

    logger.info("Evaluation: %d/%d correct (accuracy %.2f%%), %d rejected, %d failed",
                report.correct, report.attempted, 100 * report.accuracy, report.rejected, report.failed)

    if progress_callback:
        progress_callback(100, f"Evaluation completed in {report.execution_time:.2f} seconds")

    return report
