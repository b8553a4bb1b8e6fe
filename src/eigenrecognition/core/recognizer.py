"""
Eigenface recognizer: the public entry point of the library.

The recognizer starts UNINITIALIZED (no model). train() and load_model() build
a complete new Model off to the side and then publish it in one assignment,
moving to TRAINED or LOADED. A failed or cancelled train/load leaves the
previously active model in place. Classification only ever reads the model
reference once per call, so it needs no lock.
"""

import threading
import numpy as np
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from eigenrecognition import config
from eigenrecognition.config import RecognizerConfig
from eigenrecognition.core import evaluation, persistence, trainer
from eigenrecognition.core.dataset import LabeledFace, load_training_set, read_manifest
from eigenrecognition.core.exports import save_debug_images
from eigenrecognition.core.matcher import check_results_no, classify
from eigenrecognition.core.model import Model, RecognitionResult
from eigenrecognition.core.projector import project_many
from eigenrecognition.errors import FileWriteError, NotReadyError
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class RecognizerState(Enum):
    UNINITIALIZED = "uninitialized"
    TRAINED = "trained"
    LOADED = "loaded"


def _scaled_progress(progress_callback: Optional[Callable], start: float, end: float) -> Optional[Callable]:
    if progress_callback is None:
        return None

    def callback(percent, message):
        progress_callback(start + (end - start) * percent / 100, message)

    return callback


class EigenfaceRecognizer:
    """
    Face identity classifier built on an eigenface model.

    Example:
        recognizer = EigenfaceRecognizer(recognition_threshold=0.6, distance_type="mahalanobis")
        recognizer.train(SourceKind.MANIFEST_FILE, "train.txt")
        results = recognizer.classify_batch([face], results_no=3)
    """

    def __init__(self, recognition_threshold: float = config.DEFAULT_RECOGNITION_THRESHOLD,
                 distance_type=config.DEFAULT_DISTANCE_TYPE,
                 image_extension: str = config.DEFAULT_IMAGE_EXTENSION,
                 default_model_path: PathLike = config.DEFAULT_TRAINING_DATA_FILE,
                 eigen_vectors_no: Optional[int] = None,
                 max_workers: Optional[int] = None):
        self._write_lock = threading.Lock()
        # (model, state) replaced as one tuple so readers never see a mismatched pair
        self._active: Tuple[Optional[Model], RecognizerState] = (None, RecognizerState.UNINITIALIZED)
        self.config: RecognizerConfig = RecognizerConfig()
        self.initialize(recognition_threshold, distance_type, image_extension, default_model_path,
                        eigen_vectors_no, max_workers)

    def initialize(self, recognition_threshold: float = config.DEFAULT_RECOGNITION_THRESHOLD,
                   distance_type=config.DEFAULT_DISTANCE_TYPE,
                   image_extension: str = config.DEFAULT_IMAGE_EXTENSION,
                   default_model_path: PathLike = config.DEFAULT_TRAINING_DATA_FILE,
                   eigen_vectors_no: Optional[int] = None,
                   max_workers: Optional[int] = None) -> RecognizerConfig:
        """
        Set the recognition parameters used by subsequent training runs.

        Args:
            recognition_threshold: Minimum confidence (0..1) to report a subject
            distance_type: "euclidean" or "mahalanobis"
            image_extension: Image file extension for directory sources
            default_model_path: Model file used when save/load get no path
            eigen_vectors_no: Number of eigenfaces to keep (None: trainFacesNo - 1)
            max_workers: Threads used for image projection

        Returns:
            RecognizerConfig: The validated configuration

        Raises:
            InvalidParameterError: If a parameter is invalid; the previous
                configuration is kept
        """
        self.config = RecognizerConfig(
            recognition_threshold=recognition_threshold,
            distance_type=distance_type,
            image_extension=image_extension,
            default_model_path=str(default_model_path) if default_model_path else "",
            eigen_vectors_no=eigen_vectors_no,
            max_workers=max_workers,
        ).validate()
        return self.config

    @property
    def state(self) -> RecognizerState:
        return self._active[1]

    @property
    def is_ready(self) -> bool:
        return self._active[0] is not None

    @property
    def model(self) -> Optional[Model]:
        return self._active[0]

    def _require_model(self) -> Model:
        model = self._active[0]
        if model is None:
            raise NotReadyError("No model available: call train() or load_model() first")
        return model

    def _install(self, model: Model, state: RecognizerState) -> None:
        self._active = (model, state)
        logger.info("Installed %s model: %d faces, %d eigenfaces, %s distance, threshold %.3f",
                    state.value, model.train_faces_no, model.eigen_vectors_no,
                    model.config.distance_type.value, model.config.recognition_threshold)

    def train_faces(self, training_set: Sequence[LabeledFace], export_debug_images: bool = False,
                    export_dir: Optional[PathLike] = None,
                    cancel_event: Optional[threading.Event] = None,
                    progress_callback: Optional[Callable] = None) -> Model:
        """
        Train on faces already in memory and make the result the active model.

        See train() for the arguments and errors.
        """
        with self._write_lock:
            cfg = self.config
            model = self._build(cfg, training_set, cancel_event, progress_callback)
            self._install(model, RecognizerState.TRAINED)
        if export_debug_images:
            self._export_debug_images(model, cfg, export_dir)
        return model

    def _build(self, cfg: RecognizerConfig, training_set, cancel_event, progress_callback) -> Model:
        return trainer.train(
            training_set,
            distance_type=cfg.distance_type,
            recognition_threshold=cfg.recognition_threshold,
            eigen_vectors_no=cfg.eigen_vectors_no,
            cancel_event=cancel_event,
            max_workers=cfg.max_workers,
            progress_callback=progress_callback,
        )

    def _export_debug_images(self, model: Model, cfg: RecognizerConfig, export_dir: Optional[PathLike]) -> None:
        out_dir = Path(export_dir) if export_dir is not None else Path(cfg.default_model_path).parent
        try:
            save_debug_images(model, out_dir)
        except FileWriteError as e:
            logger.warning("Could not export debug images to %s: %s", out_dir, e)

    def train(self, source_kind, source_path: PathLike, export_debug_images: bool = False,
              export_dir: Optional[PathLike] = None,
              cancel_event: Optional[threading.Event] = None,
              progress_callback: Optional[Callable] = None) -> Model:
        """
        Load a training set, train a model and make it the active model.

        Args:
            source_kind: SourceKind.MANIFEST_FILE or SourceKind.DIRECTORY (or "manifest"/"directory")
            source_path: Manifest file or subjects directory
            export_debug_images: Also write the average face and eigenfaces images; a failed
                write is logged as a warning and does not affect the new model
            export_dir: Directory for the debug images (defaults to the model file's directory)
            cancel_event: When set, training stops and the active model is unchanged
            progress_callback: Callback function for progress reporting

        Returns:
            Model: The new active model

        Raises:
            MissingFileError, ImageLoadError: If the training source cannot be read
            InsufficientTrainingDataError, DimensionMismatchError, InvalidParameterError:
                If the training set is unusable
            TrainingCancelledError: If cancel_event was set
        """
        with self._write_lock:
            cfg = self.config
            faces = load_training_set(source_kind, source_path, cfg.image_extension,
                                      cancel_event=cancel_event,
                                      progress_callback=_scaled_progress(progress_callback, 0, 30))
            model = self._build(cfg, faces, cancel_event, _scaled_progress(progress_callback, 30, 100))
            self._install(model, RecognizerState.TRAINED)
        if export_debug_images:
            self._export_debug_images(model, cfg, export_dir)
        return model

    def save_model(self, path: Optional[PathLike] = None) -> Path:
        """
        Save the active model.

        Args:
            path: Destination file; defaults to config.default_model_path

        Returns:
            Path: Where the model was written

        Raises:
            NotReadyError: If there is no active model
            FileWriteError: If the file cannot be written
        """
        model = self._require_model()
        return persistence.save_model(model, path if path is not None else self.config.default_model_path)

    def load_model(self, path: Optional[PathLike] = None) -> Model:
        """
        Load a model and make it the active model.

        The loaded model keeps the distance type and threshold stored in the file.

        Args:
            path: Model file; defaults to config.default_model_path

        Returns:
            Model: The new active model

        Raises:
            MissingFileError: If the file does not exist
            CorruptModelError: If the file is not a valid model
        """
        with self._write_lock:
            model = persistence.load_model(path if path is not None else self.config.default_model_path)
            self._install(model, RecognizerState.LOADED)
        return model

    def classify_batch(self, images: Sequence[np.ndarray], results_no: int = 1) -> List[RecognitionResult]:
        """
        Recognize several faces.

        Args:
            images: Face images with the model's image shape
            results_no: Maximum number of subjects per face

        Returns:
            List[RecognitionResult]: One result per image, in input order

        Raises:
            NotReadyError: If there is no active model
            InvalidParameterError: If results_no < 1
            DimensionMismatchError: If an image has the wrong shape
        """
        model = self._require_model()
        results_no = check_results_no(results_no)
        features = project_many(list(images), model, max_workers=self.config.max_workers)
        return [classify(feature, model, results_no) for feature in features]

    def classify(self, image: np.ndarray, results_no: int = 1) -> RecognitionResult:
        """Recognize a single face."""
        return self.classify_batch([image], results_no)[0]

    def evaluate_faces(self, samples: Sequence, progress_callback: Optional[Callable] = None) -> evaluation.EvaluationReport:
        """Evaluate the active model on labeled faces held in memory."""
        model = self._require_model()
        return evaluation.evaluate(samples, model, progress_callback=progress_callback)

    def evaluate(self, test_manifest_path: PathLike,
                 progress_callback: Optional[Callable] = None) -> evaluation.EvaluationReport:
        """
        Evaluate the active model on the faces listed in a manifest.

        Args:
            test_manifest_path: Manifest with '<subjectID> <imagePath>' lines
            progress_callback: Callback function for progress reporting

        Returns:
            EvaluationReport: Per-item outcomes and aggregate accuracy

        Raises:
            NotReadyError: If there is no active model
            MissingFileError: If the manifest does not exist
        """
        model = self._require_model()
        entries = read_manifest(test_manifest_path)
        samples = [(entry.subject_id, entry.image_path) for entry in entries]
        return evaluation.evaluate(samples, model, progress_callback=progress_callback)
