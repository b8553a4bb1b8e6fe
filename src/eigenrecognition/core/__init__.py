"""
Core functionality for eigenface recognition.

This package contains the implementation of the core functionalities:
- Numeric matrix utilities
- Model training (eigenfaces via the Gram matrix)
- Projection into the eigenface subspace
- Nearest-neighbour matching with rejection
- Model persistence
- Performance evaluation
"""

from .dataset import (
    LabeledFace, SourceKind, create_synthetic_dataset, load_directory, load_face_image,
    load_manifest, load_training_set, read_manifest
)
from .distance import DistanceType, EuclideanDistance, MahalanobisDistance, get_distance
from .model import UNKNOWN_SUBJECT_ID, Candidate, Model, ModelConfig, RecognitionResult
from .trainer import train
from .projector import project, project_many
from .matcher import classify
from .persistence import load_model, save_model
from .evaluation import EvaluationItem, EvaluationReport, evaluate
from .exports import save_debug_images
from .recognizer import EigenfaceRecognizer, RecognizerState

__all__ = [
    'LabeledFace',
    'SourceKind',
    'create_synthetic_dataset',
    'load_directory',
    'load_face_image',
    'load_manifest',
    'load_training_set',
    'read_manifest',
    'DistanceType',
    'EuclideanDistance',
    'MahalanobisDistance',
    'get_distance',
    'UNKNOWN_SUBJECT_ID',
    'Candidate',
    'Model',
    'ModelConfig',
    'RecognitionResult',
    'train',
    'project',
    'project_many',
    'classify',
    'load_model',
    'save_model',
    'EvaluationItem',
    'EvaluationReport',
    'evaluate',
    'save_debug_images',
    'EigenfaceRecognizer',
    'RecognizerState'
]
