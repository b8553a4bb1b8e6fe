"""
Eigenface recognition - command-line interface
"""

import argparse
import json
import sys
from typing import List, Optional

from eigenrecognition import config
from eigenrecognition.core.dataset import SourceKind, load_face_image
from eigenrecognition.core.recognizer import EigenfaceRecognizer
from eigenrecognition.errors import RecognitionError
from eigenrecognition.utils.log import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='eigenrecognition',
                                     description='Eigenfaces facial recognition system')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--model', default=config.DEFAULT_TRAINING_DATA_FILE,
                        help=f'Model file (default: {config.DEFAULT_TRAINING_DATA_FILE})')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Train command
    train_parser = subparsers.add_parser('train', help='Train a model and save it')
    train_parser.add_argument('source', help='Manifest file or subjects directory')
    train_parser.add_argument('--source-kind', choices=[k.value for k in SourceKind],
                              default=SourceKind.MANIFEST_FILE.value,
                              help='Training source type (default: manifest)')
    train_parser.add_argument('--threshold', type=float, default=config.DEFAULT_RECOGNITION_THRESHOLD,
                              help=f'Recognition threshold (default: {config.DEFAULT_RECOGNITION_THRESHOLD})')
    train_parser.add_argument('--distance', choices=['euclidean', 'mahalanobis'],
                              default=config.DEFAULT_DISTANCE_TYPE,
                              help=f'Distance type (default: {config.DEFAULT_DISTANCE_TYPE})')
    train_parser.add_argument('--extension', default=config.DEFAULT_IMAGE_EXTENSION,
                              help=f'Face image extension for directory sources (default: {config.DEFAULT_IMAGE_EXTENSION})')
    train_parser.add_argument('--eigenfaces', type=int, default=None,
                              help='Number of eigenfaces to keep (default: all)')
    train_parser.add_argument('--export-debug', action='store_true',
                              help='Write the average face and eigenfaces images')
    train_parser.add_argument('--export-dir', default=None,
                              help='Directory for debug images (default: next to the model)')

    # Classify command
    classify_parser = subparsers.add_parser('classify', help='Recognize face images')
    classify_parser.add_argument('images', nargs='+', help='Face image files')
    classify_parser.add_argument('--results', type=int, default=1,
                                 help='Number of best subjects per face (default: 1)')

    # Evaluate command
    evaluate_parser = subparsers.add_parser('evaluate', help='Evaluate model accuracy on a test manifest')
    evaluate_parser.add_argument('manifest', help="Test manifest ('<subjectID> <imagePath>' per line)")
    evaluate_parser.add_argument('--json', action='store_true', help='Print the full report as JSON')

    return parser


def run(args: argparse.Namespace) -> int:
    if args.command == 'train':
        recognizer = EigenfaceRecognizer(
            recognition_threshold=args.threshold,
            distance_type=args.distance,
            image_extension=args.extension,
            default_model_path=args.model,
            eigen_vectors_no=args.eigenfaces,
        )
        model = recognizer.train(args.source_kind, args.source,
                                 export_debug_images=args.export_debug, export_dir=args.export_dir)
        path = recognizer.save_model()
        print(f"Trained on {model.train_faces_no} faces, {model.eigen_vectors_no} eigenfaces; saved to {path}")
        return 0

    recognizer = EigenfaceRecognizer(default_model_path=args.model)
    recognizer.load_model()

    if args.command == 'classify':
        images = [load_face_image(path) for path in args.images]
        results = recognizer.classify_batch(images, args.results)
        for path, result in zip(args.images, results):
            ranked = ", ".join(f"{c.subject_id} ({c.confidence:.3f})" for c in result)
            print(f"{path}: {ranked}")
        return 0

    if args.command == 'evaluate':
        report = recognizer.evaluate(args.manifest)
        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(f"Accuracy: {report.accuracy:.2%} ({report.correct}/{report.attempted}), "
                  f"rejected: {report.rejected}, failed: {report.failed}")
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    setup_logging(args.verbose)
    try:
        return run(args)
    except RecognitionError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
