"""Residual CNN gender classifier."""

from folio.vision.checkpoint import load_checkpoint, predict_proba, save_checkpoint
from folio.vision.dataset import (
    ImageDataset,
    arrays_to_dataset,
    images_to_tensor,
    load_image_dataset,
)
from folio.vision.network import GenderCNN, ResidualBlock
from folio.vision.training import ClassifierTrainingOutput, train_classifier_model

__all__ = [
    "ClassifierTrainingOutput",
    "GenderCNN",
    "ImageDataset",
    "ResidualBlock",
    "arrays_to_dataset",
    "images_to_tensor",
    "load_checkpoint",
    "load_image_dataset",
    "predict_proba",
    "save_checkpoint",
    "train_classifier_model",
]
