"""Training loop for the residual CNN classifier."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
import torch
from sklearn.metrics import accuracy_score, confusion_matrix, f1_score, log_loss, roc_auc_score
from sklearn.model_selection import train_test_split
from torch import nn
from torch.utils.data import DataLoader, TensorDataset

from folio.api.exceptions import FolioValidationError
from folio.config.models import ProjectConfig
from folio.vision.checkpoint import build_checkpoint_payload, predict_proba
from folio.vision.dataset import ImageDataset
from folio.vision.network import GenderCNN


@dataclass(slots=True)
class ClassifierTrainingOutput:
    checkpoint: dict[str, Any]
    history: list[dict[str, float]]
    metrics: dict[str, float]
    confusion: list[list[int]]
    class_names: list[str]
    best_epoch: int
    epochs_run: int
    valid_indices: np.ndarray


def _resolve_device(name: str) -> torch.device:
    device = torch.device(name)
    if device.type == "cuda" and not torch.cuda.is_available():
        raise FolioValidationError("classifier.device='cuda' requested but CUDA is unavailable.")
    return device


def split_train_valid(
    labels: np.ndarray,
    validation_fraction: float,
    seed: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Stratified index split; falls back to a random split for tiny classes."""
    indices = np.arange(len(labels))
    if len(indices) < 2:
        raise FolioValidationError("At least 2 images are required to train.")
    try:
        train_idx, valid_idx = train_test_split(
            indices,
            test_size=validation_fraction,
            stratify=labels,
            random_state=seed,
        )
    except ValueError:
        # Fallback when tiny classes cannot satisfy stratification constraints.
        train_idx, valid_idx = train_test_split(
            indices,
            test_size=validation_fraction,
            random_state=seed,
        )
    return np.sort(train_idx), np.sort(valid_idx)


def classification_metrics(
    y_true: np.ndarray,
    proba: np.ndarray,
    n_classes: int,
) -> tuple[dict[str, float], list[list[int]]]:
    y_true = np.asarray(y_true, dtype=int)
    proba = np.clip(np.asarray(proba, dtype=float), 1e-7, 1.0 - 1e-7)
    y_pred = np.argmax(proba, axis=1)
    labels = list(range(n_classes))
    if n_classes == 2:
        f1 = float(f1_score(y_true, y_pred, zero_division=0))
    else:
        f1 = float(f1_score(y_true, y_pred, average="macro", zero_division=0))
    auc = math.nan
    if len(np.unique(y_true)) == n_classes:
        if n_classes == 2:
            auc = float(roc_auc_score(y_true, proba[:, 1]))
        else:
            normalized = proba / proba.sum(axis=1, keepdims=True)
            auc = float(roc_auc_score(y_true, normalized, multi_class="ovr", labels=labels))
    metrics = {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "f1": f1,
        "auc": auc,
        "logloss": float(log_loss(y_true, proba, labels=labels)),
    }
    matrix = confusion_matrix(y_true, y_pred, labels=labels)
    return metrics, matrix.astype(int).tolist()


def _run_epoch(
    model: GenderCNN,
    loader: DataLoader,
    criterion: nn.Module,
    device: torch.device,
    optimizer: torch.optim.Optimizer | None = None,
) -> tuple[float, float]:
    training = optimizer is not None
    model.train(training)
    total_loss = 0.0
    correct = 0
    seen = 0
    with torch.set_grad_enabled(training):
        for images, labels in loader:
            images = images.to(device)
            labels = labels.to(device)
            logits = model(images)
            loss = criterion(logits, labels)
            if training:
                optimizer.zero_grad()
                loss.backward()
                optimizer.step()
            total_loss += float(loss.item()) * int(labels.shape[0])
            correct += int((logits.argmax(dim=1) == labels).sum().item())
            seen += int(labels.shape[0])
    return total_loss / max(seen, 1), correct / max(seen, 1)


def train_classifier_model(
    config: ProjectConfig,
    dataset: ImageDataset,
    on_epoch: Callable[[dict[str, float]], None] | None = None,
) -> ClassifierTrainingOutput:
    """Train :class:`GenderCNN` and keep the best validation-accuracy weights.

    Notes
    -----
    - The validation split is stratified by label and seeded by
      ``classifier.seed``.
    - Training stops early after ``classifier.early_stopping_patience`` epochs
      without a validation-accuracy improvement.
    - Returned metrics are computed on the validation split with the best
      weights restored.
    """
    if config.task.type != "classification":
        raise FolioValidationError(
            "train_classifier_model only supports task.type='classification'."
        )
    cfg = config.classifier
    if dataset.n_classes != len(cfg.class_names):
        raise FolioValidationError(
            f"Dataset has {dataset.n_classes} classes but classifier.class_names lists "
            f"{len(cfg.class_names)}."
        )
    min_size = 2 ** len(cfg.channels)
    if dataset.image_size < min_size:
        raise FolioValidationError(
            f"Images of size {dataset.image_size} are too small for {len(cfg.channels)} "
            f"stages (need >= {min_size})."
        )
    device = _resolve_device(cfg.device)
    torch.manual_seed(cfg.seed)

    labels_np = dataset.labels.numpy()
    train_idx, valid_idx = split_train_valid(labels_np, cfg.validation_fraction, cfg.seed)
    if len(train_idx) < 2:
        raise FolioValidationError("At least 2 training images are required after the split.")
    train_idx_t = torch.from_numpy(train_idx)
    valid_idx_t = torch.from_numpy(valid_idx)
    train_loader = DataLoader(
        TensorDataset(dataset.images[train_idx_t], dataset.labels[train_idx_t]),
        batch_size=cfg.batch_size,
        shuffle=True,
        generator=torch.Generator().manual_seed(cfg.seed),
        # BatchNorm cannot train on a trailing batch of one image.
        drop_last=len(train_idx) % cfg.batch_size == 1,
    )
    valid_loader = DataLoader(
        TensorDataset(dataset.images[valid_idx_t], dataset.labels[valid_idx_t]),
        batch_size=cfg.batch_size,
        shuffle=False,
    )

    model = GenderCNN(
        in_channels=dataset.in_channels,
        n_classes=dataset.n_classes,
        channels=cfg.channels,
        blocks_per_stage=cfg.blocks_per_stage,
        dropout=cfg.dropout,
    ).to(device)
    optimizer = torch.optim.Adam(
        model.parameters(), lr=cfg.learning_rate, weight_decay=cfg.weight_decay
    )
    criterion = nn.CrossEntropyLoss()

    history: list[dict[str, float]] = []
    best_accuracy = -1.0
    best_epoch = 0
    best_state: dict[str, torch.Tensor] | None = None
    epochs_without_improvement = 0

    for epoch in range(1, cfg.epochs + 1):
        train_loss, train_acc = _run_epoch(model, train_loader, criterion, device, optimizer)
        val_loss, val_acc = _run_epoch(model, valid_loader, criterion, device)
        record = {
            "epoch": float(epoch),
            "train_loss": train_loss,
            "train_accuracy": train_acc,
            "val_loss": val_loss,
            "val_accuracy": val_acc,
        }
        history.append(record)
        if on_epoch is not None:
            on_epoch(record)

        if val_acc > best_accuracy:
            best_accuracy = val_acc
            best_epoch = epoch
            best_state = {k: v.detach().cpu().clone() for k, v in model.state_dict().items()}
            epochs_without_improvement = 0
        else:
            epochs_without_improvement += 1
            patience = cfg.early_stopping_patience
            if patience is not None and epochs_without_improvement >= patience:
                break

    if best_state is not None:
        model.load_state_dict(best_state)
    model = model.cpu()
    proba = predict_proba(model, dataset.images[valid_idx_t], batch_size=cfg.batch_size)
    metrics, confusion = classification_metrics(labels_np[valid_idx], proba, dataset.n_classes)
    metrics["best_epoch"] = float(best_epoch)

    checkpoint = build_checkpoint_payload(
        model,
        class_names=dataset.class_names,
        image_size=dataset.image_size,
        metadata={"best_epoch": best_epoch, "val_accuracy": metrics["accuracy"]},
    )
    return ClassifierTrainingOutput(
        checkpoint=checkpoint,
        history=history,
        metrics=metrics,
        confusion=confusion,
        class_names=list(dataset.class_names),
        best_epoch=best_epoch,
        epochs_run=len(history),
        valid_indices=valid_idx,
    )
