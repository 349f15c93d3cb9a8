"""Model checkpoint persistence and inference."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import torch

from folio.api.exceptions import FolioArtifactError, FolioValidationError
from folio.vision.network import GenderCNN

CHECKPOINT_FORMAT_VERSION = 1


def build_checkpoint_payload(
    model: GenderCNN,
    class_names: list[str],
    image_size: int,
    metadata: dict[str, Any] | None = None,
    state_dict: dict[str, torch.Tensor] | None = None,
) -> dict[str, Any]:
    state = state_dict if state_dict is not None else model.state_dict()
    return {
        "format_version": CHECKPOINT_FORMAT_VERSION,
        "architecture": model.architecture(),
        "state_dict": {key: value.detach().cpu() for key, value in state.items()},
        "class_names": list(class_names),
        "image_size": int(image_size),
        "metadata": dict(metadata or {}),
    }


def write_checkpoint_payload(payload: dict[str, Any], path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    torch.save(payload, target)
    return target


def read_checkpoint_payload(path: str | Path) -> dict[str, Any]:
    source = Path(path)
    if not source.exists():
        raise FolioArtifactError(f"Checkpoint does not exist: {source}")
    try:
        payload = torch.load(source, map_location="cpu", weights_only=True)
    except Exception as exc:
        raise FolioArtifactError(f"Failed to read checkpoint {source}") from exc
    if not isinstance(payload, dict) or "state_dict" not in payload:
        raise FolioArtifactError(f"Checkpoint {source} has no state_dict.")
    if payload.get("format_version") != CHECKPOINT_FORMAT_VERSION:
        raise FolioArtifactError(
            f"Unsupported checkpoint format_version={payload.get('format_version')!r}."
        )
    return payload


def model_from_payload(payload: dict[str, Any]) -> GenderCNN:
    model = GenderCNN(**payload["architecture"])
    try:
        model.load_state_dict(payload["state_dict"])
    except RuntimeError as exc:
        raise FolioArtifactError("Checkpoint weights do not match its architecture.") from exc
    model.eval()
    return model


def save_checkpoint(
    path: str | Path,
    model: GenderCNN,
    class_names: list[str],
    image_size: int,
    metadata: dict[str, Any] | None = None,
) -> Path:
    payload = build_checkpoint_payload(model, class_names, image_size, metadata)
    return write_checkpoint_payload(payload, path)


def load_checkpoint(path: str | Path) -> tuple[GenderCNN, dict[str, Any]]:
    """Rebuild the network in eval mode. Returns the model and the raw payload."""
    payload = read_checkpoint_payload(path)
    return model_from_payload(payload), payload


@torch.no_grad()
def predict_proba(
    model: GenderCNN,
    images: torch.Tensor,
    batch_size: int = 256,
    device: str = "cpu",
) -> np.ndarray:
    if images.ndim != 4:
        raise FolioValidationError("images must be a N x C x H x W tensor.")
    expected = model.architecture()["in_channels"]
    if images.shape[1] != expected:
        raise FolioValidationError(
            f"Model expects {expected} channel(s), got {int(images.shape[1])}."
        )
    model = model.to(device)
    model.eval()
    chunks: list[np.ndarray] = []
    for start in range(0, images.shape[0], batch_size):
        batch = images[start : start + batch_size].to(device)
        chunks.append(torch.softmax(model(batch), dim=1).cpu().numpy())
    if not chunks:
        return np.empty((0, model.architecture()["n_classes"]), dtype=np.float32)
    return np.concatenate(chunks, axis=0)
