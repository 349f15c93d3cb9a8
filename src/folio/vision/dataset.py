"""Face-image datasets stored as ``.npz`` archives."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import torch
import torch.nn.functional as F

from folio.api.exceptions import FolioValidationError

_CHANNEL_COUNTS = (1, 3)


@dataclass(slots=True)
class ImageDataset:
    images: torch.Tensor
    labels: torch.Tensor
    class_names: list[str]

    def __len__(self) -> int:
        return int(self.images.shape[0])

    @property
    def n_classes(self) -> int:
        return len(self.class_names)

    @property
    def in_channels(self) -> int:
        return int(self.images.shape[1])

    @property
    def image_size(self) -> int:
        return int(self.images.shape[-1])


def images_to_tensor(images: np.ndarray, image_size: int | None = None) -> torch.Tensor:
    """Convert an image array to float32 N x C x H x W in [0, 1].

    Accepts N x H x W (grayscale), N x H x W x C and N x C x H x W with one or
    three channels. Integer arrays and float arrays above 1.0 are read as 0-255.
    """
    array = np.asarray(images)
    if array.ndim == 3:
        array = array[:, None, :, :]
    elif array.ndim == 4:
        if array.shape[1] in _CHANNEL_COUNTS:
            pass
        elif array.shape[-1] in _CHANNEL_COUNTS:
            array = np.transpose(array, (0, 3, 1, 2))
        else:
            raise FolioValidationError(
                f"Cannot infer the channel axis of image array with shape {array.shape}."
            )
    else:
        raise FolioValidationError(
            f"Image array must be 3-D or 4-D, got shape {array.shape}."
        )
    if array.shape[0] == 0:
        raise FolioValidationError("Image array is empty.")

    values = array.astype(np.float32)
    if np.issubdtype(array.dtype, np.integer) or float(values.max(initial=0.0)) > 1.0:
        values = values / 255.0
    tensor = torch.from_numpy(np.ascontiguousarray(np.clip(values, 0.0, 1.0)))
    if image_size is not None and tuple(tensor.shape[-2:]) != (image_size, image_size):
        tensor = F.interpolate(
            tensor, size=(image_size, image_size), mode="bilinear", align_corners=False
        )
    return tensor


def arrays_to_dataset(
    images: np.ndarray,
    labels: np.ndarray,
    class_names: list[str],
    image_size: int | None = None,
) -> ImageDataset:
    tensor = images_to_tensor(images, image_size=image_size)
    label_array = np.asarray(labels)
    if label_array.ndim != 1 or len(label_array) != tensor.shape[0]:
        raise FolioValidationError(
            f"labels must be 1-D with one entry per image ({tensor.shape[0]}), "
            f"got shape {label_array.shape}."
        )
    if not np.issubdtype(label_array.dtype, np.integer):
        raise FolioValidationError("labels must be integer class indices.")
    if label_array.min() < 0 or label_array.max() >= len(class_names):
        raise FolioValidationError(
            f"labels must lie in [0, {len(class_names) - 1}] for classes {class_names}."
        )
    return ImageDataset(
        images=tensor,
        labels=torch.from_numpy(label_array.astype(np.int64)),
        class_names=list(class_names),
    )


def load_image_dataset(
    path: str | Path,
    class_names: list[str] | None = None,
    image_size: int | None = None,
) -> ImageDataset:
    """Load ``images``/``labels`` (and optional ``class_names``) from an ``.npz`` archive.

    Class names stored in the archive take precedence over ``class_names``.
    """
    source = Path(path)
    if not source.exists():
        raise FolioValidationError(f"Image archive does not exist: {source}")
    if source.suffix.lower() != ".npz":
        raise FolioValidationError(
            f"Unsupported image archive format: '{source.suffix}'. Expected .npz."
        )
    with np.load(source, allow_pickle=False) as archive:
        missing = [key for key in ("images", "labels") if key not in archive.files]
        if missing:
            raise FolioValidationError(f"Image archive {source} is missing array(s): {missing}")
        images = archive["images"]
        labels = archive["labels"]
        stored_names = (
            [str(name) for name in archive["class_names"]]
            if "class_names" in archive.files
            else None
        )
    names = stored_names or class_names
    if not names:
        raise FolioValidationError("class_names must be stored in the archive or passed in.")
    return arrays_to_dataset(images, labels, names, image_size=image_size)
