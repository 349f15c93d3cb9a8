"""Residual convolutional network for face-image classification."""

from __future__ import annotations

from typing import Any

import torch
from torch import nn


class ResidualBlock(nn.Module):
    """Two 3x3 convolutions whose output is added back to the (projected) input."""

    def __init__(self, in_channels: int, out_channels: int, stride: int = 1):
        super().__init__()
        self.conv1 = nn.Conv2d(
            in_channels, out_channels, kernel_size=3, stride=stride, padding=1, bias=False
        )
        self.bn1 = nn.BatchNorm2d(out_channels)
        self.conv2 = nn.Conv2d(
            out_channels, out_channels, kernel_size=3, stride=1, padding=1, bias=False
        )
        self.bn2 = nn.BatchNorm2d(out_channels)
        self.relu = nn.ReLU(inplace=True)
        if stride != 1 or in_channels != out_channels:
            self.shortcut: nn.Module = nn.Sequential(
                nn.Conv2d(in_channels, out_channels, kernel_size=1, stride=stride, bias=False),
                nn.BatchNorm2d(out_channels),
            )
        else:
            self.shortcut = nn.Identity()

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        out = self.relu(self.bn1(self.conv1(x)))
        out = self.bn2(self.conv2(out))
        return self.relu(out + self.shortcut(x))


class GenderCNN(nn.Module):
    """Stem, residual stages and a linear head.

    Each stage after the first halves the spatial resolution; the head pools
    globally, so any input size of at least ``2 ** len(channels)`` works.
    """

    def __init__(
        self,
        in_channels: int = 3,
        n_classes: int = 2,
        channels: list[int] | tuple[int, ...] = (32, 64, 128),
        blocks_per_stage: int = 1,
        dropout: float = 0.3,
    ):
        super().__init__()
        self._architecture: dict[str, Any] = {
            "in_channels": int(in_channels),
            "n_classes": int(n_classes),
            "channels": [int(c) for c in channels],
            "blocks_per_stage": int(blocks_per_stage),
            "dropout": float(dropout),
        }
        first = int(channels[0])
        self.stem = nn.Sequential(
            nn.Conv2d(in_channels, first, kernel_size=3, stride=1, padding=1, bias=False),
            nn.BatchNorm2d(first),
            nn.ReLU(inplace=True),
        )
        stages: list[nn.Module] = []
        previous = first
        for stage_idx, width in enumerate(channels):
            for block_idx in range(blocks_per_stage):
                stride = 2 if stage_idx > 0 and block_idx == 0 else 1
                stages.append(ResidualBlock(previous, int(width), stride=stride))
                previous = int(width)
        self.stages = nn.Sequential(*stages)
        self.pool = nn.AdaptiveAvgPool2d(1)
        self.dropout = nn.Dropout(p=dropout)
        self.head = nn.Linear(previous, n_classes)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        out = self.stages(self.stem(x))
        out = torch.flatten(self.pool(out), 1)
        return self.head(self.dropout(out))

    def architecture(self) -> dict[str, Any]:
        """Constructor kwargs, enough to rebuild the network from a checkpoint."""
        return dict(self._architecture, channels=list(self._architecture["channels"]))
