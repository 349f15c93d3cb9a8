from __future__ import annotations

import pytest

torch = pytest.importorskip("torch")

from folio.vision.network import GenderCNN, ResidualBlock  # noqa: E402


def test_residual_block_projects_shortcut_when_shape_changes() -> None:
    identity = ResidualBlock(8, 8)
    assert isinstance(identity.shortcut, torch.nn.Identity)
    projected = ResidualBlock(8, 16, stride=2)
    out = projected(torch.zeros(2, 8, 16, 16))
    assert tuple(out.shape) == (2, 16, 8, 8)


@pytest.mark.parametrize("size", [8, 16, 33])
def test_gender_cnn_output_shape(size: int) -> None:
    model = GenderCNN(in_channels=1, n_classes=3, channels=[4, 8, 8], blocks_per_stage=2)
    model.eval()
    logits = model(torch.zeros(2, 1, size, size))
    assert tuple(logits.shape) == (2, 3)


def test_architecture_rebuilds_identical_network() -> None:
    model = GenderCNN(in_channels=3, n_classes=2, channels=(4, 8), dropout=0.1)
    arch = model.architecture()
    assert arch == {
        "in_channels": 3,
        "n_classes": 2,
        "channels": [4, 8],
        "blocks_per_stage": 1,
        "dropout": 0.1,
    }
    clone = GenderCNN(**arch)
    clone.load_state_dict(model.state_dict())
