"""Gaussian action distribution with reparameterized sampling."""

import math

import torch

from sac_lib.errors import ConstructionError

LOG_SQRT_2PI = math.log(math.sqrt(2 * math.pi))


class Normal:
    """Diagonal Gaussian parameterized by `mean` and `std` (same shape).

    `sample()` uses the reparameterization trick (eps * std + mean), so the
    result stays differentiable w.r.t. both parameters. `log_prob()` is
    elementwise; reducing over the action axis is left to the caller.
    """

    def __init__(self, mean: torch.Tensor, std: torch.Tensor):
        if mean is None:
            raise ConstructionError("mean must not be None")
        if std is None:
            raise ConstructionError("std must not be None")
        if mean.shape != std.shape:
            raise ConstructionError(
                f"mean and std must have the same shape, got {tuple(mean.shape)} and {tuple(std.shape)}"
            )
        self.mean = mean
        self.std = std

    def sample(self, shape=None) -> torch.Tensor:
        shape = self.mean.shape if shape is None else torch.Size(shape)
        eps = torch.randn(shape, dtype=self.mean.dtype, device=self.mean.device)
        return eps * self.std + self.mean

    def log_prob(self, x: torch.Tensor) -> torch.Tensor:
        variance = self.std.pow(2)
        return -((x - self.mean).pow(2) / (2 * variance) - self.std.log() - LOG_SQRT_2PI)
