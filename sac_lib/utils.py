"""Utility functions for SAC training."""

import random
from contextlib import contextmanager
from typing import Iterable

import numpy as np
import torch


def get_device():
    """Get the device to use for training (CUDA if available, else CPU)."""
    return "cuda" if torch.cuda.is_available() else "cpu"


def set_seed(seed: int) -> None:
    """Seed every random source used by the library (python, numpy, torch)."""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


@contextmanager
def frozen(params: Iterable[torch.nn.Parameter]):
    """Disable gradient tracking for `params` inside the block.

    Each parameter's previous `requires_grad` flag is restored on exit.
    """
    params = list(params)
    previous = [p.requires_grad for p in params]
    for p in params:
        p.requires_grad_(False)
    try:
        yield params
    finally:
        for p, flag in zip(params, previous):
            p.requires_grad_(flag)


@torch.no_grad()
def polyak_update(target: torch.nn.Module, source: torch.nn.Module, tau: float) -> None:
    """target <- target * tau + source * (1 - tau), for every parameter pair."""
    for p_tgt, p in zip(target.parameters(), source.parameters()):
        p_tgt.data.mul_(tau).add_(p.data, alpha=1.0 - tau)
