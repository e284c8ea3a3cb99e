"""Type definitions for the SAC framework."""

from dataclasses import dataclass
from typing import TypeAlias

import numpy as np
import torch

from sac_lib.errors import ConstructionError, InputShapeError

Action: TypeAlias = np.ndarray | torch.Tensor
Observation: TypeAlias = np.ndarray | torch.Tensor
Reward: TypeAlias = float | np.ndarray | torch.Tensor
Done: TypeAlias = bool | np.ndarray | torch.Tensor
LogProb: TypeAlias = torch.Tensor

_FIELDS = ("observation", "next_observation", "action", "reward", "done")


@dataclass(frozen=True)
class TransitionBatch:
    """Five co-indexed arrays sharing the same leading (batch) dimension.

    Shapes: observation/next_observation [B, O], action [B, A],
    reward [B], done [B] (0.0 or 1.0).
    """

    observation: Observation
    next_observation: Observation
    action: Action
    reward: Reward
    done: Done

    def __post_init__(self):
        for name in _FIELDS:
            value = getattr(self, name)
            if value is None:
                raise ConstructionError(f"{name} must not be None")
            if not isinstance(value, (np.ndarray, torch.Tensor)):
                object.__setattr__(self, name, np.asarray(value, dtype=np.float32))

        lengths = {name: int(getattr(self, name).shape[0]) for name in _FIELDS}
        if len(set(lengths.values())) != 1:
            raise InputShapeError(f"All fields must share the leading dimension, got {lengths}")

    def __len__(self):
        return int(self.observation.shape[0])

    def to(self, device) -> "TransitionBatch":
        """Return a copy made of float32 torch tensors on `device`."""
        def _t(x):
            if isinstance(x, np.ndarray):
                x = torch.from_numpy(x)
            return x.to(device=device, dtype=torch.float32)

        return TransitionBatch(*(_t(getattr(self, name)) for name in _FIELDS))
