"""Experience replay buffer."""

import numpy as np
import torch

from sac_lib.errors import ConstructionError, InputShapeError
from sac_lib.types import TransitionBatch


def _as_numpy(x):
    if isinstance(x, torch.Tensor):
        x = x.detach().cpu().numpy()
    return np.asarray(x, dtype=np.float32)


# =========================
# Replay Buffer (for SAC)
# =========================
class ReplayBuffer:
    """Fixed-capacity NumPy replay buffer written in batches of `write_batch_size` rows.

    Writes advance sequentially until the buffer is full. From then on every
    write picks a uniformly random batch-aligned slot, so eviction is random
    rather than oldest-first.
    """

    def __init__(self, obs_dim, action_dim, capacity, write_batch_size=1):
        capacity = int(capacity)
        write_batch_size = int(write_batch_size)
        if capacity <= 0 or write_batch_size <= 0:
            raise ConstructionError("capacity and write_batch_size must be positive")
        if capacity % write_batch_size != 0:
            raise ConstructionError(
                f"capacity ({capacity}) must be a multiple of write_batch_size ({write_batch_size})"
            )

        self.obs_dim = int(obs_dim)
        self.action_dim = int(action_dim)
        self.capacity = capacity
        self.write_batch_size = write_batch_size

        # Pre-allocate arrays
        self.obs = np.zeros((capacity, self.obs_dim), np.float32)
        self.next = np.zeros_like(self.obs)
        self.act = np.zeros((capacity, self.action_dim), np.float32)
        self.rew = np.zeros(capacity, np.float32)
        self.done = np.zeros(capacity, np.float32)

        self.ptr = 0
        self.size = 0

    def store(self, batch: TransitionBatch):
        """Write one batch of exactly `write_batch_size` transitions."""
        n = len(batch)
        if n != self.write_batch_size:
            raise InputShapeError(f"Batch size {n} must match write_batch_size {self.write_batch_size}")

        obs = _as_numpy(batch.observation).reshape(n, -1)
        nxt = _as_numpy(batch.next_observation).reshape(n, -1)
        act = _as_numpy(batch.action).reshape(n, -1)
        if obs.shape[1] != self.obs_dim or nxt.shape[1] != self.obs_dim:
            raise InputShapeError(f"Observations must have {self.obs_dim} features")
        if act.shape[1] != self.action_dim:
            raise InputShapeError(f"Actions must have {self.action_dim} features")
        rew = _as_numpy(batch.reward).reshape(n)
        done = _as_numpy(batch.done).reshape(n)

        if self.size == self.capacity:
            slots = self.capacity // self.write_batch_size
            self.ptr = int(np.random.randint(0, slots)) * self.write_batch_size

        end = self.ptr + n
        self.obs[self.ptr:end] = obs
        self.next[self.ptr:end] = nxt
        self.act[self.ptr:end] = act
        self.rew[self.ptr:end] = rew
        self.done[self.ptr:end] = done

        self.ptr = end % self.capacity
        self.size = min(self.size + n, self.capacity)

    def push_batch(self, obs, act, rew, nxt, done):
        """Store raw arrays as one transition batch."""
        self.store(TransitionBatch(
            observation=obs,
            next_observation=nxt,
            action=act,
            reward=rew,
            done=done,
        ))

    def sample_batch(self, batch_size) -> TransitionBatch:
        """Draw `batch_size` transitions uniformly (with replacement) from the filled part."""
        if self.size == 0:
            raise ValueError("Cannot sample from an empty replay buffer")
        idx = np.random.randint(0, self.size, int(batch_size))
        return TransitionBatch(
            observation=self.obs[idx],
            next_observation=self.next[idx],
            action=self.act[idx],
            reward=self.rew[idx],
            done=self.done[idx],
        )

    def __len__(self):
        return self.size
