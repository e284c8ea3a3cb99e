"""
Unit tests for the replay buffer.
"""

import numpy as np
import pytest
import torch

from sac_lib.buffers import ReplayBuffer
from sac_lib.errors import ConstructionError, InputShapeError
from sac_lib.types import TransitionBatch


def _batch(value, n=2, obs_dim=3, action_dim=1):
    """A batch whose every entry is derived from `value`, so rows are traceable."""
    return TransitionBatch(
        observation=np.full((n, obs_dim), value, np.float32),
        next_observation=np.full((n, obs_dim), value + 0.5, np.float32),
        action=np.full((n, action_dim), -value, np.float32),
        reward=np.full(n, value * 2, np.float32),
        done=np.zeros(n, np.float32),
    )


def test_capacity_must_be_multiple_of_write_batch():
    with pytest.raises(ConstructionError):
        ReplayBuffer(3, 1, capacity=10, write_batch_size=4)


def test_store_rejects_wrong_batch_size():
    rb = ReplayBuffer(3, 1, capacity=8, write_batch_size=2)
    with pytest.raises(InputShapeError):
        rb.store(_batch(1.0, n=3))
    assert len(rb) == 0, "A rejected store must not mutate the buffer"
    assert rb.ptr == 0


def test_store_rejects_wrong_feature_dims():
    rb = ReplayBuffer(3, 1, capacity=8, write_batch_size=2)
    with pytest.raises(InputShapeError):
        rb.store(_batch(1.0, obs_dim=4))
    with pytest.raises(InputShapeError):
        rb.store(_batch(1.0, action_dim=2))
    assert len(rb) == 0


def test_store_then_sample_is_exact():
    """Sampling right after the first store reproduces the stored rows bit-for-bit."""
    np.random.seed(0)
    rb = ReplayBuffer(3, 2, capacity=8, write_batch_size=2)
    obs = np.random.randn(2, 3).astype(np.float32)
    nxt = np.random.randn(2, 3).astype(np.float32)
    act = np.random.randn(2, 2).astype(np.float32)
    rew = np.random.randn(2).astype(np.float32)
    done = np.array([0.0, 1.0], np.float32)
    rb.store(TransitionBatch(obs, nxt, act, rew, done))

    sample = rb.sample_batch(64)
    assert len(sample) == 64
    for i in range(64):
        j = int(np.flatnonzero((obs == sample.observation[i]).all(axis=1))[0])
        np.testing.assert_array_equal(sample.observation[i], obs[j])
        np.testing.assert_array_equal(sample.next_observation[i], nxt[j])
        np.testing.assert_array_equal(sample.action[i], act[j])
        assert sample.reward[i] == rew[j]
        assert sample.done[i] == done[j]


def test_size_caps_and_earlier_entry_overwritten():
    """capacity=8, write batch 2, five stores: size 8 and one earlier batch is gone."""
    np.random.seed(1)
    rb = ReplayBuffer(3, 1, capacity=8, write_batch_size=2)
    for k in range(1, 6):
        rb.store(_batch(float(k)))

    assert len(rb) == 8
    stored = set(np.unique(rb.obs[:, 0]).tolist())
    assert 5.0 in stored, "Latest batch must be present"
    missing = {1.0, 2.0, 3.0, 4.0} - stored
    assert len(missing) == 1, f"Exactly one earlier batch should be overwritten, missing={missing}"


def test_full_buffer_overwrites_aligned_slots_only():
    np.random.seed(2)
    rb = ReplayBuffer(1, 1, capacity=12, write_batch_size=3)
    for k in range(1, 60):
        rb.store(_batch(float(k), n=3, obs_dim=1))
        assert rb.ptr % 3 == 0
        if len(rb) == rb.capacity:
            rows = rb.obs[:, 0].reshape(-1, 3)
            assert np.all(rows == rows[:, :1]), "Each aligned slot must hold one whole batch"


def test_eviction_is_not_fifo():
    """Once full, write slots are chosen at random, not oldest-first."""
    np.random.seed(3)
    rb = ReplayBuffer(1, 1, capacity=16, write_batch_size=1)
    for k in range(16):
        rb.store(_batch(float(k), n=1, obs_dim=1))

    slots = []
    for k in range(16, 216):
        rb.store(_batch(float(k), n=1, obs_dim=1))
        slots.append(int(np.flatnonzero(rb.obs[:, 0] == k)[0]))

    fifo = [k % 16 for k in range(200)]
    assert slots != fifo
    assert len(set(slots)) > 1


def test_sampled_indices_within_size():
    """Unwritten (zero) rows are never sampled."""
    np.random.seed(4)
    rb = ReplayBuffer(3, 1, capacity=16, write_batch_size=2)
    rb.store(_batch(1.0))
    rb.store(_batch(2.0))
    assert len(rb) == 4

    sample = rb.sample_batch(1000)
    assert set(np.unique(sample.observation[:, 0]).tolist()) <= {1.0, 2.0}


def test_size_invariant():
    np.random.seed(5)
    rb = ReplayBuffer(2, 1, capacity=8, write_batch_size=4)
    for k in range(10):
        rb.store(_batch(float(k), n=4, obs_dim=2))
        assert 0 <= len(rb) <= rb.capacity
        assert len(rb) == min(4 * (k + 1), 8)


def test_push_batch_accepts_tensors():
    rb = ReplayBuffer(3, 1, capacity=4, write_batch_size=2)
    rb.push_batch(
        torch.ones(2, 3),
        torch.zeros(2, 1),
        torch.tensor([1.0, 2.0]),
        torch.ones(2, 3) * 2,
        torch.tensor([0.0, 1.0]),
    )
    assert len(rb) == 2
    np.testing.assert_array_equal(rb.rew[:2], [1.0, 2.0])
    np.testing.assert_array_equal(rb.next[:2], np.full((2, 3), 2.0))


def test_sample_from_empty_buffer():
    rb = ReplayBuffer(3, 1, capacity=4, write_batch_size=2)
    with pytest.raises(ValueError):
        rb.sample_batch(1)


def test_transition_batch_validation():
    with pytest.raises(InputShapeError):
        TransitionBatch(np.zeros((2, 3)), np.zeros((2, 3)), np.zeros((3, 1)), np.zeros(2), np.zeros(2))
    with pytest.raises(ConstructionError):
        TransitionBatch(np.zeros((2, 3)), None, np.zeros((2, 1)), np.zeros(2), np.zeros(2))


def test_transition_batch_from_lists():
    batch = TransitionBatch(
        observation=[[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]],
        next_observation=[[0.2, 0.3, 0.4], [0.5, 0.6, 0.7]],
        action=[[0.5], [-0.5]],
        reward=[1.0, 0.0],
        done=[0, 1],
    )
    assert len(batch) == 2
    assert isinstance(batch.observation, np.ndarray)
    assert batch.done.dtype == np.float32

    rb = ReplayBuffer(3, 1, capacity=4, write_batch_size=2)
    rb.store(batch)
    assert len(rb) == 2
    np.testing.assert_allclose(rb.rew[:2], [1.0, 0.0])

    with pytest.raises(InputShapeError):
        TransitionBatch([[0.0, 0.0, 0.0]], [[0.0, 0.0, 0.0]], [[0.0]], [1.0, 2.0], [0.0])


def test_transition_batch_to_tensors():
    batch = _batch(1.5).to("cpu")
    assert isinstance(batch.observation, torch.Tensor)
    assert batch.observation.dtype == torch.float32
    assert torch.all(batch.reward == 3.0)
