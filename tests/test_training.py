"""
Integration tests for the training loop.
"""

import numpy as np
import pytest

from sac_lib.runner import OffPolicyRunner, evaluate


def _config(tmp_path=None, **training):
    config = {
        "env": {"name": "repeat-observation", "num_agents": 4},
        "network": {"hidden_dim": 8, "hidden_layers": 2},
        "training": {
            "total_steps": 64,
            "random_steps": 8,
            "update_after": 8,
            "update_every": 32,
            "train_batches": 2,
            "batch_size": 16,
            "buffer_size": 256,
            "seed": 0,
        },
        "logging": {"tensorboard": False},
    }
    if tmp_path is not None:
        config["logging"] = {"tensorboard": True, "log_dir": str(tmp_path)}
    config["training"].update(training)
    return config


def test_mini_training_run():
    runner = OffPolicyRunner(_config(), device="cpu")
    summary = runner.run()

    assert summary["rounds"] == 2
    assert np.isfinite(summary["loss_q"])
    assert np.isfinite(summary["loss_pi"])
    assert len(runner.buffer) == 64 * 4


def test_tensorboard_logging(tmp_path):
    runner = OffPolicyRunner(_config(tmp_path), experiment_name="mini", device="cpu")
    runner.run()

    assert runner.log_dir is not None
    assert runner.log_dir.name.startswith("mini-sac-repeat-observation")
    assert (runner.log_dir / "config.yaml").exists()
    assert list(runner.log_dir.glob("events.out.tfevents.*"))


def test_evaluate_reports_metrics():
    runner = OffPolicyRunner(_config(), device="cpu")
    metrics = evaluate(runner.actor_critic, runner.env, steps=10)
    assert 0.0 <= metrics["mean_reward"] <= 1.0
    assert metrics["episodes"] == 0


@pytest.mark.slow
def test_trains_on_repeat_observation():
    """The deterministic policy learns to repeat its observation."""
    config = {
        "env": {"name": "repeat-observation", "num_agents": 8},
        "logging": {"tensorboard": False},
    }
    runner = OffPolicyRunner(config, device="cpu")
    runner.run()

    obs = runner.env.reset()
    action = runner.actor_critic.act(obs, deterministic=True)
    avg_diff = float(np.mean(np.abs(obs - action)))
    assert avg_diff < 0.1, f"Mean |observation - action| too large: {avg_diff:.3f}"
