"""Off-policy training loop: collect transitions, store them, train SAC."""

import os
import time
from pathlib import Path
from typing import Any, Dict

import numpy as np
import psutil
import torch
from torch.utils.tensorboard.writer import SummaryWriter
from tqdm import tqdm

from sac_lib.algorithms import SoftActorCriticTrainer, TrainResult
from sac_lib.buffers import ReplayBuffer
from sac_lib.config import DEFAULT_CONFIG, merge_configs, save_config
from sac_lib.envs import Environment, make_env
from sac_lib.networks import make_actor_critic
from sac_lib.utils import get_device, set_seed


class OffPolicyRunner:
    """Drives an environment, a replay buffer and a SoftActorCriticTrainer.

    Handles:
    - Environment and network setup from config
    - Random warmup actions, then policy actions
    - Periodic training rounds on sampled batches
    - Console/TensorBoard logging
    """

    def __init__(self, config: Dict[str, Any], experiment_name: str = None, device=None):
        """Initialize runner.

        Args:
            config: Configuration dictionary (missing keys fall back to DEFAULT_CONFIG)
            experiment_name: Optional experiment name prefix
            device: Optional device override
        """
        self.config = merge_configs(DEFAULT_CONFIG, config)
        self.experiment_name = experiment_name

        # Load config sections
        self.env_cfg = self.config["env"]
        self.net_cfg = self.config["network"]
        self.training_cfg = self.config["training"]
        self.sac_cfg = self.config["sac"]
        self.logging_cfg = self.config["logging"]

        # Extract hyperparameters
        self.env_name = str(self.env_cfg["name"])
        self.num_agents = int(self.env_cfg["num_agents"])
        self.max_episode_steps = int(self.env_cfg.get("max_episode_steps") or 0)

        self.hidden_dim = int(self.net_cfg["hidden_dim"])
        self.hidden_layers = int(self.net_cfg["hidden_layers"])

        self.total_steps = int(self.training_cfg["total_steps"])
        self.random_steps = int(self.training_cfg["random_steps"])
        self.update_after = int(self.training_cfg["update_after"])
        self.update_every = int(self.training_cfg["update_every"])
        self.train_batches = int(self.training_cfg["train_batches"])
        self.batch_size = int(self.training_cfg["batch_size"])
        self.buffer_size = int(self.training_cfg["buffer_size"])
        self.deterministic_every = int(self.training_cfg["deterministic_every"])
        self.q_lr = float(self.training_cfg["q_lr"])
        self.pi_lr = float(self.training_cfg["pi_lr"])
        self.seed = int(self.training_cfg["seed"])

        self.use_tensorboard = bool(self.logging_cfg.get("tensorboard", True))

        self.device = device or get_device()
        set_seed(self.seed)

        self.env = make_env(
            self.env_name,
            seed=self.seed,
            num_agents=self.num_agents,
            max_episode_steps=(self.max_episode_steps if self.max_episode_steps > 0 else None),
        )
        self.trainer = SoftActorCriticTrainer(
            self._make_actor_critic,
            q_optimizer_factory=lambda params: torch.optim.Adam(params, lr=self.q_lr),
            pi_optimizer_factory=lambda params: torch.optim.Adam(params, lr=self.pi_lr),
            gamma=float(self.sac_cfg["gamma"]),
            tau=float(self.sac_cfg["tau"]),
            alpha=float(self.sac_cfg["alpha"]),
        )
        self.buffer = ReplayBuffer(
            self.env.obs_dim, self.env.action_dim, self.buffer_size, self.env.num_agents
        )

        self.log_dir = None

    def _make_actor_critic(self):
        return make_actor_critic(
            self.env.obs_dim,
            self.env.action_dim,
            action_min=self.env.action_min,
            action_max=self.env.action_max,
            hidden_dim=self.hidden_dim,
            hidden_layers=self.hidden_layers,
            device=self.device,
        )

    @property
    def actor_critic(self):
        return self.trainer.actor_critic

    def _setup_directories(self):
        """Setup the logging directory for this run."""
        run_stamp = time.strftime("%Y%m%d-%H%M%S")
        run_name = f"sac-{self.env_name.replace('/', '_')}-{run_stamp}"

        if self.experiment_name:
            prefix = str(self.experiment_name).strip().replace("/", "_").replace("\\", "_")
            if prefix:
                run_name = f"{prefix}-{run_name}"

        self.log_dir = Path(self.logging_cfg.get("log_dir", "logs")) / run_name
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def select_actions(self, obs, step: int) -> np.ndarray:
        """Random actions during warmup, policy actions afterwards."""
        if step <= self.random_steps:
            return self.env.sample_action()
        deterministic = self.deterministic_every > 0 and step % self.deterministic_every == 0
        return self.actor_critic.act(obs, deterministic=deterministic)

    def train_round(self) -> TrainResult:
        """Run `train_batches` trainer steps and return the averaged losses."""
        results = []
        for _ in range(self.train_batches):
            batch = self.buffer.sample_batch(self.batch_size)
            results.append(self.trainer.train(batch))

        return TrainResult(
            loss_q=float(np.mean([r.loss_q for r in results])),
            loss_pi=float(np.mean([r.loss_pi for r in results])),
        )

    def run(self) -> Dict[str, float]:
        """Run training loop.

        Returns:
            Summary of the last training round
        """
        writer = None
        if self.use_tensorboard:
            self._setup_directories()
            writer = SummaryWriter(self.log_dir)
            save_config(self.config, self.log_dir / "config.yaml")

        process = psutil.Process(os.getpid())

        print(f"Starting SAC training on {self.env_name}")
        print(f"Observation dim: {self.env.obs_dim}, Action dim: {self.env.action_dim}, "
              f"Agents: {self.env.num_agents}, Device: {self.device}")

        obs = self.env.reset()
        reward_accum = 0.0
        rounds = 0
        last = TrainResult(loss_q=float("nan"), loss_pi=float("nan"))
        avg_reward = float("nan")
        last_log_step = 0
        last_log_time = time.time()

        try:
            for step in range(self.total_steps):
                actions = self.select_actions(obs, step)
                nxt, rew, done = self.env.step(actions)
                reward_accum += float(np.mean(rew))

                self.buffer.push_batch(obs, actions, rew, nxt, done)

                obs = self.env.reset() if np.any(done) else nxt

                if step >= self.update_after and step % self.update_every == self.update_every - 1:
                    last = self.train_round()
                    rounds += 1
                    avg_reward = reward_accum / self.update_every
                    reward_accum = 0.0

                    elapsed = time.time() - last_log_time
                    sps = (step - last_log_step) / max(elapsed, 1e-6)
                    mem_gb = process.memory_info().rss / 1024**3

                    print(f"Step {step + 1:,} | {last} | avg. reward {avg_reward:.4f} | "
                          f"SPS {sps:.1f} | Buffer {len(self.buffer)}")

                    if writer is not None:
                        for key, value in last.as_dict().items():
                            writer.add_scalar(f"train/{key}", value, step)
                        writer.add_scalar("train/avg_reward", avg_reward, step)
                        writer.add_scalar("perf/steps_per_sec", sps, step)
                        writer.add_scalar("perf/memory_gb", mem_gb, step)
                        writer.flush()

                    last_log_step = step
                    last_log_time = time.time()
                    obs = self.env.reset()
        finally:
            if writer is not None:
                writer.close()

        print("Training complete.")
        return {
            "steps": self.total_steps,
            "rounds": rounds,
            "loss_q": last.loss_q,
            "loss_pi": last.loss_pi,
            "avg_reward": avg_reward,
        }


def evaluate(actor_critic, env: Environment, steps: int = 1000) -> Dict[str, float]:
    """Roll out the deterministic policy and report reward statistics.

    Args:
        actor_critic: Trained ActorCritic
        env: Environment with the reset/step interface
        steps: Number of environment steps

    Returns:
        Dictionary with evaluation metrics
    """
    obs = env.reset()
    step_rewards = []
    episodes = 0

    for _ in tqdm(range(steps), desc="Evaluating", leave=False):
        actions = actor_critic.act(obs, deterministic=True)
        obs, rew, done = env.step(actions)
        step_rewards.append(float(np.mean(rew)))
        if np.any(done):
            episodes += 1
            obs = env.reset()

    rewards = np.asarray(step_rewards, dtype=np.float32)
    return {
        "mean_reward": float(rewards.mean()),
        "std_reward": float(rewards.std()),
        "min_reward": float(rewards.min()),
        "max_reward": float(rewards.max()),
        "episodes": episodes,
    }
