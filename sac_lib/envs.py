"""Environment adapters and factories.

Every environment exposes the same minimal interface, vectorized over
`num_agents` rows:

    reset() -> observation [N, obs_dim]
    step(action [N, action_dim]) -> (observation [N, obs_dim], reward [N], done [N])
    sample_action() -> action [N, action_dim]
"""

from typing import Protocol, Tuple

import gymnasium as gym
import numpy as np


class Environment(Protocol):
    num_agents: int
    obs_dim: int
    action_dim: int
    action_min: float
    action_max: float

    def reset(self) -> np.ndarray: ...

    def step(self, action: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]: ...

    def sample_action(self) -> np.ndarray: ...


# =========================
# Synthetic environments
# =========================
class RepeatObservationEnv:
    """Each agent is shown a number in [0, 1) and rewarded for repeating it.

    reward = 1 - |clip(action, 0, 1) - observation|. Episodes never end.
    """

    obs_dim = 1
    action_dim = 1
    action_min = -1.0
    action_max = 1.0

    def __init__(self, num_agents, seed=None):
        self.num_agents = int(num_agents)
        self.rng = np.random.default_rng(seed)
        self.obs = self._draw()

    def _draw(self):
        return self.rng.random((self.num_agents, self.obs_dim), dtype=np.float32)

    def reset(self):
        self.obs = self._draw()
        return self.obs.copy()

    def step(self, action):
        action = np.asarray(action, dtype=np.float32).reshape(self.num_agents, self.action_dim)
        reward = 1.0 - np.abs(np.clip(action, 0.0, 1.0) - self.obs).mean(axis=-1)
        done = np.zeros(self.num_agents, np.float32)
        self.obs = self._draw()
        return self.obs.copy(), reward.astype(np.float32), done

    def sample_action(self):
        return self.rng.random((self.num_agents, self.action_dim), dtype=np.float32)


# =========================
# Gymnasium environments
# =========================
class GymEnvironment:
    """Single-agent adapter over a gymnasium env with a Box action space.

    Termination and truncation are both reported as done; the caller is
    expected to `reset()` after a done step.
    """

    num_agents = 1

    def __init__(self, env_name, seed=None, max_episode_steps=None):
        env = gym.make(env_name)
        if max_episode_steps is not None and int(max_episode_steps) > 0:
            env = gym.wrappers.TimeLimit(env, max_episode_steps=int(max_episode_steps))
        if not isinstance(env.action_space, gym.spaces.Box):
            raise ValueError(f"{env_name}: expected Box action space, got {env.action_space}")

        self.env = env
        self.seed = seed
        self.obs_dim = int(np.prod(env.observation_space.shape))
        self.action_dim = int(np.prod(env.action_space.shape))
        self.action_min = float(np.min(env.action_space.low))
        self.action_max = float(np.max(env.action_space.high))
        self._episodes = 0

    def _obs(self, obs):
        return np.asarray(obs, dtype=np.float32).reshape(1, self.obs_dim)

    def reset(self):
        seed = None if self.seed is None else self.seed + self._episodes
        obs, _ = self.env.reset(seed=seed)
        self._episodes += 1
        return self._obs(obs)

    def step(self, action):
        action = np.asarray(action, dtype=np.float32).reshape(self.env.action_space.shape)
        obs, r, term, trunc, _ = self.env.step(action)
        done = np.array([float(term or trunc)], np.float32)
        return self._obs(obs), np.array([r], np.float32), done

    def sample_action(self):
        return self.env.action_space.sample().astype(np.float32).reshape(1, self.action_dim)

    def close(self):
        self.env.close()


# =========================
# Generic Factory
# =========================
def make_env(env_name, seed=None, num_agents=1, max_episode_steps=None) -> Environment:
    """Create an environment by name.

    Args:
        env_name: "repeat-observation" or a gymnasium id (e.g. "Pendulum-v1")
        seed: Random seed
        num_agents: Parallel agents (only synthetic envs support more than one)
        max_episode_steps: Optional TimeLimit for gymnasium envs

    Returns:
        Environment instance
    """
    if env_name.lower() in ("repeat-observation", "repeat_observation"):
        return RepeatObservationEnv(num_agents, seed=seed)
    if int(num_agents) != 1:
        raise ValueError(f"{env_name} supports a single agent, got num_agents={num_agents}")
    return GymEnvironment(env_name, seed=seed, max_episode_steps=max_episode_steps)
