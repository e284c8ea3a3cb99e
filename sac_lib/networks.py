"""Neural network architectures for Soft Actor-Critic."""

import math
from typing import Optional, Tuple

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F  # noqa: N812

from sac_lib.distributions import Normal
from sac_lib.errors import ConstructionError, InputShapeError
from sac_lib.types import LogProb

LOG_STD_MIN = -20.0
LOG_STD_MAX = 2.0
LOG_2 = math.log(2.0)


def layer_init(layer, std=np.sqrt(2), bias_const=0.0):
    """Orthogonal initialization."""
    torch.nn.init.orthogonal_(layer.weight, std)
    torch.nn.init.constant_(layer.bias, bias_const)
    return layer


# =========================
# MLP
# =========================
class MLP(nn.Module):
    """Simple MLP network."""

    def __init__(self, input_dim, hidden_dim, output_dim, hidden_layers=2,
                 activation=nn.ReLU, final_activation=False):
        super().__init__()
        layers = []
        in_dim = input_dim
        for _ in range(hidden_layers):
            layers.append(layer_init(nn.Linear(in_dim, hidden_dim)))
            layers.append(activation())
            in_dim = hidden_dim
        # Output layer
        layers.append(layer_init(nn.Linear(in_dim, output_dim), std=1.0))
        if final_activation:
            layers.append(activation())
        self.net = nn.Sequential(*layers)

    def forward(self, x):
        return self.net(x)


# =========================
# Actor Network (Policy)
# =========================
class Actor(nn.Module):
    """Squashed Gaussian policy.

    The backbone output feeds two heads producing the mean and log-std of a
    Gaussian over pre-squash actions `u`. Actions are `tanh(u)` rescaled from
    (-1, 1) to [action_min, action_max].
    """

    def __init__(self, backbone, mean_head, log_std_head, action_min=-1.0, action_max=1.0,
                 obs_dim=None, action_dim=None, device=None):
        super().__init__()
        if backbone is None:
            raise ConstructionError("backbone must not be None")
        if mean_head is None:
            raise ConstructionError("mean_head must not be None")
        if log_std_head is None:
            raise ConstructionError("log_std_head must not be None")

        action_min = float(action_min)
        action_max = float(action_max)
        if math.isinf(action_min) or math.isinf(action_max):
            raise ConstructionError("Unbounded actions are not supported")
        if not (math.isfinite(action_min) and math.isfinite(action_max)):
            raise ConstructionError(f"Invalid action bounds: [{action_min}, {action_max}]")
        if action_max <= action_min:
            raise ConstructionError("action_max must be greater than action_min")

        self.backbone = backbone
        self.mean = mean_head
        self.log_std = log_std_head
        self.action_min = action_min
        self.action_max = action_max
        self.obs_dim = obs_dim
        self.action_dim = action_dim

        self.device = torch.device(device) if device is not None else None
        if self.device is not None:
            self.to(self.device)

    def _mean_log_std(self, obs):
        if self.obs_dim is not None and obs.shape[-1] != self.obs_dim:
            raise InputShapeError(f"Expected observations with {self.obs_dim} features, got {obs.shape[-1]}")
        x = self.backbone(obs)
        mean = self.mean(x)
        log_std = torch.clamp(self.log_std(x), LOG_STD_MIN, LOG_STD_MAX)
        return mean, log_std

    def _squash(self, u):
        action = torch.tanh(u)
        # (-1, 1) -> [action_min, action_max]
        return (action + 1) * ((self.action_max - self.action_min) / 2) + self.action_min

    def forward(self, obs, deterministic=False) -> Tuple[torch.Tensor, Optional[LogProb]]:
        """Forward pass.

        Args:
            obs: Observations [B, obs_dim]
            deterministic: If True, use the mean instead of sampling

        Returns:
            actions [B, action_dim], log_probs [B] (or None if deterministic)
        """
        mean, log_std = self._mean_log_std(obs)

        if deterministic:
            return self._squash(mean), None

        dist = Normal(mean, torch.exp(log_std))
        u = dist.sample()

        # Change of variables for tanh: log(1 - tanh(u)^2) = 2 * (log 2 - u - softplus(-2u))
        log_prob = dist.log_prob(u).sum(dim=-1)
        log_prob = log_prob - (2 * (-u + LOG_2 - F.softplus(-2 * u))).sum(dim=-1)

        return self._squash(u), log_prob


# =========================
# Critic Network (Q-function)
# =========================
class QNetwork(nn.Module):
    """Q-function over the concatenated [observation, action] input."""

    def __init__(self, obs_dim, action_dim, hidden_dim=256, hidden_layers=2, activation=nn.ReLU):
        super().__init__()
        self.input_dim = obs_dim + action_dim
        self.net = MLP(self.input_dim, hidden_dim, 1, hidden_layers, activation=activation)

    def forward(self, x):
        """Forward pass.

        Args:
            x: Concatenated observations and actions [B, obs_dim + action_dim]

        Returns:
            q values [B, 1]
        """
        if x.shape[-1] != self.input_dim:
            raise InputShapeError(f"Expected {self.input_dim} input features, got {x.shape[-1]}")
        return self.net(x)


# =========================
# Actor-Critic
# =========================
class ActorCritic(nn.Module):
    """One actor and two independently initialized Q-functions."""

    def __init__(self, actor: Actor, q1: nn.Module, q2: nn.Module):
        super().__init__()
        if actor is None:
            raise ConstructionError("actor must not be None")
        if q1 is None or q2 is None:
            raise ConstructionError("q1 and q2 must not be None")
        if q1 is q2:
            raise ConstructionError("q1 and q2 must be distinct networks")

        if actor.device is not None:
            q1 = q1.to(actor.device)
            q2 = q2.to(actor.device)

        self.actor = actor
        self.q1 = q1
        self.q2 = q2

    @property
    def device(self):
        if self.actor.device is not None:
            return self.actor.device
        return next(self.actor.parameters()).device

    @property
    def obs_dim(self):
        return self.actor.obs_dim

    @property
    def action_dim(self):
        return self.actor.action_dim

    def q_values(self, obs, action):
        """Evaluate both critics.

        Returns:
            q1, q2 values [B]
        """
        x = torch.cat([obs, action], dim=-1)
        return self.q1(x).squeeze(-1), self.q2(x).squeeze(-1)

    def act(self, observation, deterministic=False):
        """Select actions for raw observations without tracking gradients.

        Args:
            observation: [B, obs_dim] or a single [obs_dim] observation
            deterministic: If True, return the squashed mean action

        Returns:
            Actions as numpy array ([B, action_dim] or [action_dim])
        """
        if observation is None:
            raise ValueError("observation must not be None")

        with torch.no_grad():
            obs = torch.as_tensor(observation, dtype=torch.float32).to(self.device)
            single = obs.dim() == 1
            if single:
                obs = obs.unsqueeze(0)
            action, _ = self.actor(obs, deterministic=deterministic)
            action = action.cpu().numpy()

        return action[0] if single else action


def make_actor_critic(obs_dim, action_dim, action_min=-1.0, action_max=1.0,
                      hidden_dim=16, hidden_layers=3, activation=nn.ReLU, device=None):
    """Build an ActorCritic with MLP backbone/critics of the given size."""
    backbone = MLP(obs_dim, hidden_dim, hidden_dim, hidden_layers - 1,
                   activation=activation, final_activation=True)
    actor = Actor(
        backbone,
        nn.Linear(hidden_dim, action_dim),
        nn.Linear(hidden_dim, action_dim),
        action_min=action_min,
        action_max=action_max,
        obs_dim=obs_dim,
        action_dim=action_dim,
        device=device,
    )
    q1 = QNetwork(obs_dim, action_dim, hidden_dim, hidden_layers, activation=activation)
    q2 = QNetwork(obs_dim, action_dim, hidden_dim, hidden_layers, activation=activation)
    return ActorCritic(actor, q1, q2)
