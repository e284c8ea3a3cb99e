"""Soft Actor-Critic training algorithm."""

from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable

import torch
import torch.nn.functional as F  # noqa: N812

from sac_lib.errors import ConstructionError, InputShapeError, NumericalError
from sac_lib.networks import ActorCritic
from sac_lib.types import TransitionBatch
from sac_lib.utils import frozen, polyak_update

OptimizerFactory = Callable[[Iterable[torch.nn.Parameter]], torch.optim.Optimizer]


@dataclass(frozen=True)
class TrainResult:
    """Losses of one training step, detached and on the host."""

    loss_q: float
    loss_pi: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def __str__(self):
        return f"LossQ: {self.loss_q:.5f}  LossPi: {self.loss_pi:.5f}"


class SoftActorCriticTrainer:
    """SAC trainer owning a live and a Polyak-averaged target ActorCritic.

    Each `train()` call runs one full update:
        1. critic update on the clipped double-Q Bellman residual
        2. policy update with both critics frozen
        3. target update: target <- target * tau + live * (1 - tau)

    Note that `tau` is the fraction of the *target* kept per update, so values
    close to 1 track the live network slowly.
    """

    def __init__(
        self,
        actor_critic_factory: Callable[[], ActorCritic],
        q_optimizer_factory: OptimizerFactory,
        pi_optimizer_factory: OptimizerFactory,
        gamma: float = 0.99,
        tau: float = 0.995,
        alpha: float = 0.2,
    ):
        if actor_critic_factory is None:
            raise ConstructionError("actor_critic_factory must not be None")
        if q_optimizer_factory is None or pi_optimizer_factory is None:
            raise ConstructionError("Optimizer factories must not be None")
        if not (0.0 < gamma <= 1.0):
            raise ConstructionError(f"gamma must be in (0, 1], got {gamma}")
        if not (0.0 < tau <= 1.0):
            raise ConstructionError(f"tau must be in (0, 1], got {tau}")
        if not (alpha >= 0.0):
            raise ConstructionError(f"alpha must be >= 0, got {alpha}")

        self.gamma = float(gamma)
        self.tau = float(tau)
        self.alpha = float(alpha)

        self.actor_critic = actor_critic_factory()
        self.target_actor_critic = actor_critic_factory()
        if self.actor_critic is None or self.target_actor_critic is None:
            raise ConstructionError("actor_critic_factory must return an ActorCritic")
        if self.actor_critic is self.target_actor_critic:
            raise ConstructionError("actor_critic_factory must return a new instance on every call")

        # Target is only ever updated by Polyak averaging
        try:
            self.target_actor_critic.load_state_dict(self.actor_critic.state_dict())
        except RuntimeError as e:
            raise ConstructionError("actor_critic_factory must build identical architectures") from e
        for p in self.target_actor_critic.parameters():
            p.requires_grad_(False)

        self.device = self.actor_critic.device

        self.q_parameters = list(self.actor_critic.q1.parameters()) + list(self.actor_critic.q2.parameters())

        self.q_opt = q_optimizer_factory(self.q_parameters)
        if self.q_opt is None:
            raise ConstructionError("q_optimizer_factory must return an optimizer")
        self.pi_opt = pi_optimizer_factory(list(self.actor_critic.actor.parameters()))
        if self.pi_opt is None:
            raise ConstructionError("pi_optimizer_factory must return an optimizer")

    def _prepare(self, batch: TransitionBatch) -> TransitionBatch:
        """Validate batch dimensions against the networks and move it to the device."""
        if batch is None:
            raise ValueError("batch must not be None")

        obs_dim = self.actor_critic.obs_dim
        action_dim = self.actor_critic.action_dim
        for name in ("observation", "next_observation"):
            shape = tuple(getattr(batch, name).shape)
            if len(shape) != 2 or (obs_dim is not None and shape[1] != obs_dim):
                raise InputShapeError(f"{name} must have shape [B, {obs_dim}], got {shape}")
        act_shape = tuple(batch.action.shape)
        if len(act_shape) != 2 or (action_dim is not None and act_shape[1] != action_dim):
            raise InputShapeError(f"action must have shape [B, {action_dim}], got {act_shape}")
        for name in ("reward", "done"):
            if getattr(batch, name).ndim != 1:
                raise InputShapeError(f"{name} must be one-dimensional [B]")

        return batch.to(self.device)

    def q_loss(self, batch: TransitionBatch) -> torch.Tensor:
        """Sum of MSE losses of both critics against the entropy-regularized backup."""
        q1, q2 = self.actor_critic.q_values(batch.observation, batch.action)

        with torch.no_grad():
            # Target actions come from the *current* policy
            next_actions, next_log_probs = self.actor_critic.actor(batch.next_observation)
            next_q1, next_q2 = self.target_actor_critic.q_values(batch.next_observation, next_actions)
            next_q = torch.min(next_q1, next_q2)
            backup = batch.reward + self.gamma * (1 - batch.done) * (next_q - self.alpha * next_log_probs)

        return F.mse_loss(q1, backup) + F.mse_loss(q2, backup)

    def pi_loss(self, obs: torch.Tensor) -> torch.Tensor:
        """Entropy-regularized policy loss: mean(alpha * log_prob - min(Q1, Q2))."""
        actions, log_probs = self.actor_critic.actor(obs)
        q1, q2 = self.actor_critic.q_values(obs, actions)
        q = torch.min(q1, q2)
        return (self.alpha * log_probs - q).mean()

    @staticmethod
    def _check_finite(name: str, loss: torch.Tensor):
        if not torch.isfinite(loss).all():
            raise NumericalError(f"{name} is not finite: {loss.item()}")

    def train(self, batch: TransitionBatch) -> TrainResult:
        """Perform one SAC training step."""
        batch = self._prepare(batch)

        # Critic update
        self.q_opt.zero_grad()
        loss_q = self.q_loss(batch)
        self._check_finite("loss_q", loss_q)
        loss_q.backward()
        self.q_opt.step()

        # Actor update, critics must not receive policy gradients
        with frozen(self.q_parameters):
            self.pi_opt.zero_grad()
            loss_pi = self.pi_loss(batch.observation)
            self._check_finite("loss_pi", loss_pi)
            loss_pi.backward()
            self.pi_opt.step()

        polyak_update(self.target_actor_critic, self.actor_critic, self.tau)

        return TrainResult(
            loss_q=float(loss_q.detach().cpu().mean()),
            loss_pi=float(loss_pi.detach().cpu().mean()),
        )
