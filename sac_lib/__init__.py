"""Soft Actor-Critic library for continuous-action reinforcement learning."""

# Algorithms
from sac_lib.algorithms import SoftActorCriticTrainer, TrainResult

# Buffers
from sac_lib.buffers import ReplayBuffer

# Config
from sac_lib.config import DEFAULT_CONFIG, load_config, merge_configs, save_config

# Distributions
from sac_lib.distributions import Normal

# Environments
from sac_lib.envs import GymEnvironment, RepeatObservationEnv, make_env

# Errors
from sac_lib.errors import ConstructionError, InputShapeError, NumericalError

# Networks
from sac_lib.networks import MLP, Actor, ActorCritic, QNetwork, make_actor_critic

# Runner
from sac_lib.runner import OffPolicyRunner, evaluate

# Types
from sac_lib.types import Action, Done, Observation, Reward, TransitionBatch

# Utils
from sac_lib.utils import frozen, get_device, polyak_update, set_seed

__all__ = [
    # Networks
    "MLP",
    "Actor",
    "QNetwork",
    "ActorCritic",
    "make_actor_critic",
    # Distributions
    "Normal",
    # Buffers
    "ReplayBuffer",
    # Environments
    "RepeatObservationEnv",
    "GymEnvironment",
    "make_env",
    # Utils
    "get_device",
    "set_seed",
    "frozen",
    "polyak_update",
    # Config
    "DEFAULT_CONFIG",
    "load_config",
    "save_config",
    "merge_configs",
    # Types
    "Action",
    "Observation",
    "Reward",
    "Done",
    "TransitionBatch",
    # Errors
    "ConstructionError",
    "InputShapeError",
    "NumericalError",
    # Algorithms
    "SoftActorCriticTrainer",
    "TrainResult",
    # Runner
    "OffPolicyRunner",
    "evaluate",
]
