"""
Training script for Soft Actor-Critic.

Usage:
    python train.py --config configs/repeat_observation.yaml
    python train.py --config configs/pendulum.yaml --exp-name pendulum-test
    python train.py --env repeat-observation --total-steps 4096 --no-tensorboard
"""

import argparse
import sys

from sac_lib.config import load_config
from sac_lib.envs import make_env
from sac_lib.runner import OffPolicyRunner, evaluate


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train a Soft Actor-Critic agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default="configs/sac.yaml",
        help="Path to config file",
    )

    parser.add_argument(
        "--env", "-e",
        type=str,
        default=None,
        help="Override environment name",
    )

    parser.add_argument(
        "--exp-name", "-n",
        type=str,
        default=None,
        help="Experiment name prefix",
    )

    parser.add_argument(
        "--total-steps",
        type=int,
        default=None,
        help="Override total training steps",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override random seed",
    )

    parser.add_argument(
        "--device",
        choices=["cpu", "cuda"],
        default=None,
        help="Force device (default: auto)",
    )

    parser.add_argument(
        "--eval-steps",
        type=int,
        default=1000,
        help="Deterministic evaluation steps after training (0 disables)",
    )

    parser.add_argument(
        "--no-tensorboard",
        action="store_true",
        help="Disable TensorBoard logging",
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Load config
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Override config with command line arguments
    if args.env:
        config["env"]["name"] = args.env

    if args.total_steps:
        config["training"]["total_steps"] = args.total_steps

    if args.seed is not None:
        config["training"]["seed"] = args.seed

    if args.no_tensorboard:
        config["logging"]["tensorboard"] = False

    runner = OffPolicyRunner(config, experiment_name=args.exp_name, device=args.device)

    print(f"Config: {args.config}")
    print(f"Experiment: {args.exp_name or 'auto-generated'}")
    print()

    summary = runner.run()

    if args.eval_steps > 0:
        eval_env = make_env(
            runner.env_name,
            seed=runner.seed + 1,
            num_agents=runner.num_agents,
            max_episode_steps=(runner.max_episode_steps or None),
        )
        summary.update(evaluate(runner.actor_critic, eval_env, steps=args.eval_steps))
        if hasattr(eval_env, "close"):
            eval_env.close()

    print("\n=== Summary ===")
    for k, v in summary.items():
        print(f"{k}: {v}")


if __name__ == "__main__":
    main()
