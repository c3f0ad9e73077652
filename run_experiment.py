import argparse

from sgd_ols.experiment import Experiment
from sgd_ols.experiment_utils import (
    load_config,
    set_random_seed,
    validate_experiment_args,
)


def main():
    # Parse arguments
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with experiment arguments; command line values take precedence",
    )
    parser.add_argument(
        "--problem",
        choices=["least_squares", "quadratic"],
        default=None,
        help="Type of synthetic problem",
    )
    parser.add_argument("--n", type=int, default=None, help="Number of samples")
    parser.add_argument("--p", type=int, default=None, help="Number of parameters")
    parser.add_argument(
        "--lambd", type=float, default=None, help="Regularization parameter"
    )
    parser.add_argument(
        "--cond", type=float, default=None, help="Condition number of the quadratic"
    )
    parser.add_argument(
        "--noise", type=float, default=None, help="Standard deviation of the noise"
    )
    parser.add_argument(
        "--bg", type=int, default=None, help="Gradient batch size for least squares"
    )
    parser.add_argument(
        "--learning_rate", type=float, default=None, help="Initial learning rate"
    )
    parser.add_argument(
        "--gamma", type=float, default=None, help="Power law of the learning rate decay"
    )
    parser.add_argument(
        "--sgd_steps",
        type=int,
        default=None,
        help="Number of plain SGD steps before preconditioning starts",
    )
    parser.add_argument(
        "--eps", type=float, default=None, help="Sherman-Morrison denominator threshold"
    )
    parser.add_argument(
        "--max_iter", type=int, default=None, help="Number of iterations"
    )
    parser.add_argument(
        "--max_time",
        type=float,
        default=None,
        help="Maximum time (in seconds) to run the optimizer",
    )
    parser.add_argument(
        "--log_freq", type=int, default=None, help="Logging frequency of metrics"
    )
    parser.add_argument(
        "--precision",
        choices=["float32", "float64"],
        default=None,
        help="Precision of the computations",
    )
    parser.add_argument("--seed", type=int, default=None, help="initial seed")
    parser.add_argument("--device", type=str, default=None, help="Device to use")
    parser.add_argument(
        "--wandb_project", type=str, default=None, help="W&B project name"
    )
    parser.add_argument(
        "--wandb_mode",
        choices=["online", "offline", "disabled"],
        default=None,
        help="W&B mode",
    )

    # Extract arguments from parser
    args = parser.parse_args()

    experiment_args = {
        "log_freq": 100,
        "precision": "float64",
        "seed": 1234,
        "device": "cpu",
        "wandb_project": "sgd_ols",
        "wandb_mode": "online",
    }
    if args.config is not None:
        experiment_args.update(load_config(args.config))
    experiment_args.update(
        {k: v for k, v in vars(args).items() if k != "config" and v is not None}
    )

    # Check the inputs
    validate_experiment_args(experiment_args)

    # Set random seed
    set_random_seed(experiment_args["seed"])

    exp = Experiment(experiment_args)
    exp.run()


if __name__ == "__main__":
    main()
