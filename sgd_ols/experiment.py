import torch
import wandb

from .experiment_utils import get_dtype, get_model, get_opt
from .logger import Logger


class Experiment:
    def __init__(self, exp_args):
        self.exp_args = exp_args.copy()

    def _time_exceeded(self, n_iters, time_elapsed):
        if "max_time" in self.exp_args:
            if time_elapsed >= self.exp_args["max_time"]:
                return True
        if "max_iter" in self.exp_args:
            if n_iters >= self.exp_args["max_iter"]:
                return True
        return False

    def _get_eval_loc(self, opt):
        return opt.x

    def run(self):
        dtype = get_dtype(self.exp_args.get("precision", "float64"))
        device = torch.device(self.exp_args.get("device", "cpu"))

        model = get_model(self.exp_args, dtype, device)

        with wandb.init(
            project=self.exp_args.get("wandb_project", "sgd_ols"),
            config=self.exp_args,
            mode=self.exp_args.get("wandb_mode", "online"),
        ):
            logger = Logger(self.exp_args.get("log_freq", 100))

            logger.reset_timer()
            opt = get_opt(model, self.exp_args, dtype, device)
            eval_loc = self._get_eval_loc(opt)

            logger.update_cum_time()

            # Always log metrics at the start
            metrics = logger.compute_log_reset(-1, model.compute_metrics, eval_loc)

            # Terminate if max allowed time is exceeded
            if self._time_exceeded(0, logger.cum_time):
                return metrics

            i = 0  # Iteration counter

            # Run the optimizer
            while True:
                fx = opt.step()
                eval_loc = self._get_eval_loc(opt)

                logger.update_cum_time()
                extra = {"fx": float(fx), "n_unstable": opt.state.n_unstable}

                # Terminate when max allowed time is exceeded
                if self._time_exceeded(i + 1, logger.cum_time):
                    # Log the last iteration; we use -1 as a hack
                    return logger.compute_log_reset(
                        -1, model.compute_metrics, eval_loc, **extra
                    )

                logger.compute_log_reset(i, model.compute_metrics, eval_loc, **extra)

                i += 1
