"""
Log-likelihood of a logistic model

For observed values y and linear predictor mu, the log-likelihood is

    sum_i y_i * mu_i - log(1 + exp(mu_i))

Computing exp(mu_i) directly overflows for large mu_i, so both the value and the
gradient are rewritten so that exp() is only ever applied to -|mu_i| <= 0:

    y_i * mu_i - log(1 + exp(mu_i)) = (y_i - 1) * mu_i - log(1 + exp(-mu_i))   mu_i > 0
                                    = y_i * mu_i - log(1 + exp(mu_i))          mu_i < 0
"""

import logging
import operator

import numpy as np

from ..dvector import DVector
from ..types import Vector
from .base import SmoothFunction
from .value import Mode, Value

logger = logging.getLogger(__name__)


def log_likelihood(y: Vector, mu: Vector) -> Vector:
    """Element-wise logistic log-likelihood of observed y at linear predictor mu"""
    y_factor = np.where(mu > 0.0, y - 1.0, np.where(mu < 0.0, y, 0.0))
    return y_factor * mu - np.log1p(np.exp(-np.abs(mu)))


def log_likelihood_grad(y: Vector, mu: Vector) -> Vector:
    """Element-wise derivative of log_likelihood() with respect to mu"""
    # np.where evaluates both branches, clip so the unused one cannot overflow
    mu_factor = np.where(mu > 0.0, 1.0, np.exp(np.minimum(mu, 0.0)))
    return y - mu_factor / (1.0 + np.exp(-np.abs(mu)))


def _add_log_likelihood(total: float, parts: tuple[Vector, Vector]) -> float:
    y, mu = parts
    return total + np.sum(log_likelihood(y, mu))


class SmoothLogLLogistic(SmoothFunction):
    def __init__(self, y: DVector):
        """
        Logistic log-likelihood, evaluated at a linear predictor mu

        Parameters:
            y: observed values, cached on construction
        """
        self.y = y.cache()

    def evaluate(self, x: DVector, mode: Mode) -> Value:
        """x is the linear predictor mu, paired element-wise with y"""
        if mode.is_empty:
            logger.warning("SmoothLogLLogistic evaluated with an empty mode")
            return Value()

        mu = x
        f = None
        if mode.f:
            f = float(
                self.y.zip(mu).tree_aggregate(0.0, _add_log_likelihood, operator.add)
            )

        g = None
        if mode.g:
            g = self.y.zip_elements(mu, log_likelihood_grad)

        return Value(f, g)
