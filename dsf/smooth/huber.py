import logging
import operator

import numpy as np

from ..dvector import DVector
from ..types import Vector
from .base import SmoothFunction
from .value import Mode, Value

logger = logging.getLogger(__name__)


def huber(y: Vector, tau: float) -> Vector:
    """
    Element-wise huber penalty, scaled by 1/tau so that its derivative is bounded by 1:

        0.5 * y^2 / tau     if |y| <= tau
        |y| - tau / 2       otherwise

    Both branches, and their derivatives, agree at |y| = tau.
    """
    abs_y = np.abs(y)
    # np.where evaluates both branches, clip so the unused one cannot overflow
    inside = np.minimum(abs_y, tau)
    return np.where(abs_y <= tau, 0.5 * inside * inside / tau, abs_y - tau / 2.0)


def huber_grad(y: Vector, tau: float) -> Vector:
    """Element-wise derivative of huber(), y / max(|y|, tau)"""
    return y / np.maximum(np.abs(y), tau)


class SmoothHuber(SmoothFunction):
    def __init__(self, x0: DVector, tau: float):
        """
        Huber loss of x - x0

        Parameters:
            x0: vector against which the loss is computed, cached on construction
            tau: threshold at which the penalty switches from quadratic to linear
        """
        if not tau > 0:
            raise ValueError(f"Huber threshold tau must be positive, got {tau}")
        self.x0 = x0.cache()
        self.tau = float(tau)

    def evaluate(self, x: DVector, mode: Mode) -> Value:
        if mode.is_empty:
            logger.warning("SmoothHuber evaluated with an empty mode")
            return Value()

        tau = self.tau
        diff = x.diff(self.x0)
        if mode.f and mode.g:
            diff.cache()

        f = None
        if mode.f:
            f = float(
                diff.aggregate_elements(
                    0.0,
                    seq_op=lambda total, y: total + np.sum(huber(y, tau)),
                    comb_op=operator.add,
                )
            )

        g = None
        if mode.g:
            g = diff.map_elements(lambda y: huber_grad(y, tau))

        return Value(f, g)
