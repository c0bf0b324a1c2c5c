import logging
import operator

import numpy as np

from ..dvector import DVector
from ..types import Vector
from .base import SmoothFunction
from .value import Mode, Value

logger = logging.getLogger(__name__)


def _add_squared_norm(total: float, part: Vector) -> float:
    return total + np.linalg.norm(part, 2) ** 2


class SmoothQuad(SmoothFunction):
    def __init__(self, x0: DVector):
        """
        Squared error f(x) = 0.5 * ||x - x0||^2, with gradient x - x0

        Parameters:
            x0: vector against which the error is computed, cached on construction
        """
        self.x0 = x0.cache()

    def evaluate(self, x: DVector, mode: Mode) -> Value:
        if mode.is_empty:
            logger.warning("SmoothQuad evaluated with an empty mode")
            return Value()

        g = x.diff(self.x0)
        if mode.f and mode.g:
            # Residual feeds both the reduction and the returned gradient
            g.cache()

        f = None
        if mode.f:
            f = float(g.tree_aggregate(0.0, _add_squared_norm, operator.add) / 2.0)
        return Value(f, g if mode.g else None)
