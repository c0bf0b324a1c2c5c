"""
Base for smooth functions

REF: Becker, S. R., Candès, E. J., & Grant, M. C. (2011). Templates for convex cone
    problems with applications to sparse signal recovery.
"""

from abc import ABC, abstractmethod

from ..dvector import DVector
from .value import VALUE, Mode, Value


class SmoothFunction(ABC):
    """
    A function whose value and gradient are both defined and continuous, evaluated
    over DVectors.

    Implementations must not mutate the evaluation point or their stored reference
    vectors, and must only compute the outputs requested by the mode.
    """

    @abstractmethod
    def evaluate(self, x: DVector, mode: Mode) -> Value:
        """Evaluates this function at x, computing the outputs selected by mode"""
        raise NotImplementedError

    def __call__(self, x: DVector) -> float:
        """Evaluates the function value at x"""
        return self.evaluate(x, VALUE).value()
