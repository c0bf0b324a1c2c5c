from dataclasses import dataclass

from ..dvector import DVector


class MissingValueError(RuntimeError):
    """Raised when reading an output that the evaluation mode did not request"""


@dataclass(frozen=True)
class Mode:
    """
    Outputs requested from a smooth function evaluation

    Parameters:
        f: compute the function value
        g: compute the gradient
    """

    f: bool
    g: bool

    @property
    def is_empty(self) -> bool:
        return not (self.f or self.g)


VALUE = Mode(f=True, g=False)
GRADIENT = Mode(f=False, g=True)
BOTH = Mode(f=True, g=True)
NONE = Mode(f=False, g=False)


@dataclass(frozen=True)
class Value:
    """
    Result of a smooth function evaluation. f is set iff the mode requested the
    value, g is set iff the mode requested the gradient.
    """

    f: float | None = None
    g: DVector | None = None

    def value(self) -> float:
        if self.f is None:
            raise MissingValueError(
                "Function value was not computed, evaluate with mode.f=True"
            )
        return self.f

    def gradient(self) -> DVector:
        if self.g is None:
            raise MissingValueError(
                "Gradient was not computed, evaluate with mode.g=True"
            )
        return self.g
