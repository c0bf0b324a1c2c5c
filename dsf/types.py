from typing import Callable

import numpy as np
import numpy.typing as npt

Vector = npt.NDArray[np.float64]
ElementFn = Callable[[Vector], Vector]
PairElementFn = Callable[[Vector, Vector], Vector]
PartitionFn = Callable[[int], Vector]
