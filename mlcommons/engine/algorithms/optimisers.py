"""Gradient optimisers for linear models.

Each optimiser turns a gradient into a parameter update and keeps its own
accumulators, so one instance belongs to one training run.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

import numpy as np

from mlcommons.common.exceptions import InvalidParameterError


class Optimiser(ABC):
    """Stateful gradient step rule."""

    def __init__(self, learning_rate: float, epsilon: float = 1e-6):
        self.learning_rate = learning_rate
        self.epsilon = epsilon
        self.iteration = 0

    def step(self, gradient: np.ndarray) -> np.ndarray:
        """Return the delta to add to the parameters for ``gradient``."""
        self.iteration += 1
        return self._delta(gradient)

    @abstractmethod
    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        ...


class SGD(Optimiser):
    """Stochastic gradient descent with optional momentum."""

    def __init__(self, learning_rate: float, momentum: float = 0.0, epsilon: float = 1e-6):
        super().__init__(learning_rate, epsilon)
        self.momentum = momentum
        self.velocity = None

    def rate(self) -> float:
        return self.learning_rate

    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        update = self.rate() * gradient
        if self.momentum:
            self.velocity = update if self.velocity is None else self.momentum * self.velocity + update
            update = self.velocity
        return -update


class LinearDecaySGD(SGD):
    """SGD whose rate decays as ``learning_rate / t``."""

    def rate(self) -> float:
        return self.learning_rate / self.iteration


class SqrtDecaySGD(SGD):
    """SGD whose rate decays as ``learning_rate / sqrt(t)``."""

    def rate(self) -> float:
        return self.learning_rate / np.sqrt(self.iteration)


class AdaGrad(Optimiser):

    def __init__(self, learning_rate: float, epsilon: float = 1e-6):
        super().__init__(learning_rate, epsilon)
        self.squares = None

    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        if self.squares is None:
            self.squares = np.zeros_like(gradient)
        self.squares += gradient ** 2
        return -self.learning_rate * gradient / (np.sqrt(self.squares) + self.epsilon)


class AdaDelta(Optimiser):
    """AdaDelta; the step size adapts per parameter and ignores ``learning_rate``."""

    def __init__(self, learning_rate: float, rho: float = 0.95, epsilon: float = 1e-6):
        super().__init__(learning_rate, epsilon)
        self.rho = rho
        self.gradients = None
        self.deltas = None

    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        if self.gradients is None:
            self.gradients = np.zeros_like(gradient)
            self.deltas = np.zeros_like(gradient)
        self.gradients = self.rho * self.gradients + (1 - self.rho) * gradient ** 2
        delta = -np.sqrt(self.deltas + self.epsilon) / np.sqrt(self.gradients + self.epsilon) * gradient
        self.deltas = self.rho * self.deltas + (1 - self.rho) * delta ** 2
        return delta


class Adam(Optimiser):
    """Adam with bias-corrected first and second moments."""

    def __init__(self, learning_rate: float, beta1: float = 0.9, beta2: float = 0.99, epsilon: float = 1e-6):
        super().__init__(learning_rate, epsilon)
        self.beta1 = beta1
        self.beta2 = beta2
        self.first = None
        self.second = None

    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        if self.first is None:
            self.first = np.zeros_like(gradient)
            self.second = np.zeros_like(gradient)
        self.first = self.beta1 * self.first + (1 - self.beta1) * gradient
        self.second = self.beta2 * self.second + (1 - self.beta2) * gradient ** 2
        first = self.first / (1 - self.beta1 ** self.iteration)
        second = self.second / (1 - self.beta2 ** self.iteration)
        return -self.learning_rate * first / (np.sqrt(second) + self.epsilon)


class RMSProp(Optimiser):

    def __init__(self, learning_rate: float, decay_rate: float = 0.9, epsilon: float = 1e-6):
        super().__init__(learning_rate, epsilon)
        self.decay_rate = decay_rate
        self.squares = None

    def _delta(self, gradient: np.ndarray) -> np.ndarray:
        if self.squares is None:
            self.squares = np.zeros_like(gradient)
        self.squares = self.decay_rate * self.squares + (1 - self.decay_rate) * gradient ** 2
        return -self.learning_rate * gradient / (np.sqrt(self.squares) + self.epsilon)


OPTIMISERS = {
    0: "sgd",
    1: "linear_decay_sgd",
    2: "sqrt_decay_sgd",
    3: "adagrad",
    4: "adadelta",
    5: "adam",
    6: "rmsprop",
}


def create_optimiser(kind: int, params: Dict[str, Any]) -> Optimiser:
    """Build an optimiser from resolved linear regression parameters.

    Parameters
    - kind: Optimiser code (see ``OPTIMISERS``)
    - params: Must contain ``learning_rate``, ``momentum_factor``, ``epsilon``,
      ``beta1``, ``beta2`` and ``decay_rate``
    """
    rate = params["learning_rate"]
    epsilon = params["epsilon"]
    if kind == 0:
        return SGD(rate, params["momentum_factor"], epsilon)
    if kind == 1:
        return LinearDecaySGD(rate, params["momentum_factor"], epsilon)
    if kind == 2:
        return SqrtDecaySGD(rate, params["momentum_factor"], epsilon)
    if kind == 3:
        return AdaGrad(rate, epsilon)
    if kind == 4:
        return AdaDelta(rate, params["decay_rate"], epsilon)
    if kind == 5:
        return Adam(rate, params["beta1"], params["beta2"], epsilon)
    if kind == 6:
        return RMSProp(rate, params["decay_rate"], epsilon)
    raise InvalidParameterError(f"Unsupported optimiser: {kind}")
