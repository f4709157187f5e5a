"""Toy linear softmax classifier.

This module provides the small model the demo training loop drives:
one weight matrix and bias trained with per-sample SGD on softmax
cross-entropy. It exists to give the data pipeline a realistic consumer.
"""

from __future__ import annotations

import numpy as np

from core.constants import (
    DEFAULT_NUM_CLASSES,
    DEFAULT_TRAIN_LEARNING_RATE,
    FEATURE_SIZE,
    LOSS_PROBABILITY_FLOOR,
)
from core.errors import WarpdriveTrainingError
from core.types import TrainingBatch

_INIT_SCALE = 0.01


class LinearClassifier:
    """Linear classifier with softmax cross-entropy loss."""

    def __init__(
        self,
        num_classes: int = DEFAULT_NUM_CLASSES,
        input_size: int = FEATURE_SIZE,
        learning_rate: float = DEFAULT_TRAIN_LEARNING_RATE,
        seed: int = 0,
    ) -> None:
        if num_classes <= 0 or input_size <= 0 or learning_rate <= 0:
            raise WarpdriveTrainingError(
                "Invalid classifier shape: num_classes, input_size and learning_rate "
                f"must be > 0, got {num_classes}, {input_size}, {learning_rate}."
            )
        randomizer = np.random.default_rng(seed)
        self.num_classes = num_classes
        self.input_size = input_size
        self.learning_rate = learning_rate
        self.weights = randomizer.uniform(-_INIT_SCALE, _INIT_SCALE, size=(num_classes, input_size))
        self.bias = np.zeros(num_classes, dtype=np.float64)

    def train_step(self, batch: TrainingBatch) -> float:
        """Run one SGD pass over the batch and return its mean loss.

        Inputs with the wrong width are skipped but still count toward the
        batch length. Labels outside ``[0, num_classes)`` wrap around.

        Args:
            batch: Feature vectors and integer labels.

        Returns:
            Total cross-entropy divided by the batch length; 0.0 when empty.
        """
        if not batch.inputs:
            return 0.0
        total_loss = 0.0
        for features, label in zip(batch.inputs, batch.labels):
            inputs = np.asarray(features, dtype=np.float64)
            if inputs.shape != (self.input_size,):
                continue
            target = label % self.num_classes
            probabilities = _softmax(self.weights @ inputs + self.bias)
            total_loss += -float(np.log(max(probabilities[target], LOSS_PROBABILITY_FLOOR)))
            gradient = probabilities
            gradient[target] -= 1.0
            self.bias -= self.learning_rate * gradient
            self.weights -= self.learning_rate * np.outer(gradient, inputs)
        return total_loss / len(batch.inputs)


def _softmax(logits: np.ndarray) -> np.ndarray:
    shifted = np.exp(logits - np.max(logits))
    return shifted / shifted.sum()
