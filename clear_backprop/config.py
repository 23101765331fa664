from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TrainingConfig:
    """Hyperparameters for Model.fit."""
    epochs: int = 1
    learning_rate: float = 0.01
    batch_size: int = 32
    report_every: int = 0                # number of progress signals over the run (0 = none)
    initialize_weights: bool = True      # re-draw weights before training
    max_workers: Optional[int] = None    # None = ThreadPoolExecutor default

    def __post_init__(self):
        if self.epochs <= 0:
            raise ValueError(f"epochs must be positive, got {self.epochs}")
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.report_every < 0:
            raise ValueError(f"report_every must be >= 0, got {self.report_every}")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive or None, got {self.max_workers}")

    def report_epochs(self) -> set[int]:
        """Zero-based epochs after which a progress signal is emitted."""
        if self.report_every == 0:
            return set()
        n = min(self.report_every, self.epochs)
        # Evenly spread; the last signal always follows the final epoch
        return {(k * self.epochs) // n - 1 for k in range(1, n + 1)}


@dataclass(frozen=True)
class TrainingProgress:
    """Snapshot handed to the progress callback."""
    epoch: int           # 1-based
    epochs: int
    loss: float          # mean loss over the epoch, regularization included
    elapsed: float       # seconds since fit started
    epoch_time: float
