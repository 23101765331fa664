import time
import logging
import numpy as np
import matplotlib.pyplot as plt
from sklearn.datasets import make_moons

from clear_backprop import (
    BinaryCrossEntropy,
    Dense,
    L2Regularizer,
    Model,
    Normalization,
    TrainingProgress,
    load_coffee_data,
    sigmoid,
)

# --- Plotting Function ---

def plot_decision_boundary(X: np.ndarray, y_raw: np.ndarray, model: Model, from_logits: bool = False):
    """Plots the decision boundary of a trained binary classifier.

    Args:
        X: Input features (n_samples, 2), normalized the same way as for training.
        y_raw: True 0/1 labels, shape (n_samples,).
        model: Trained Model instance.
        from_logits: Whether the model outputs logits rather than probabilities.
    """
    h = 0.02 # Step size in the mesh

    x_min, x_max = X[:, 0].min() - 0.5, X[:, 0].max() + 0.5
    y_min, y_max = X[:, 1].min() - 0.5, X[:, 1].max() + 0.5
    xx, yy = np.meshgrid(np.arange(x_min, x_max, h),
                         np.arange(y_min, y_max, h))

    mesh_points = np.c_[xx.ravel(), yy.ravel()]
    Z = model.predict(mesh_points)[:, 0]
    if from_logits:
        Z = sigmoid(Z)
    Z = (Z >= 0.5).astype(int).reshape(xx.shape)

    plt.figure(figsize=(10, 8))
    plt.contourf(xx, yy, Z, cmap=plt.cm.Spectral, alpha=0.8)
    plt.scatter(X[:, 0], X[:, 1], c=y_raw, cmap=plt.cm.Spectral, edgecolor='k', s=35)
    plt.xlabel("Feature 1 (Normalized)")
    plt.ylabel("Feature 2 (Normalized)")
    plt.title("Decision Boundary")
    plt.xlim(xx.min(), xx.max())
    plt.ylim(yy.min(), yy.max())
    plt.grid(True, alpha=0.2)


def plot_history(history, title: str):
    plt.figure(title, figsize=(8, 5))
    plt.plot(history['epoch'], history['loss'], label='Training Loss')
    plt.xlabel('Epoch')
    plt.ylabel('Loss')
    plt.title(title)
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.ylim(bottom=0)
    plt.tight_layout()


# --- Coffee Roasting Example ---

def coffee_example():
    """2-3-1 sigmoid network on the synthetic coffee-roasting data."""
    logger = logging.getLogger("CoffeeExample")

    X_raw, Y = load_coffee_data(400, seed=2)
    norm = Normalization(2).adapt(X_raw)
    X = norm(X_raw)
    logger.info(f"Data shapes - X: {X.shape}, Y: {Y.shape}, positives: {int(Y.sum())}")

    model = Model([
        Dense(2, 3, 'sigmoid'),
        Dense(3, 1, 'sigmoid'),
    ], rng=1234)
    print(model.summary())

    start_time = time.time()
    history = model.fit(X, Y, BinaryCrossEntropy(), epochs=2000, learning_rate=0.1,
                        batch_size=32, report_every=10)
    logger.info(f"Training finished. Total training time: {time.time() - start_time:.2f} seconds")

    metrics = model.evaluate(X, Y, BinaryCrossEntropy())
    print(f"  Loss: {metrics['loss']:.4f}")
    print(f"  Accuracy: {metrics['accuracy']:.4f}")
    print(model)

    plot_history(history, "Coffee Training History")
    plot_decision_boundary(X, Y, model)


# --- Make Moons Example ---

def make_moons_example():
    """ReLU network with logit output and L2 penalty on make_moons."""
    logger = logging.getLogger("MakeMoonsExample")

    X_original, y_raw = make_moons(n_samples=300, noise=0.1, random_state=42)
    X = Normalization(2).adapt(X_original)(X_original)

    model = Model([
        Dense(2, 16, 'relu', kernel_regularizer=L2Regularizer(0.001)),
        Dense(16, 16, 'leaky_relu'),
        Dense(16, 1, 'linear'),
    ], rng=42)

    def record(progress: TrainingProgress):
        logger.info(f"epoch {progress.epoch}/{progress.epochs}: loss={progress.loss:.4f}")

    history = model.fit(X, y_raw, BinaryCrossEntropy(from_logits=True), epochs=300,
                        learning_rate=0.05, batch_size=16, report_every=15,
                        progress_callback=record)

    metrics = model.evaluate(X, y_raw, BinaryCrossEntropy(from_logits=True))
    print(f"  Loss: {metrics['loss']:.4f}")
    print(f"  Accuracy: {metrics['accuracy']:.4f}")

    plot_history(history, "Make Moons Training History")
    plot_decision_boundary(X, y_raw, model, from_logits=True)


# --- Script Execution ---

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    print("\n" + "=" * 40)
    print("--- Running Coffee Roasting Example ---")
    print("=" * 40)
    coffee_example()

    print("\n" + "=" * 40)
    print("--- Running Make Moons Classification Example ---")
    print("=" * 40)
    make_moons_example()

    print("\nDisplaying plots. Close plot windows to exit.")
    plt.show()
