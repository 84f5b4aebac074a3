"""Quick runnable example on a synthetic churn-style dataset.

Trains a binary booster with a validation watch-list and early stopping,
saves and reloads the model, scores rows from several threads and prints
feature importance.

Run:
    python -m examples.run_quick_example
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
import tempfile

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

import tree_ensemble as te


def make_dataset(n_samples: int = 1000, seed: int = 42) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        "tenure": rng.integers(0, 72, n_samples).astype(float),
        "monthly_charges": rng.normal(70, 20, n_samples),
        "support_calls": rng.poisson(1.5, n_samples).astype(float),
        "balance": rng.normal(0, 1, n_samples),
    })
    logits = -0.04 * df["tenure"] + 0.03 * (df["monthly_charges"] - 70) + 0.6 * df["support_calls"] - 0.5
    df["target"] = rng.binomial(1, 1 / (1 + np.exp(-logits)))

    # Some missing balances
    df.loc[rng.random(n_samples) < 0.05, "balance"] = np.nan
    return df


def main(output_dir=None):
    df = make_dataset()
    X = df.drop("target", axis=1)
    y = df["target"]
    print(f"Generated dataset: {len(df)} rows, {X.shape[1]} features")

    X_train, X_test, y_train, y_test = train_test_split(X, y, test_size=0.25, random_state=42, stratify=y)
    dtrain = te.Dataset(X_train, label=y_train)
    dvalid = te.Dataset(X_test, label=y_test)

    params = {
        "objective": "binary:logistic",
        "eta": 0.1,
        "max_depth": 3,
        "eval_metric": ["logloss", "auc"],
        "seed": 42,
    }
    history = {}
    booster = te.train(
        params, dtrain, num_boost_round=100,
        evals=[(dtrain, "train"), (dvalid, "valid")],
        early_stopping_rounds=10, evals_result=history, verbose_eval=25,
    )

    print("Training completed:")
    print(f"  Rounds: {booster.num_boosted_rounds()}")
    print(f"  Best iteration: {booster.best_iteration}")
    print(f"  Best valid auc: {booster.best_score:.4f}")

    output_dir = Path(output_dir) if output_dir is not None else Path(tempfile.mkdtemp())
    model_path = output_dir / "churn_model.bin"
    booster.save_model(model_path)
    restored = te.load_model(model_path)

    # Score single rows concurrently against the restored model
    rows = X_test.to_numpy(dtype=np.float32)
    with ThreadPoolExecutor(max_workers=4) as pool:
        scores = list(pool.map(
            lambda row: restored.inplace_predict(row, num_rows=1, num_features=rows.shape[1])[0, 0],
            rows,
        ))
    assert np.allclose(scores, booster.predict(dvalid)[:, 0])
    print(f"Scored {len(scores)} rows from 4 threads")

    importance = te.FeatureImportanceAggregator(restored.trees, restored.num_features()).to_frame(
        "total_gain", restored.feature_names
    )
    print("Feature importance (total_gain):")
    print(importance.to_string(index=False))

    return {"booster": restored, "history": history, "importance": importance, "model_path": model_path}


if __name__ == "__main__":
    main()
