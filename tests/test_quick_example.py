import importlib.util
from pathlib import Path as _Path

import pytest

# Dynamically load the example module by file path to avoid import issues
repo_root = _Path(__file__).resolve().parents[1]
example_path = repo_root / "examples" / "run_quick_example.py"
spec = importlib.util.spec_from_file_location("examples.run_quick_example", str(example_path))
quick_example = importlib.util.module_from_spec(spec)
spec.loader.exec_module(quick_example)


@pytest.mark.slow
def test_run_quick_example(tmp_path):
    results = quick_example.main(output_dir=tmp_path)

    assert results["model_path"].exists()
    assert set(results["history"]) == {"train", "valid"}
    assert list(results["history"]["valid"]) == ["logloss", "auc"]
    assert not results["importance"].empty
    assert results["booster"].best_iteration is not None
