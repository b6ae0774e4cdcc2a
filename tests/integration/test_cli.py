"""End-to-end tests of the bayesian-omp command line."""

import json
import numpy as np
import pytest
import scipy.sparse
import yaml

from bayesian_omp import bayesian_omp, InvalidHyperparameterError
from bayesian_omp.cli import main


@pytest.fixture
def problem_files(tmp_path, synthetic_data):
    D_path = tmp_path / "D.npy"
    Y_path = tmp_path / "Y.npy"
    cfg_path = tmp_path / "bomp.yaml"
    np.save(D_path, synthetic_data['dictionary'])
    np.save(Y_path, synthetic_data['signals'])
    with open(cfg_path, "w", encoding="utf-8") as fh:
        yaml.safe_dump({"noise_std": 0.05, "activation_std": 1.0,
                        "bernoulli_weight": -5.0, "n_iter": 6}, fh)
    return {"D": str(D_path), "Y": str(Y_path), "config": str(cfg_path), "dir": tmp_path}


def _events(captured):
    return [json.loads(line)["event"] for line in captured.out.splitlines() if line.strip()]


def test_encode_writes_codes_and_metadata(problem_files, synthetic_data, capsys):
    out = problem_files["dir"] / "codes.npz"
    main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--out", str(out)])

    codes = scipy.sparse.load_npz(out)
    expected = bayesian_omp(synthetic_data['dictionary'], synthetic_data['signals'], 0.05, 1.0, -5.0, 6)
    np.testing.assert_allclose(codes.toarray(), expected.toarray())

    with open(problem_files["dir"] / "codes.meta.json", encoding="utf-8") as fh:
        meta = json.load(fh)
    assert meta["n_iter"] == 6
    assert meta["nnz"] == expected.nnz
    assert _events(capsys.readouterr()) == ["encode_start", "encode_done"]


def test_command_line_overrides_config(problem_files, capsys):
    out = problem_files["dir"] / "codes.npz"
    main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--n-iter", "0", "--out", str(out)])

    assert scipy.sparse.load_npz(out).nnz == 0


def test_encode_without_config_needs_parameters(problem_files):
    with pytest.raises(InvalidHyperparameterError):
        main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
              "--out", str(problem_files["dir"] / "codes.npz")])


def test_reconstruct(problem_files, synthetic_data, capsys):
    codes_path = problem_files["dir"] / "codes.npz"
    recon_path = problem_files["dir"] / "Y_hat.npy"
    main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--out", str(codes_path)])
    main(["reconstruct", "--dictionary", problem_files["D"], "--codes", str(codes_path),
          "--out", str(recon_path)])

    Y_hat = np.load(recon_path)
    codes = scipy.sparse.load_npz(codes_path).toarray()
    np.testing.assert_allclose(Y_hat, synthetic_data['dictionary'] @ codes)
    assert "reconstruct_done" in _events(capsys.readouterr())


def test_encode_stream_matches_encode(problem_files, capsys):
    full = problem_files["dir"] / "full.npz"
    streamed = problem_files["dir"] / "streamed.npz"
    main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--out", str(full)])
    main(["encode-stream", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--batch", "7", "--out", str(streamed)])

    np.testing.assert_allclose(scipy.sparse.load_npz(streamed).toarray(),
                               scipy.sparse.load_npz(full).toarray(), rtol=1e-9, atol=1e-12)


def _records(captured):
    return [json.loads(line) for line in captured.out.splitlines() if line.strip()]


def test_deterministic_flag_runs_single_threaded(problem_files, synthetic_data, capsys):
    out = problem_files["dir"] / "codes.npz"
    main(["encode", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--deterministic", "--out", str(out)])

    start = _records(capsys.readouterr())[0]
    assert start["event"] == "encode_start"
    assert start["deterministic"] is True

    expected = bayesian_omp(synthetic_data['dictionary'], synthetic_data['signals'], 0.05, 1.0, -5.0, 6)
    np.testing.assert_allclose(scipy.sparse.load_npz(out).toarray(), expected.toarray())


def test_encode_stream_writes_metadata_and_events(problem_files, capsys):
    out = problem_files["dir"] / "streamed.npz"
    main(["encode-stream", "--dictionary", problem_files["D"], "--signals", problem_files["Y"],
          "--config", problem_files["config"], "--batch", "5", "--out", str(out)])

    records = _records(capsys.readouterr())
    assert [r["event"] for r in records] == ["encode_stream_start", "encode_stream_done"]
    assert records[0]["batch"] == 5

    with open(problem_files["dir"] / "streamed.meta.json", encoding="utf-8") as fh:
        meta = json.load(fh)
    assert meta["n_iter"] == 6
    assert meta["nnz"] == records[1]["nnz"] == scipy.sparse.load_npz(out).nnz
