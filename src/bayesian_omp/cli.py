import json, argparse, contextlib, numpy as np, scipy.sparse, yaml
from pathlib import Path
from .pursuit import BayesianOMP
from .reproducible import set_deterministic, is_deterministic
from .experimental_logging import log
from .config import PursuitConfig, make_metadata
from .streaming import encode_stream

_PARAMS = ("noise_std", "activation_std", "bernoulli_weight", "n_iter", "min_support", "n_jobs")

def _load_cfg(path):
    if not path: return {}
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}

def _build_config(args):
    raw = _load_cfg(args.config)
    for name in _PARAMS:
        value = getattr(args, name, None)
        if value is not None:
            raw[name] = value
    return PursuitConfig.from_params(**raw)

def _metadata_path(out):
    out = Path(out)
    return out.with_name(out.name.split(".")[0] + ".meta.json")

def _deterministic(args):
    # limits are restored when the command returns
    return set_deterministic() if args.deterministic else contextlib.nullcontext()

def _write_metadata(out, cfg, D_shape, codes):
    meta = make_metadata(cfg, D_shape, codes.shape, {"nnz": int(codes.nnz)})
    with open(_metadata_path(out), "w", encoding="utf-8") as fh:
        json.dump(meta, fh, indent=2)

def cmd_encode(args):
    cfg = _build_config(args)
    with _deterministic(args):
        D = np.load(args.dictionary).astype(float)
        Y = np.load(args.signals).astype(float)
        log("encode_start", dictionary=args.dictionary, signals=args.signals,
            n_iter=cfg.n_iter, deterministic=is_deterministic())
        codes = BayesianOMP(cfg).solve(D, Y)
    out = args.out if args.out.endswith(".npz") else args.out + ".npz"
    scipy.sparse.save_npz(out, codes)
    _write_metadata(out, cfg, D.shape, codes)
    log("encode_done", out=out, nnz=int(codes.nnz))

def cmd_encode_stream(args):
    cfg = _build_config(args)
    with _deterministic(args):
        D = np.load(args.dictionary).astype(float)
        log("encode_stream_start", dictionary=args.dictionary, signals=args.signals,
            n_iter=cfg.n_iter, batch=int(args.batch), deterministic=is_deterministic())
        out = encode_stream(D, args.signals, cfg, batch_size=int(args.batch), out_path=args.out)
    codes = scipy.sparse.load_npz(out)
    _write_metadata(out, cfg, D.shape, codes)
    log("encode_stream_done", out=out, nnz=int(codes.nnz))

def cmd_reconstruct(args):
    D = np.load(args.dictionary).astype(float)
    X = scipy.sparse.load_npz(args.codes)
    Y_hat = np.asarray(X.T @ D.T).T
    np.save(args.out, Y_hat); log("reconstruct_done", out=args.out)

def _add_pursuit_args(ap):
    ap.add_argument("--dictionary", required=True)
    ap.add_argument("--signals", required=True)
    ap.add_argument("--config")
    ap.add_argument("--noise-std", dest="noise_std", type=float)
    ap.add_argument("--activation-std", dest="activation_std", type=float)
    ap.add_argument("--bernoulli-weight", dest="bernoulli_weight", type=float)
    ap.add_argument("--n-iter", dest="n_iter", type=int)
    ap.add_argument("--min-support", dest="min_support", type=int)
    ap.add_argument("--n-jobs", dest="n_jobs", type=int)
    ap.add_argument("--deterministic", action="store_true")

def main(argv=None):
    ap = argparse.ArgumentParser("bayesian-omp")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_en = sub.add_parser("encode", help="Encode signals (p x N .npy) with a dictionary")
    _add_pursuit_args(ap_en)
    ap_en.add_argument("--out", required=True)
    ap_en.set_defaults(func=cmd_encode)

    ap_es = sub.add_parser("encode-stream", help="Encode a huge signals .npy in batches")
    _add_pursuit_args(ap_es)
    ap_es.add_argument("--batch", type=int, default=10000)
    ap_es.add_argument("--out")
    ap_es.set_defaults(func=cmd_encode_stream)

    ap_rc = sub.add_parser("reconstruct", help="Reconstruct signals from codes and dictionary")
    ap_rc.add_argument("--dictionary", required=True)
    ap_rc.add_argument("--codes", required=True)
    ap_rc.add_argument("--out", required=True)
    ap_rc.set_defaults(func=cmd_reconstruct)

    args = ap.parse_args(argv)
    return args.func(args)

if __name__ == "__main__":
    raise SystemExit(main())
