# cli.py — CLI for the clustering + morphological cleanup pipeline
from __future__ import annotations
import argparse
import json
import logging
import os
import sys

import numpy as np

from .kmeans import DEFAULT_INIT_CENTERS
from .logging_config import setup_logging
from .pipeline import PipelineParams, export_points_csv, run_pipeline
from .samples import load_samples_csv, samples_from_volume


def _parse_int_list(s: str):
    return [int(x.strip()) for x in s.replace(",", " ").split() if x.strip()]


def _parse_point(s: str, name: str):
    vals = _parse_int_list(s)
    if len(vals) != 3:
        raise ValueError(f"--{name} expects three integers 'x y z', got '{s}'")
    if any(v < 0 for v in vals):
        raise ValueError(f"--{name} coordinates must be >= 0")
    return tuple(vals)


def _load(path: str):
    if path.endswith(".npy"):
        return samples_from_volume(np.load(path))
    return load_samples_csv(path)


def main(argv=None):
    ap = argparse.ArgumentParser(
        prog="vlung",
        description="Cluster CT voxel intensities into tissue groups and clean the labelling "
                    "with 3D opening/closing."
    )

    ap.add_argument("--input", required=True,
                    help="CSV with columns x,y,z,intensity, or a .npy (rows, columns, height) volume")
    ap.add_argument("--outdir", default="./vlung_out", help="Output directory")

    ap.add_argument("--depth-img", type=int, default=None,
                    help="If set, write raw/filtered slice images at this depth.")
    ap.add_argument("--start-range", type=str, default=None,
                    help="'x y z' start of the analysis box (voxels before it are blanked).")
    ap.add_argument("--end-range", type=str, default=None,
                    help="'x y z' end of the analysis box (voxels after it are blanked).")
    ap.add_argument("--noise-removal", type=int, default=1,
                    help="Erode/dilate pass count for opening and closing (default 1).")
    ap.add_argument("--init-colors", type=str, default=None,
                    help="Initial group centers, e.g. --init-colors=-990,-750,-53,34,300 (at least two).")
    ap.add_argument("--stop-rule", choices=["centers", "partition"], default="centers",
                    help="Clustering stop rule: recomputed centers unchanged (default) or labels unchanged.")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--log-file", default=None, help="Also write the log to this file.")

    args = ap.parse_args(argv)

    try:
        setup_logging(getattr(logging, args.log_level), args.log_file)

        init_centers = tuple(DEFAULT_INIT_CENTERS)
        if args.init_colors:
            init_centers = tuple(_parse_int_list(args.init_colors))
            if len(init_centers) < 2:
                raise ValueError("--init-colors needs at least two values.")
        if args.noise_removal < 0:
            raise ValueError("--noise-removal must be >= 0.")

        params = PipelineParams(
            init_centers=init_centers,
            noise_removal=args.noise_removal,
            stop_rule=args.stop_rule,
            start_range=_parse_point(args.start_range, "start-range") if args.start_range else None,
            end_range=_parse_point(args.end_range, "end-range") if args.end_range else None,
        )

        os.makedirs(args.outdir, exist_ok=True)
        samples = _load(args.input)
        result = run_pipeline(samples, params=params, out_dir=args.outdir, depth_img=args.depth_img)

        points_csv = export_points_csv(result.clean_points, os.path.join(args.outdir, "groups.csv"))
        summary = {
            "shape": list(result.shape),
            "init_centers": list(init_centers),
            "noise_removal": params.noise_removal,
            "stop_rule": params.stop_rule,
            "groups": [
                {k: int(v) for k, v in row.items()}
                for row in result.summary().to_dict(orient="records")
            ],
            "points_csv": points_csv,
            "images": result.images,
        }
        with open(os.path.join(args.outdir, "summary.json"), "w") as f:
            json.dump(summary, f, indent=2)
        print(json.dumps(summary, indent=2))

    except Exception as e:
        print(f"[ERROR] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
