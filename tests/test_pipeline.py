import json

import numpy as np
import pandas as pd
import pytest

from vlung.cli import main
from vlung.pipeline import PipelineParams, export_points_csv, run_pipeline
from vlung.render import OVERFLOW_COLOR, PALETTE, points_to_image
from vlung.samples import apply_range, load_samples_csv, samples_from_volume


def _toy_volume(n=10, noise=(0, 0, 9)):
    vol = np.full((n, n, n), -1000, dtype=np.int16)
    vol[3:7, 3:7, 3:7] = 300  # bone cube
    vol[noise] = 300          # single-voxel noise
    return vol


def test_pipeline_removes_noise_and_keeps_cube():
    res = run_pipeline(samples_from_volume(_toy_volume()))
    assert res.shape == (10, 10, 10)
    assert res.group_size == 5

    assert len(res.raw_points[4]) == 65
    assert (0, 0, 9) in res.raw_points[4]

    bone = set(res.clean_points[4])
    assert (0, 0, 9) not in bone
    assert (4, 4, 4) in bone
    assert all(2 <= c <= 7 for p in bone for c in p)

    summary = res.summary()
    assert list(summary.columns) == ["group", "n_raw", "n_clean"]
    assert summary["n_raw"].sum() == 1000


def test_range_blanks_outside_voxels():
    df = samples_from_volume(_toy_volume())
    out = apply_range(df, start_range=(0, 0, 0), end_range=(9, 9, 8))
    assert out.loc[(out.x == 0) & (out.y == 0) & (out.z == 9), "intensity"].item() == -1000
    assert (df["intensity"] == 300).sum() - (out["intensity"] == 300).sum() == 1


def test_slice_images_written(tmp_path):
    res = run_pipeline(samples_from_volume(_toy_volume()), out_dir=str(tmp_path), depth_img=4)
    assert (tmp_path / "4.png").exists()
    assert (tmp_path / "4_raw_4.png").exists()
    assert len(res.images) == 2 * (1 + 5)


def test_depth_outside_grid_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_pipeline(samples_from_volume(_toy_volume()), out_dir=str(tmp_path), depth_img=10)


def test_palette_overflow():
    img = points_to_image(3, 2, [[(0, 0, 0)], [], [], [], [], [], [(2, 1, 0)]])
    assert tuple(img[0, 0]) == PALETTE[0]
    assert tuple(img[1, 2]) == OVERFLOW_COLOR
    assert tuple(img[1, 0]) == (0, 0, 0)


def test_csv_loader_checks_columns(tmp_path):
    p = tmp_path / "bad.csv"
    pd.DataFrame({"x": [0], "y": [0], "value": [1]}).to_csv(p, index=False)
    with pytest.raises(ValueError):
        load_samples_csv(p)


def test_export_points_csv(tmp_path):
    p = export_points_csv([[(0, 0, 0)], [(1, 2, 3), (0, 1, 0)]], str(tmp_path / "g.csv"))
    df = pd.read_csv(p)
    assert df["group"].tolist() == [0, 1, 1]


def test_cli_end_to_end(tmp_path):
    csv = tmp_path / "samples.csv"
    samples_from_volume(_toy_volume()).to_csv(csv, index=False)
    outdir = tmp_path / "out"
    main(["--input", str(csv), "--outdir", str(outdir), "--depth-img", "4",
          "--init-colors=-990,300", "--noise-removal", "1", "--stop-rule", "partition",
          "--log-file", str(tmp_path / "run.log")])

    summary = json.loads((outdir / "summary.json").read_text())
    assert summary["init_centers"] == [-990, 300]
    assert summary["stop_rule"] == "partition"
    assert "[END] filter" in (tmp_path / "run.log").read_text()
    assert len(summary["groups"]) == 2
    assert (outdir / "groups.csv").exists()
    assert (outdir / "4.png").exists()


def test_cli_reports_errors(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--input", str(tmp_path / "missing.csv"), "--outdir", str(tmp_path)])
    assert exc.value.code == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_params_are_frozen():
    p = PipelineParams()
    with pytest.raises(Exception):
        p.noise_removal = 3
