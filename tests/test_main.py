import os

import cv2
import numpy as np
import pytest

from generate_sample import generate_hazy_scene
from main import main, run_pipeline


@pytest.fixture
def hazy_file(tmp_path):
    path = tmp_path / "hazy.png"
    cv2.imwrite(str(path), generate_hazy_scene(64, 48, 0.5))
    return path


def test_cli_writes_outputs_and_prints_counts(hazy_file, tmp_path, capsys):
    out_dir = tmp_path / "results"
    assert main([str(hazy_file), "--output-dir", str(out_dir)]) == 0

    assert (out_dir / "map.png").is_file()
    assert (out_dir / "out.png").is_file()
    assert cv2.imread(str(out_dir / "out.png")).shape == (48, 64, 3)

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("Number of high-frequency pixels in the original image: ")
    assert lines[1].startswith("Number of high-frequency pixels in the defogged image: ")
    for line in lines:
        int(line.rsplit(":", 1)[1])


def test_cli_defaults_to_working_directory(hazy_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([str(hazy_file)]) == 0
    assert os.path.isfile("map.png")
    assert os.path.isfile("out.png")


def test_cli_undecodable_input(tmp_path):
    assert main([str(tmp_path / "missing.png")]) == 1
    assert not (tmp_path / "out.png").exists()


def test_cli_zero_atmospheric_light(tmp_path):
    image = np.zeros((8, 8, 3), dtype=np.uint8)
    image[:, :, 2] = 200
    image[3, 3] = [1, 0, 0]
    path = tmp_path / "dark.png"
    cv2.imwrite(str(path), image)

    assert main([str(path), "--output-dir", str(tmp_path)]) == 0

    np.testing.assert_array_equal(cv2.imread(str(tmp_path / "map.png"), cv2.IMREAD_GRAYSCALE),
                                  np.zeros((8, 8), dtype=np.uint8))
    out = cv2.imread(str(tmp_path / "out.png"))
    assert out[0, 0].tolist() == [0, 0, 255]
    assert out[3, 3].tolist() == [2, 0, 0]


def test_cli_unwritable_output(hazy_file, tmp_path, monkeypatch):
    monkeypatch.setattr(cv2, "imwrite", lambda *args, **kwargs: False)
    assert main([str(hazy_file), "--output-dir", str(tmp_path / "results")]) == 2


def test_run_pipeline_result(hazy_file, tmp_path):
    summary = tmp_path / "summary.png"
    result = run_pipeline(str(hazy_file), output_dir=str(tmp_path),
                          summary_path=str(summary))

    assert summary.is_file()
    assert result["transmission_map"].shape == (48, 64)
    assert result["metrics"]["delta"] == \
        result["metrics"]["after"] - result["metrics"]["before"]
    assert set(result["paths"]) == {"map", "out"}


def test_run_pipeline_downscales(hazy_file, tmp_path):
    result = run_pipeline(str(hazy_file), output_dir=str(tmp_path), max_dim=32)
    assert result["output"].shape == (24, 32, 3)
