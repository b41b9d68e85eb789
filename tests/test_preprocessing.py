import cv2
import numpy as np
import pytest

from errors import DefogError, InputDecodeError
from preprocessing import load_image, resize_image, to_grayscale, ensure_rgb, preprocess


@pytest.fixture
def image_file(tmp_path):
    image = np.zeros((20, 30, 3), dtype=np.uint8)
    image[:, :, 0] = 200
    image[5:10, 5:10] = [10, 20, 30]
    path = tmp_path / "sample.png"
    cv2.imwrite(str(path), image)
    return path, image


def test_load_image_round_trip(image_file):
    path, image = image_file
    np.testing.assert_array_equal(load_image(str(path)), image)


def test_load_missing_image(tmp_path):
    with pytest.raises(InputDecodeError):
        load_image(str(tmp_path / "missing.jpg"))


def test_load_undecodable_image(tmp_path):
    path = tmp_path / "not_an_image.jpg"
    path.write_text("definitely not a JPEG")
    with pytest.raises(InputDecodeError) as excinfo:
        load_image(str(path))
    assert isinstance(excinfo.value, DefogError)
    assert isinstance(excinfo.value, OSError)


def test_resize_only_downscales():
    image = np.zeros((100, 200, 3), dtype=np.uint8)
    assert resize_image(image, 50).shape == (25, 50, 3)
    assert resize_image(image, 400).shape == (100, 200, 3)


def test_resize_disabled_returns_copy():
    image = np.zeros((10, 10, 3), dtype=np.uint8)
    resized = resize_image(image, None)
    np.testing.assert_array_equal(resized, image)
    assert resized is not image


def test_grayscale_of_flat_image():
    gray = to_grayscale(np.full((3, 5, 3), 100, dtype=np.uint8))
    assert gray.shape == (3, 5)
    assert np.all(gray == 100)


def test_grayscale_saturates_float_input():
    gray = to_grayscale(np.full((2, 2, 3), 300.0))
    assert gray.dtype == np.uint8
    assert np.all(gray == 255)


def test_ensure_rgb_swaps_channels():
    image = np.array([[[1, 2, 3]]], dtype=np.uint8)
    np.testing.assert_array_equal(ensure_rgb(image), [[[3, 2, 1]]])


def test_preprocess(image_file):
    path, image = image_file
    loaded = preprocess(str(path))

    assert set(loaded) == {"original_bgr", "original_rgb", "gray"}
    np.testing.assert_array_equal(loaded["original_bgr"], image)
    assert loaded["gray"].shape == (20, 30)


def test_preprocess_with_max_dim(image_file):
    path, _ = image_file
    loaded = preprocess(str(path), max_dim=15)
    assert loaded["original_bgr"].shape == (10, 15, 3)
    assert loaded["gray"].shape == (10, 15)


def test_grayscale_applies_rgb_weights_to_bgr_data():
    image = np.array([[[255, 0, 0], [0, 0, 255], [250, 40, 40]]], dtype=np.uint8)
    np.testing.assert_array_equal(to_grayscale(image), [[76, 29, 103]])


def test_grayscale_maps_nan_to_black():
    image = np.full((1, 1, 3), np.nan)
    assert to_grayscale(image)[0, 0] == 0
