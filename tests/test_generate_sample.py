import numpy as np

from generate_sample import add_haze, generate_hazy_scene, render_scene
from haze_estimation import defog
from preprocessing import to_grayscale


def test_scene_shape_and_type():
    image = generate_hazy_scene(64, 48, 0.4)
    assert image.shape == (48, 64, 3)
    assert image.dtype == np.uint8


def test_scene_is_deterministic():
    np.testing.assert_array_equal(generate_hazy_scene(64, 48, 0.4),
                                  generate_hazy_scene(64, 48, 0.4))


def test_more_haze_brightens_and_flattens_the_scene():
    clear = generate_hazy_scene(64, 48, 0.1).astype(float)
    heavy = generate_hazy_scene(64, 48, 0.8).astype(float)
    assert heavy.mean() > clear.mean()
    assert heavy.std() < clear.std()


def test_no_haze_keeps_the_scene():
    scene = render_scene(32, 24)
    np.testing.assert_array_equal(add_haze(scene, 0.0),
                                  np.clip(scene, 0, 255).astype(np.uint8))


def test_defog_on_generated_scene():
    image = generate_hazy_scene(64, 48, 0.6)
    result = defog(image, to_grayscale(image))

    assert 0 < result["atmospheric_light"] <= 255
    assert result["output"].shape == image.shape
