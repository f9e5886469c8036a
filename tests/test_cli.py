import cv2
import numpy as np

from main import main


def _write_image(tmp_path, name="room.png"):
    path = tmp_path / name
    image = np.full((30, 40, 3), 120, dtype=np.uint8)
    assert cv2.imwrite(str(path), image)
    return path


def _write_config(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "model:\n"
        f"  path: {tmp_path / 'missing.onnx'}\n"
        "segmentation:\n"
        "  model_input_size: 64\n"
    )
    return path


def test_point_mode_demo_writes_overlay_and_mask(tmp_path):
    image = _write_image(tmp_path)
    config = _write_config(tmp_path)
    output = tmp_path / "out.png"
    mask_output = tmp_path / "mask.png"

    code = main([
        str(image), "--tap", "0.5", "0.5",
        "-c", str(config),
        "-o", str(output),
        "--mask-output", str(mask_output),
        "--color", "#FF0000",
        "--log-level", "ERROR",
    ])

    assert code == 0
    recolored = cv2.imread(str(output))
    assert recolored.shape == (30, 40, 3)
    # Centre is inside the fallback ellipse, the corner is not
    assert recolored[15, 20].tolist() != [120, 120, 120]
    assert recolored[0, 0].tolist() == [120, 120, 120]

    mask = cv2.imread(str(mask_output), cv2.IMREAD_GRAYSCALE)
    assert mask.shape == (64, 64)
    assert mask[32, 32] == 255


def test_default_output_name(tmp_path):
    image = _write_image(tmp_path)

    code = main([str(image), "-c", str(_write_config(tmp_path)), "--log-level", "ERROR"])

    assert code == 0
    assert (tmp_path / "room_recolored.png").exists()


def test_all_mode_writes_masks_directory(tmp_path):
    image = _write_image(tmp_path)
    out_dir = tmp_path / "masks"

    code = main([
        str(image), "--all",
        "-c", str(_write_config(tmp_path)),
        "-o", str(out_dir),
        "--log-level", "ERROR",
    ])

    assert code == 0
    assert (out_dir / "room_mask_0.png").exists()
    assert (out_dir / "room_overlay.png").exists()


def test_missing_image_returns_error(tmp_path):
    code = main([str(tmp_path / "nope.png"), "-c", str(_write_config(tmp_path)), "--log-level", "ERROR"])

    assert code == 1


def test_missing_config_returns_error(tmp_path):
    image = _write_image(tmp_path)

    assert main([str(image), "-c", str(tmp_path / "nope.yaml"), "--log-level", "ERROR"]) == 1


def test_bad_color_returns_error(tmp_path):
    image = _write_image(tmp_path)

    code = main([str(image), "-c", str(_write_config(tmp_path)), "--color", "blue", "--log-level", "ERROR"])

    assert code == 1


def test_wrongly_typed_config_returns_error(tmp_path):
    image = _write_image(tmp_path)
    config = tmp_path / "bad.yaml"
    config.write_text("segmentation:\n  model_input_size: '640'\n")

    assert main([str(image), "-c", str(config), "--log-level", "ERROR"]) == 1
