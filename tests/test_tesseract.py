"""Tests for the Tesseract engine and image conversion."""

import asyncio
import io
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from lecturescan.backends.base import EngineMode, OutputConfig
from lecturescan.backends.image import bgra_to_rgb, to_pil_image
from lecturescan.backends.registry import EngineRegistry, get_registry
from lecturescan.backends.tesseract import (
    TesseractEngine,
    TesseractWorker,
    _text_from_data,
    build_config,
)

SAMPLE_DATA = {
    "text": ["", "Lecture", "one", "", "Notes", "here", " "],
    "conf": [-1, 91.5, 88.5, -1, 70, 80, -1],
    "block_num": [1, 1, 1, 2, 2, 2, 2],
    "par_num": [1, 1, 1, 1, 1, 1, 1],
    "line_num": [1, 1, 1, 1, 1, 2, 2],
    "left": [0, 10, 80, 0, 10, 10, 0],
    "top": [0, 5, 5, 0, 40, 60, 0],
    "width": [0, 60, 30, 0, 50, 40, 0],
    "height": [0, 20, 20, 0, 18, 18, 0],
}


class TestBuildConfig:
    """Tests for parameter to command-line translation."""

    def test_dedicated_flags_and_variables(self):
        config = build_config(EngineMode.LSTM_ONLY, {
            "tessedit_pageseg_mode": "6",
            "user_defined_dpi": "300",
            "preserve_interword_spaces": "1",
        })

        assert config == "--oem 1 --psm 6 --dpi 300 -c preserve_interword_spaces=1"

    def test_mode_only(self):
        assert build_config(EngineMode.DEFAULT, {}) == "--oem 3"


class TestTextFromData:
    def test_lines_and_blocks(self):
        assert _text_from_data(SAMPLE_DATA) == "Lecture one\n\nNotes\nhere"


class TestTesseractEngine:
    """Tests for worker creation with pytesseract patched out."""

    def test_create_worker(self):
        with (
            patch("lecturescan.backends.tesseract.pytesseract.get_tesseract_version", return_value="5.3.0"),
            patch("lecturescan.backends.tesseract.pytesseract.get_languages", return_value=["eng", "deu", "osd"]),
        ):
            worker = asyncio.run(TesseractEngine().create_worker("eng+deu"))

        assert isinstance(worker, TesseractWorker)
        assert worker.language == "eng+deu"

    def test_missing_language_pack(self):
        with (
            patch("lecturescan.backends.tesseract.pytesseract.get_tesseract_version", return_value="5.3.0"),
            patch("lecturescan.backends.tesseract.pytesseract.get_languages", return_value=["eng"]),
        ):
            with pytest.raises(RuntimeError, match="jpn"):
                asyncio.run(TesseractEngine().create_worker("eng+jpn"))

    def test_tesseract_not_installed(self):
        import pytesseract

        with patch(
            "lecturescan.backends.tesseract.pytesseract.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(RuntimeError, match="not installed"):
                asyncio.run(TesseractEngine().create_worker("eng"))

    def test_registered_by_id(self):
        assert get_registry().get_engine_by_id("tesseract") is TesseractEngine

    def test_unknown_engine(self):
        with pytest.raises(KeyError, match="nope"):
            EngineRegistry().create("nope")


class TestTesseractWorker:
    """Tests for recognition with pytesseract patched out."""

    def test_recognize_uses_parameters(self):
        worker = TesseractWorker("eng")
        image = np.zeros((20, 40, 4), dtype=np.uint8)

        async def scenario():
            await worker.set_parameters({"tessedit_pageseg_mode": "6"})
            return await worker.recognize(image, {"user_defined_dpi": 150}, OutputConfig())

        with patch(
            "lecturescan.backends.tesseract.pytesseract.image_to_data", return_value=SAMPLE_DATA
        ) as image_to_data:
            result = asyncio.run(scenario())

        _, kwargs = image_to_data.call_args
        assert kwargs["lang"] == "eng"
        assert kwargs["config"] == "--oem 1 --psm 6 --dpi 150"
        assert result.text == "Lecture one\n\nNotes\nhere"
        assert result.language == "eng"
        assert [word.text for word in result.words] == ["Lecture", "one", "Notes", "here"]
        assert result.confidence == pytest.approx(82.5)
        assert result.words[0].bbox == {"x": 10, "y": 5, "width": 60, "height": 20}
        assert worker.parameters == {"tessedit_pageseg_mode": "6"}

    def test_empty_page_has_no_confidence(self):
        worker = TesseractWorker("eng")
        empty = {key: [] for key in SAMPLE_DATA}

        with patch("lecturescan.backends.tesseract.pytesseract.image_to_data", return_value=empty):
            result = asyncio.run(worker.recognize(Image.new("RGB", (10, 10))))

        assert result.text == ""
        assert result.confidence is None

    def test_terminated_worker_refuses_work(self):
        worker = TesseractWorker("eng")

        async def scenario():
            await worker.terminate()
            await worker.set_parameters({"tessedit_pageseg_mode": "6"})

        with pytest.raises(RuntimeError, match="terminated"):
            asyncio.run(scenario())


class TestImageConversion:
    """Tests for image source conversion."""

    def test_bgra_to_rgb(self):
        frame = np.zeros((1, 1, 4), dtype=np.uint8)
        frame[0, 0] = [10, 20, 30, 255]

        assert bgra_to_rgb(frame)[0, 0].tolist() == [30, 20, 10]

    def test_bgra_frame(self):
        frame = np.zeros((2, 3, 4), dtype=np.uint8)
        frame[..., 0] = 255  # blue

        image = to_pil_image(frame)

        assert image.size == (3, 2)
        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == (0, 0, 255)

    def test_grayscale_array(self):
        image = to_pil_image(np.full((4, 4), 128, dtype=np.uint8))

        assert image.mode == "L"

    def test_encoded_bytes_and_path(self, tmp_path):
        buffer = io.BytesIO()
        Image.new("RGB", (5, 7), "white").save(buffer, format="PNG")
        path = tmp_path / "page.png"
        path.write_bytes(buffer.getvalue())

        assert to_pil_image(buffer.getvalue()).size == (5, 7)
        assert to_pil_image(str(path)).size == (5, 7)
        assert to_pil_image(path).size == (5, 7)

    def test_pil_image_passthrough(self):
        image = Image.new("RGB", (2, 2))

        assert to_pil_image(image) is image

    def test_unsupported_inputs(self):
        with pytest.raises(TypeError):
            to_pil_image(42)
        with pytest.raises(TypeError):
            to_pil_image(np.zeros((2, 2, 2), dtype=np.uint8))
