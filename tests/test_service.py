"""Tests for the server number extraction service."""

import shutil
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import cv2
import pytest

from bfvocr.config import AppConfig, TesseractConfig
from bfvocr.exceptions import (
    ConfigurationError,
    InvalidInputError,
    PreprocessingError,
    ProcessingError,
    RecognitionError,
    ServerNumberNotFoundError,
)
from bfvocr.ocr.extractor import SystemTessdataProvider
from bfvocr.service import ServerNumberService, create_service, open_service

from conftest import SCREEN_HEIGHT, SCREEN_WIDTH, FakeEngine, FakeTessdataProvider

# Recognized text of a server browser without a usable server number
NOISY_SCREEN_TEXT = "\n".join([
    "SERVER BROWSER",
    "Conquest Rotterdam",
    "Players 64/64",
    "Region Europe",
    "Tickrate 60",
    "Map rotation Arras Hamada",
    "Ping 45 ms #4567 lowest in region",
])


def _service(preprocessor, temp_dir, text="#77665", error=None) -> ServerNumberService:
    return ServerNumberService(preprocessor, FakeEngine(text, error), temp_dir=temp_dir)


def _test_config() -> AppConfig:
    return AppConfig(tesseract=TesseractConfig(), temp_dir_prefix="bfvocr-test-")


# ---------------------------------------------------------------------------
# extract_server_number
# ---------------------------------------------------------------------------


class TestExtractServerNumber:
    def test_known_screenshot(self, preprocessor, temp_dir, screenshot):
        """A screenshot showing #77665 yields its digits."""
        service = _service(preprocessor, temp_dir, "#77665\n")
        assert service.extract_server_number(screenshot) == "77665"

    def test_engine_reads_prepared_image(self, preprocessor, temp_dir, screenshot):
        engine = FakeEngine("#77665")
        service = ServerNumberService(preprocessor, engine, temp_dir=temp_dir)

        service.extract_server_number(screenshot)

        assert len(engine.calls) == 1
        prepared_path = engine.calls[0]
        assert prepared_path.parent == temp_dir.path
        assert prepared_path.name.endswith("_processed.png")
        prepared = cv2.imread(str(prepared_path), cv2.IMREAD_GRAYSCALE)
        assert prepared.shape == (SCREEN_HEIGHT // 3 * 2, SCREEN_WIDTH // 2 * 2)

    def test_file_input(self, preprocessor, temp_dir, screenshot_file):
        service = _service(preprocessor, temp_dir)
        assert service.extract_server_number(screenshot_file) == "77665"
        assert service.extract_server_number(str(screenshot_file)) == "77665"

    def test_black_image_not_found(self, preprocessor, temp_dir, black_image):
        service = _service(preprocessor, temp_dir, "")
        with pytest.raises(ServerNumberNotFoundError, match="No valid server number found"):
            service.extract_server_number(black_image)

    def test_false_positives_rejected(self, preprocessor, temp_dir, screenshot):
        """Other '#ddd' values on the screen are not returned."""
        service = _service(preprocessor, temp_dir, NOISY_SCREEN_TEXT)
        with pytest.raises(ServerNumberNotFoundError) as exc:
            service.extract_server_number(screenshot)
        assert exc.value.raw_text == NOISY_SCREEN_TEXT

    def test_none_input(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        with pytest.raises(InvalidInputError, match="cannot be None"):
            service.extract_server_number(None)

    def test_missing_file(self, preprocessor, temp_dir, tmp_path):
        engine = FakeEngine("#77665")
        service = ServerNumberService(preprocessor, engine, temp_dir=temp_dir)

        with pytest.raises(InvalidInputError, match="Image file does not exist"):
            service.extract_server_number(tmp_path / "missing.png")
        assert engine.calls == []

    def test_undecodable_bytes(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        with pytest.raises(InvalidInputError):
            service.extract_server_number(b"garbage")

    def test_recognition_error_propagates(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir, error=RecognitionError("OCR processing error"))
        with pytest.raises(ProcessingError, match="OCR processing error"):
            service.extract_server_number(screenshot)

    def test_preprocessing_error_propagates(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir)
        with patch("bfvocr.ocr.preprocessor.cv2.imwrite", return_value=False):
            with pytest.raises(PreprocessingError):
                service.extract_server_number(screenshot)

    def test_unexpected_error_wrapped(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir, error=KeyError("boom"))

        with pytest.raises(ProcessingError, match="Failed to extract server number") as exc:
            service.extract_server_number(screenshot)

        assert isinstance(exc.value.__cause__, KeyError)

    def test_concurrent_extractions(self, preprocessor, temp_dir, screenshot):
        engine = FakeEngine("#77665")
        service = ServerNumberService(preprocessor, engine, temp_dir=temp_dir)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: service.extract_server_number(screenshot), range(12)))

        assert results == ["77665"] * 12
        assert len(set(engine.calls)) == 12


class TestTryExtractServerNumber:
    def test_found(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir)
        assert service.try_extract_server_number(screenshot) == "77665"

    def test_not_found(self, preprocessor, temp_dir, black_image):
        service = _service(preprocessor, temp_dir, "")
        assert service.try_extract_server_number(black_image) is None

    def test_none_input(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        assert service.try_extract_server_number(None) is None

    def test_missing_file(self, preprocessor, temp_dir, tmp_path):
        service = _service(preprocessor, temp_dir)
        assert service.try_extract_server_number(tmp_path / "missing.png") is None

    def test_engine_failure(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir, error=RuntimeError("crash"))
        assert service.try_extract_server_number(screenshot) is None


class TestExtractFromText:
    def test_valid_text(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        assert service.extract_from_text("#4321") == "4321"

    def test_invalid_text(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        with pytest.raises(ServerNumberNotFoundError):
            service.extract_from_text(NOISY_SCREEN_TEXT)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_engine_initialized_on_construction(self, preprocessor, temp_dir):
        engine = MagicMock()
        ServerNumberService(preprocessor, engine, temp_dir=temp_dir)
        engine.initialize.assert_called_once_with()

    def test_engine_without_initialize(self, preprocessor, temp_dir):
        """Engines only need a recognize() method."""

        class TextOnlyEngine:
            def recognize(self, image_path):
                return "#4321"

        service = ServerNumberService(preprocessor, TextOnlyEngine(), temp_dir=temp_dir)
        assert service.extract_from_text("#4321") == "4321"

    def test_setup_failure_is_fatal(self, preprocessor, temp_dir):
        engine = MagicMock()
        engine.initialize.side_effect = ConfigurationError("Missing OCR resource: tessdata/eng.traineddata")
        with pytest.raises(ConfigurationError, match="Missing OCR resource"):
            ServerNumberService(preprocessor, engine, temp_dir=temp_dir)

    def test_close_removes_temp_dir(self, preprocessor, temp_dir, screenshot):
        service = _service(preprocessor, temp_dir)
        service.extract_server_number(screenshot)
        root = temp_dir.path

        service.close()

        assert temp_dir.closed
        assert not root.exists()

    def test_close_is_idempotent(self, preprocessor, temp_dir):
        service = _service(preprocessor, temp_dir)
        service.close()
        service.shutdown()
        assert temp_dir.closed

    def test_context_manager(self, preprocessor, temp_dir):
        with _service(preprocessor, temp_dir) as service:
            assert service.extract_from_text("#4321") == "4321"
        assert temp_dir.closed

    def test_without_owned_temp_dir(self, preprocessor, temp_dir):
        service = ServerNumberService(preprocessor, FakeEngine("#4321"))
        service.close()
        assert not temp_dir.closed


class TestCreateService:
    def test_with_injected_engine(self, screenshot):
        engine = FakeEngine("#77665")
        service = create_service(_test_config(), engine=engine)
        try:
            assert service.engine is engine
            assert engine.initialize_calls == 1
            assert service.extract_server_number(screenshot) == "77665"
            root = service.temp_dir.path
        finally:
            service.close()
        assert not root.exists()

    def test_default_engine_uses_provider(self):
        provider = FakeTessdataProvider(b"trained")
        with open_service(_test_config(), tessdata_provider=provider) as service:
            tessdata_dir = service.engine.tessdata_dir
            assert service.engine.initialized
            assert (tessdata_dir / "eng.traineddata").read_bytes() == b"trained"
            assert tessdata_dir.parent == service.temp_dir.path
        assert not tessdata_dir.exists()

    def test_setup_failure_closes_temp_dir(self):
        provider = FakeTessdataProvider(language="deu")
        with patch("bfvocr.service.TempDirectory") as temp_dir_cls:
            with pytest.raises(ConfigurationError):
                create_service(_test_config(), tessdata_provider=provider)
        temp_dir_cls.return_value.close.assert_called_once_with()

    def test_open_service_closes_on_error(self):
        with pytest.raises(RuntimeError):
            with open_service(_test_config(), engine=FakeEngine()) as service:
                raise RuntimeError("caller failure")
        assert service.temp_dir.closed


# ---------------------------------------------------------------------------
# Real Tesseract
# ---------------------------------------------------------------------------


def _tesseract_available() -> bool:
    return (
        shutil.which("tesseract") is not None
        and SystemTessdataProvider.find_traineddata("eng") is not None
    )


@pytest.mark.tesseract
@pytest.mark.skipif(not _tesseract_available(), reason="Tesseract with English data not installed")
class TestWithTesseract:
    def test_black_image_not_found(self, black_image):
        provider = SystemTessdataProvider("eng")
        with open_service(_test_config(), tessdata_provider=provider) as service:
            with pytest.raises(ServerNumberNotFoundError):
                service.extract_server_number(black_image)
            assert service.try_extract_server_number(black_image) is None
