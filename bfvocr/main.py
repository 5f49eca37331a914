"""
BFV Server Number OCR - Streamlit UI

A small desktop front end for extracting Battlefield V server numbers
from screenshots.

Features:
- Screenshot upload or live screen capture
- Tesseract settings (language, modes, whitelist, DPI)
- Strict or best-effort extraction
- Prepared image and raw OCR text for troubleshooting
"""

import logging
from dataclasses import replace
from typing import Optional

import cv2
import streamlit as st

from bfvocr.capture import capture_screen
from bfvocr.config import AppConfig, get_config, validate_system_requirements
from bfvocr.exceptions import (
    BFVOcrError,
    ConfigurationError,
    InvalidInputError,
    ServerNumberNotFoundError,
)
from bfvocr.service import open_service

logger = logging.getLogger(__name__)


def init_session_state():
    """Initialize Streamlit session state."""
    if "config" not in st.session_state:
        st.session_state.config = get_config()

    if "image_content" not in st.session_state:
        st.session_state.image_content = None

    if "image_label" not in st.session_state:
        st.session_state.image_label = None

    if "system_validated" not in st.session_state:
        st.session_state.system_validated = False

    if "validation_results" not in st.session_state:
        st.session_state.validation_results = None

    if "last_run" not in st.session_state:
        st.session_state.last_run = None


def validate_system():
    """Validate system requirements on startup."""
    if not st.session_state.system_validated:
        with st.spinner("Validating system requirements..."):
            results = validate_system_requirements()
            st.session_state.validation_results = results
            st.session_state.system_validated = True

    return st.session_state.validation_results


def show_validation_status():
    """Display system validation status."""
    results = st.session_state.validation_results
    if not results:
        return

    if not results["tesseract"]["installed"]:
        st.error(
            "⚠️ **Tesseract not found!** OCR will not work.\n\n"
            "Install with:\n"
            "- macOS: `brew install tesseract`\n"
            "- Ubuntu: `sudo apt install tesseract-ocr`\n"
            "- Windows: Download from [GitHub](https://github.com/UB-Mannheim/tesseract/wiki)"
        )

    if not results["tessdata"]["available"]:
        st.error(f"⚠️ {results['tessdata']['message']}")

    if not results["python_deps"]["installed"]:
        st.warning(results["python_deps"]["message"])


def render_sidebar():
    """Render the settings sidebar."""
    config: AppConfig = st.session_state.config

    with st.sidebar:
        st.header("⚙️ Settings")

        st.subheader("Tesseract")

        st.text_input(
            "Language",
            value=config.tesseract.language,
            key="tess_language",
            help="Language data file name without .traineddata",
        )
        st.text_input(
            "Language data path (optional)",
            value=config.tesseract.data_path or "",
            key="tess_data_path",
            help="Directory or file holding the .traineddata file",
        )
        st.number_input(
            "Page segmentation mode (psm)",
            min_value=0,
            max_value=13,
            value=config.tesseract.psm,
            key="tess_psm",
        )
        st.number_input(
            "OCR engine mode (oem)",
            min_value=0,
            max_value=3,
            value=config.tesseract.oem,
            key="tess_oem",
        )
        st.text_input(
            "Character whitelist",
            value=config.tesseract.char_whitelist,
            key="tess_whitelist",
        )
        st.number_input(
            "DPI",
            min_value=70,
            max_value=1200,
            value=config.tesseract.dpi,
            key="tess_dpi",
        )

        st.divider()

        st.subheader("Extraction")

        st.radio(
            "Mode",
            options=["strict", "optional"],
            format_func=lambda x: {
                "strict": "Strict (report errors)",
                "optional": "Best effort (result or nothing)",
            }[x],
            key="extraction_mode",
        )

        st.divider()

        st.subheader("System Status")

        if st.button("🔄 Refresh Status"):
            st.session_state.system_validated = False
            st.rerun()

        results = st.session_state.validation_results or {}

        tesseract = results.get("tesseract", {})
        if tesseract.get("installed"):
            st.success(f"✅ Tesseract {tesseract.get('version', 'installed')}")
        else:
            st.error("❌ Tesseract not found")

        tessdata = results.get("tessdata", {})
        if tessdata.get("available"):
            st.success(f"✅ Language data: {tessdata.get('source')}")
        else:
            st.error("❌ Language data not found")


def current_config() -> AppConfig:
    """Build a configuration from the sidebar widgets."""
    config: AppConfig = st.session_state.config
    tesseract = replace(
        config.tesseract,
        language=st.session_state.get("tess_language") or config.tesseract.language,
        data_path=st.session_state.get("tess_data_path") or None,
        psm=int(st.session_state.get("tess_psm", config.tesseract.psm)),
        oem=int(st.session_state.get("tess_oem", config.tesseract.oem)),
        char_whitelist=st.session_state.get("tess_whitelist", config.tesseract.char_whitelist),
        dpi=int(st.session_state.get("tess_dpi", config.tesseract.dpi)),
    )
    return replace(config, tesseract=tesseract)


def render_input_section():
    """Render the screenshot upload and capture section."""
    st.header("🖼️ Screenshot")

    col1, col2 = st.columns([2, 1])

    with col1:
        uploaded_file = st.file_uploader(
            "Choose a screenshot",
            type=["png", "jpg", "jpeg", "bmp", "tiff", "tif", "webp"],
            help="A Battlefield V server browser screenshot",
        )
        if uploaded_file:
            st.session_state.image_content = uploaded_file.read()
            st.session_state.image_label = uploaded_file.name

    with col2:
        if st.button("📸 Capture Screen", use_container_width=True):
            try:
                frame = capture_screen()
            except RuntimeError as e:
                st.error(f"Screen capture failed: {e}")
            else:
                ok, encoded = cv2.imencode(".png", frame)
                if ok:
                    st.session_state.image_content = encoded.tobytes()
                    st.session_state.image_label = "screen capture"

    if st.session_state.image_content:
        st.image(
            st.session_state.image_content,
            caption=st.session_state.image_label,
            use_container_width=True,
        )
        return True

    return False


def perform_extraction() -> Optional[dict]:
    """Run the extraction pipeline step by step on the current image."""
    image = st.session_state.image_content
    mode = st.session_state.get("extraction_mode", "strict")
    run = {"mode": mode, "prepared": None, "ocr_text": None, "server_number": None}

    try:
        with open_service(current_config()) as service:
            prepared = service.preprocessor.preprocess(image)
            run["prepared"] = cv2.imread(str(prepared.path), cv2.IMREAD_GRAYSCALE)
            run["ocr_text"] = service.engine.recognize(prepared.path)
            run["server_number"] = service.extract_from_text(run["ocr_text"])
    except BFVOcrError as e:
        if mode == "optional":
            logger.debug(f"Best-effort extraction found nothing: {e}")
            return run
        if isinstance(e, ConfigurationError):
            st.error(f"OCR setup failed: {e}")
            return None
        if isinstance(e, InvalidInputError):
            st.error(f"Invalid image: {e}")
            return None
        if isinstance(e, ServerNumberNotFoundError):
            st.warning("No valid server number found in this screenshot")
        else:
            st.error(f"Extraction failed: {e}")
            logger.exception("Server number extraction failed")

    return run


def render_extraction_section():
    """Render the extraction workflow section."""
    st.header("🔍 Extract Server Number")

    if st.button("Run Extraction", type="primary", use_container_width=True):
        with st.spinner("Extracting server number..."):
            st.session_state.last_run = perform_extraction()

    run = st.session_state.last_run
    if not run:
        return

    if run["server_number"]:
        st.success(f"Server number: #{run['server_number']}")
        st.code(run["server_number"], language=None)
    elif run["mode"] == "optional":
        st.info("No server number could be found in the screenshot.")

    if run["prepared"] is not None:
        with st.expander("🧪 Prepared Image", expanded=False):
            st.image(run["prepared"], clamp=True, use_container_width=True)

    if run["ocr_text"] is not None:
        with st.expander("📄 OCR Text", expanded=False):
            st.text_area(
                "Recognized Text",
                value=run["ocr_text"],
                height=200,
                disabled=True,
            )


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="BFV Server Number OCR",
        page_icon="🎮",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    init_session_state()

    logging.basicConfig(
        level=st.session_state.config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    st.title("🎮 BFV Server Number OCR")
    st.markdown(
        "Read the server number from a Battlefield V server browser screenshot."
    )

    validate_system()
    show_validation_status()

    render_sidebar()

    st.divider()

    if render_input_section():
        st.divider()
        render_extraction_section()


if __name__ == "__main__":
    main()
