#!/usr/bin/env python3
"""
Setup validation script for BFV Server Number OCR.

Checks all system requirements and provides guidance for missing components.
"""

import shutil
import subprocess
import sys
from pathlib import Path

# Allow running from a source checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def print_header(text: str):
    """Print a formatted header."""
    print(f"\n{'=' * 60}")
    print(f"  {text}")
    print('=' * 60)


def print_check(name: str, status: bool, message: str = ""):
    """Print a check result."""
    icon = "✅" if status else "❌"
    print(f"{icon} {name}: {message}")


def print_warning(message: str):
    """Print a warning message."""
    print(f"⚠️  {message}")


def print_info(message: str):
    """Print an info message."""
    print(f"ℹ️  {message}")


def check_python_version():
    """Check Python version."""
    print_header("Python Version")

    version = sys.version_info
    required = (3, 9)

    is_ok = version >= required
    print_check(
        "Python",
        is_ok,
        f"{version.major}.{version.minor}.{version.micro} "
        f"({'OK' if is_ok else f'requires {required[0]}.{required[1]}+'})"
    )

    return is_ok


def check_tesseract():
    """Check Tesseract installation."""
    print_header("Tesseract OCR")

    tesseract_cmd = shutil.which("tesseract")

    if tesseract_cmd:
        try:
            result = subprocess.run(
                [tesseract_cmd, "--version"],
                capture_output=True,
                text=True,
            )
            version_line = result.stdout.split('\n')[0] if result.stdout else "unknown"
            print_check("Tesseract", True, f"Found at {tesseract_cmd}")
            print_info(f"Version: {version_line}")
            return True
        except OSError as e:
            print_check("Tesseract", False, f"Error: {e}")
            return False
    else:
        print_check("Tesseract", False, "Not found in PATH")
        print_info("Install with:")
        print_info("  macOS: brew install tesseract")
        print_info("  Ubuntu: sudo apt install tesseract-ocr")
        print_info("  Windows: Download from https://github.com/UB-Mannheim/tesseract/wiki")
        return False


def check_tessdata():
    """Check that language data for the configured language can be found."""
    print_header("Tesseract Language Data")

    try:
        from bfvocr.config import get_config
        from bfvocr.exceptions import ConfigurationError
        from bfvocr.ocr.extractor import default_tessdata_provider
    except ImportError as e:
        print_warning(f"Cannot import bfvocr ({e.name} missing) - skipping language data check")
        return False

    config = get_config().tesseract
    try:
        provider = default_tessdata_provider(config)
    except ConfigurationError as e:
        print_check(f"{config.language} language data", False, str(e))
        print_info("Set BFVOCR_TESSDATA_PATH to a directory holding the .traineddata file")
        return False

    print_check(f"{config.language} language data", True, provider.describe())
    return True


def check_python_packages():
    """Check required Python packages."""
    print_header("Python Packages")

    required_packages = [
        "streamlit",
        "pytesseract",
        "opencv-python",
        "PIL",  # Pillow
        "numpy",
        "mss",
        "dotenv",
    ]

    # Map import names to package names
    import_map = {
        "PIL": "Pillow",
        "dotenv": "python-dotenv",
    }

    all_ok = True

    for package in required_packages:
        import_name = package
        display_name = import_map.get(package, package)

        if package == "opencv-python":
            import_name = "cv2"

        try:
            __import__(import_name)
            print_check(display_name, True, "Installed")
        except ImportError:
            print_check(display_name, False, "Not installed")
            all_ok = False

    if not all_ok:
        print_info("\nInstall missing packages with:")
        print_info("  pip install -e .")

    return all_ok


def check_env_file():
    """Check for .env file."""
    print_header("Environment Configuration")

    env_file = Path(".env")

    if env_file.exists():
        print_check(".env file", True, "Found")
        return True

    print_info(".env file not found - using defaults and process environment")
    print_info("Supported settings: BFVOCR_TESSDATA_PATH, BFVOCR_LANGUAGE, BFVOCR_PSM,")
    print_info("  BFVOCR_OEM, BFVOCR_CHAR_WHITELIST, BFVOCR_DPI, BFVOCR_LOG_LEVEL")
    return True


def main():
    """Run all checks."""
    print("\n" + "=" * 60)
    print("  BFV Server Number OCR - Setup Validation")
    print("=" * 60)

    results = {}

    results["python"] = check_python_version()
    results["tesseract"] = check_tesseract()
    results["packages"] = check_python_packages()
    results["tessdata"] = check_tessdata()
    results["env"] = check_env_file()

    print_header("Summary")

    ready = all(results.values())

    if ready:
        print("✅ System is ready to run the application!")
        print("\nStart with:")
        print("  streamlit run bfvocr/main.py")
        print("  bfvocr file <screenshot.png>")
    else:
        print("❌ Some requirements are missing:")

        if not results["python"]:
            print("  - Python 3.9+ required")
        if not results["tesseract"]:
            print("  - Tesseract OCR required for text extraction")
        if not results["tessdata"]:
            print("  - Tesseract language data required")
        if not results["packages"]:
            print("  - Some Python packages missing (run: pip install -e .)")

    print()
    return 0 if ready else 1


if __name__ == "__main__":
    sys.exit(main())
