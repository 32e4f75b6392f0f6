"""Configuration management for lecturescan."""

import os
from pathlib import Path

import yaml

DEFAULT_LANGUAGE = "eng"
DEFAULT_OCR_ENGINE = "tesseract"
DEFAULT_CORRECTION_TIMEOUT = 5.0  # seconds


class Config:
    """Application configuration."""

    def __init__(
        self,
        language: str = DEFAULT_LANGUAGE,
        page_seg_mode: int | None = None,
        dpi: int | None = None,
        ocr_engine: str = DEFAULT_OCR_ENGINE,
        correction_enabled: bool = True,
        correction_timeout: float = DEFAULT_CORRECTION_TIMEOUT,
        log_level: str = "INFO",
    ):
        self.language = language
        self.page_seg_mode = page_seg_mode
        self.dpi = dpi
        self.ocr_engine = ocr_engine
        self.correction_enabled = correction_enabled
        self.correction_timeout = correction_timeout
        self.log_level = log_level

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a config from a parsed YAML mapping, applying defaults."""
        page_seg_mode = data.get("page_seg_mode")
        dpi = data.get("dpi")
        return cls(
            language=str(data.get("language") or DEFAULT_LANGUAGE),
            page_seg_mode=int(page_seg_mode) if page_seg_mode is not None else None,
            dpi=int(dpi) if dpi is not None else None,
            ocr_engine=data.get("ocr_engine") or DEFAULT_OCR_ENGINE,
            correction_enabled=bool(data.get("correction_enabled", True)),
            correction_timeout=float(data.get("correction_timeout", DEFAULT_CORRECTION_TIMEOUT)),
            log_level=str(data.get("log_level") or "INFO"),
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. If None, looks for config.yml
                        in common locations.

        Returns:
            Config instance with loaded values.
        """
        if config_path is None:
            search_paths = [
                Path("config.yml"),
                Path.home() / ".lecturescan" / "config.yml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = str(path)
                    break

        if config_path and os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls.from_dict(data)

        # No config file found - create default in home directory
        config = cls()
        config._create_default_config()
        return config

    def _create_default_config(self) -> None:
        """Create a default config file in the user's home directory."""
        config_dir = Path.home() / ".lecturescan"
        config_path = config_dir / "config.yml"

        if config_path.exists():
            return

        config_dir.mkdir(parents=True, exist_ok=True)

        default_config = """# Tesseract language(s), joined with '+' for multilingual pages
language: "eng"

# Page segmentation mode (Tesseract --psm) and resolution hint.
# Leave empty to use the engine defaults.
page_seg_mode:
dpi:

# Recognition engine id
ocr_engine: tesseract

# Run recognized text through the Jockaigne correction process
correction_enabled: true

# Seconds before a correction process is killed
correction_timeout: 5.0

log_level: INFO
"""
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(default_config)

    def to_dict(self) -> dict:
        """Return the configuration as a plain mapping."""
        return {
            "language": self.language,
            "page_seg_mode": self.page_seg_mode,
            "dpi": self.dpi,
            "ocr_engine": self.ocr_engine,
            "correction_enabled": self.correction_enabled,
            "correction_timeout": self.correction_timeout,
            "log_level": self.log_level,
        }
