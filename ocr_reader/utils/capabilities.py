import logging

logger = logging.getLogger("ocr-reader.capabilities")


class CapabilityProvider:
    """
    Central registry for optional system capabilities.
    """

    _TESSERACT_AVAILABLE: bool = False
    _TESSERACT_VERSION: str = "not-installed"
    _INITIALIZED: bool = False

    @classmethod
    def initialize(cls):
        """Detects the Tesseract binary at runtime."""
        if cls._INITIALIZED:
            return

        try:
            import pytesseract  # type: ignore

            cls._TESSERACT_VERSION = str(pytesseract.get_tesseract_version())
            cls._TESSERACT_AVAILABLE = True
            logger.info("Tesseract detected (version: %s)", cls._TESSERACT_VERSION)
        except ImportError:
            cls._TESSERACT_AVAILABLE = False
            cls._TESSERACT_VERSION = "not-installed"
            logger.info("pytesseract not installed")
        except Exception as e:
            cls._TESSERACT_AVAILABLE = False
            cls._TESSERACT_VERSION = f"error: {e!s}"
            logger.warning("Error detecting Tesseract: %s", e)

        cls._INITIALIZED = True

    @classmethod
    def reset(cls):
        cls._INITIALIZED = False

    @classmethod
    def is_tesseract_available(cls) -> bool:
        cls.initialize()
        return cls._TESSERACT_AVAILABLE

    @classmethod
    def get_tesseract_version(cls) -> str:
        cls.initialize()
        return cls._TESSERACT_VERSION
