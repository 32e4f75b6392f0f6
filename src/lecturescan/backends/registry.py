"""Registry for available recognition engines."""

from .base import EngineInfo, RecognitionEngine


class EngineRegistry:
    """Registry for recognition engines, looked up by their id."""

    def __init__(self):
        self._engines: list[type[RecognitionEngine]] = []

    def register(self, engine_class: type[RecognitionEngine]) -> None:
        """Register a recognition engine.

        Args:
            engine_class: The engine class to register.
        """
        if engine_class not in self._engines:
            self._engines.append(engine_class)

    def get_engines(self) -> list[EngineInfo]:
        """Get info for all registered engines."""
        return [engine.get_info() for engine in self._engines]

    def get_engine_by_id(self, engine_id: str) -> type[RecognitionEngine] | None:
        """Get an engine class by its ID.

        Args:
            engine_id: The engine ID to look up.

        Returns:
            The engine class, or None if not found.
        """
        for engine in self._engines:
            if engine.get_info().id == engine_id:
                return engine
        return None

    def create(self, engine_id: str) -> RecognitionEngine:
        """Instantiate the engine registered under ``engine_id``.

        Raises:
            KeyError: If no engine has that id.
        """
        engine_class = self.get_engine_by_id(engine_id)
        if engine_class is None:
            known = ", ".join(info.id for info in self.get_engines())
            raise KeyError(f"Unknown recognition engine '{engine_id}' (known: {known})")
        return engine_class()


# Global registry instance
_registry = EngineRegistry()
_initialized = False


def get_registry() -> EngineRegistry:
    """Get the global engine registry."""
    global _initialized
    if not _initialized:
        _initialize_registry()
        _initialized = True
    return _registry


def _initialize_registry() -> None:
    """Initialize the registry with all available engines."""
    from .tesseract import TesseractEngine

    _registry.register(TesseractEngine)
