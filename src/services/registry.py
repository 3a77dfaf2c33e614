"""Registry resolving processing types to backend adapters."""

from typing import Optional

from src.models.job import PROCESSING_TYPES, BackendKind
from src.services.backend import BackendAdapter
from src.utils.clock import Clock
from src.utils.errors import ConfigurationError, UnsupportedProcessingType


class BackendRegistry:
    """Maps a processing type tag to its BackendKind and adapter instance.

    Tags come from ``PROCESSING_TYPES``, the same table job records are
    validated against.
    """

    def __init__(self, adapters: dict[BackendKind, BackendAdapter]) -> None:
        self.adapters = adapters

    def kind_for(self, processing_type: str) -> BackendKind:
        """Backend kind for a tag; raises UnsupportedProcessingType if unknown."""
        kind = PROCESSING_TYPES.get(processing_type)
        if kind is None:
            raise UnsupportedProcessingType(processing_type)
        return kind

    def resolve(self, processing_type: str) -> BackendAdapter:
        """
        Find the adapter that handles a processing type.

        Args:
            processing_type: Processing type tag

        Returns:
            The registered BackendAdapter

        Raises:
            UnsupportedProcessingType: If the tag is unknown
            ConfigurationError: If no adapter is registered for its backend
        """
        kind = self.kind_for(processing_type)
        adapter = self.adapters.get(kind)
        if adapter is None:
            raise ConfigurationError(f"No adapter registered for backend {kind.value}")
        return adapter


def create_backend_registry(clock: Optional[Clock] = None) -> BackendRegistry:
    """
    Create a BackendRegistry with every adapter configured from settings.

    Args:
        clock: Optional clock shared with the poller for download backoff

    Returns:
        BackendRegistry covering all known processing types
    """
    from src.services.huggingface import create_huggingface_adapter
    from src.services.kits import create_kits_adapter
    from src.services.musicgen import create_musicgen_adapter

    return BackendRegistry(
        adapters={
            BackendKind.KITS: create_kits_adapter(clock=clock),
            BackendKind.MUSICGEN: create_musicgen_adapter(clock=clock),
            BackendKind.HUGGINGFACE: create_huggingface_adapter(clock=clock),
        }
    )
