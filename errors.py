"""Exceptions raised by the globe engine."""


class GlobeError(Exception):
    """Base class for globe failures."""


class DatasetError(GlobeError):
    """A vector dataset could not be fetched or parsed."""


class SurfaceAllocationError(GlobeError):
    """A render target could not be allocated."""


class GLBackendError(GlobeError):
    """Shader compilation or pipeline setup failed."""
