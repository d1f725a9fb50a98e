"""
Gradient Renderer - Error Types

Every failure the package reports derives from GradientRendererError.
Unsupported pattern ids are not errors: they fall back to turbulence.
"""


class GradientRendererError(Exception):
    """Base exception for gradient renderer errors."""
    pass


class InvalidParameter(GradientRendererError, ValueError):
    """A parameter update was rejected at the setter boundary.

    The current parameter snapshot is left untouched when this is raised.
    """

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {field}: {value!r} ({reason})")


class RenderingUnavailable(GradientRendererError, RuntimeError):
    """The graphics context could not be created or the shader failed to build."""
    pass


class ExportFailure(GradientRendererError, RuntimeError):
    """Encoding or transcoding of an export artifact failed."""
    pass
