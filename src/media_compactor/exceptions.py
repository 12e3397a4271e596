"""
Custom exceptions for the media compactor library.

None of these reach a caller of ``CompressionOrchestrator.produce``; they are
raised internally and converted to the "use the original asset" fallback.
"""

class MediaCompactorError(Exception):
    """Base class for all media compactor specific errors."""
    pass

class ConfigurationError(MediaCompactorError):
    """Raised for invalid compression or application configuration."""
    pass

class DirectoryInitError(MediaCompactorError):
    """Raised when the working directory cannot be created or reached."""
    pass

class StrategyError(MediaCompactorError):
    """Raised by compression strategies for a failure they cannot map to ``False``."""
    pass
