"""Error taxonomy for the export pipeline.

Configuration errors fail fast and are never retried.  Precondition errors
abort a run before any extraction and arm an hourly retry.  Data-source and
per-entity failures are handled where they occur (see the extractor and
orchestrator modules).
"""


class ExportError(Exception):
    """Base class for export pipeline errors."""


class ConfigurationError(ExportError):
    """Raised for missing credentials, invalid field mappings or no enabled export types."""


class PreconditionError(ExportError):
    """Raised when the upstream source or its export definitions are unavailable."""
