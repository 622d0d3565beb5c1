"""
Failure classes for the refresh pipeline.

``RefreshError`` subclasses abort a run and reach the caller; the views turn
them into the JSON error envelope using ``status_code``, ``error`` and
``details``. ``RecordWriteFailure`` and ``RenderFailure`` are recovered inside
the pipeline and only ever logged.
"""


class RefreshError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, details):
        super().__init__(details)
        self.details = details

    def as_response_body(self):
        return {"error": self.error, "details": self.details}


class ConfigurationError(RefreshError):
    pass


class UpstreamUnavailable(RefreshError):
    status_code = 503
    error = "External data source unavailable"

    def __init__(self, source, label=None):
        self.source = source
        self.label = label
        super().__init__(f"Could not fetch data from {label or source}")


class MetaWriteFailure(RefreshError):
    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Could not record refresh metadata: {cause}")


class RecordWriteFailure(Exception):
    def __init__(self, name, cause):
        self.name = name
        self.cause = cause
        super().__init__(f"Failed to upsert country {name!r}: {cause}")


class RenderFailure(Exception):
    pass
