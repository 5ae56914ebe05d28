"""Error taxonomy. None of these are fatal; each is caught where it is raised."""


class DuckliError(Exception):
    """Base class for all DuckLI errors."""


class ConfigLoadFailure(DuckliError):
    """The saved config exists but could not be read or parsed."""


class ConfigSaveFailure(DuckliError):
    """The config could not be written. The in-memory config stays valid."""


class ModelFetchFailed(DuckliError):
    """The model listing call failed (transport, status or body)."""


class CompletionRequestFailure(DuckliError):
    """A chat completion call failed."""

    def __init__(self, kind: str, detail: str):
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail
