"""Exceptions raised by the PID cuts configuration and setup."""


class PIDCutsError(Exception):
    """Base class for the PID cuts errors."""

    pass


class ConfigurationError(PIDCutsError):
    """Trigger if a configuration request cannot be honoured."""

    pass


class InvalidPresetError(ConfigurationError):
    """Trigger if an unsupported preset code is requested."""

    def __init__(self, table: str, code: int):
        self.table = table
        self.code = code
        super().__init__(f"{table} code {code} not supported")


class InvalidParameterError(ConfigurationError):
    """Trigger if the cut parameter ID is out of the supported range."""

    def __init__(self, param_id):
        self.param_id = param_id
        super().__init__(f"Cut param id {param_id} out of supported range")


class FatalSetupError(PIDCutsError):
    """Unrecoverable setup condition, e.g. missing detector response while detector cuts are enabled."""

    pass
