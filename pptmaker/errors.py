# Exceptions shared by the conversion, publishing and download layers


class PptmakerError(Exception):
    """Base class for errors reported back to the tool caller."""


class ConfigError(PptmakerError):
    """An environment setting could not be parsed."""


class ConversionFailure(PptmakerError):
    """Marp could not be started, exited non-zero, or produced no output."""


class PublishFailure(PptmakerError):
    """The generated file could not be copied into the artifact store."""


class BindFailure(PptmakerError):
    """The download server could not bind its host/port."""
