"""Error kinds raised by the mangling core."""


class MangleError(Exception):
    """Base class for wordmangle errors."""


class ConfigurationError(MangleError):
    """The corpus cannot back a mangler (no single-character words)."""


class MarkupError(MangleError):
    """The HTML tokenizer failed on input it could not recover from."""
