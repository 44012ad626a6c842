from typing import Protocol


class CharIOError(Exception):
	"""Base class for the errors raised by chario."""


class ConfigurationError(CharIOError, ValueError):
	"""A programming or configuration mistake, raised as soon as it is
	detected rather than silently losing data."""


class MarkLimitError(ConfigurationError):
	def __init__(self, limit: int, supported: int) -> None:
		super().__init__(
			f"Mark look-ahead of {limit} characters exceeds the supported {supported}"
		)
		self.limit: int = limit
		self.supported: int = supported


class InvalidMarkError(CharIOError, OSError):
	"""Raised by `reset()` when there is no mark to rewind to."""


class SkipMismatchError(CharIOError, OSError):
	def __init__(self, expected: int, skipped: int) -> None:
		super().__init__(f"Expected to skip {expected} characters, skipped {skipped}")
		self.expected: int = expected
		self.skipped: int = skipped


class EncodingConfigurationError(ConfigurationError, LookupError):
	def __init__(self, encoding: str) -> None:
		super().__init__(f"Unsupported target encoding: {encoding!r}")
		self.encoding: str = encoding


class CharSink(Protocol):
	"""Anything accepting text, like a text file or `io.StringIO`."""

	def write(self, text: str, /) -> object: ...


# EOF
