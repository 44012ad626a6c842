import codecs
import sys
from abc import ABC, abstractmethod
from typing import Any, Protocol
from mypy_extensions import mypyc_attr
from .model import (
	ConfigurationError,
	EncodingConfigurationError,
	InvalidMarkError,
	MarkLimitError,
)
from . import config

__doc__ = """
Character sources consumed by the line reader. A source is a sequential
stream of characters that can be marked and rewound within a bounded
look-ahead, which is what the reader needs to tell a lone `\\r` from a
`\\r\\n` pair when the pair straddles two reads.
"""


class Readable(Protocol):
	def read(self, size: int = -1, /) -> str | bytes: ...


@mypyc_attr(allow_interpreted_subclasses=True)
class CharSource(ABC):
	"""The capability interface of a character source."""

	@abstractmethod
	def read(self, size: int = -1) -> str:
		"""Reads up to `size` characters (all remaining ones when negative),
		returning an empty string at end of stream. Short reads are allowed."""

	@abstractmethod
	def mark(self, limit: int) -> None:
		"""Remembers the current position, the mark stays valid for at
		least `limit` further characters."""

	@abstractmethod
	def reset(self) -> None:
		"""Rewinds to the most recent mark."""

	def unmark(self) -> None:
		"""Drops the current mark, if any."""

	def skip(self, count: int) -> int:
		skipped: int = 0
		while skipped < count:
			chunk = self.read(count - skipped)
			if not chunk:
				break
			skipped += len(chunk)
		return skipped

	def ready(self) -> bool:
		return False

	def markSupported(self) -> bool:
		return True

	def close(self) -> None:
		pass


class BufferedSource(CharSource):
	"""Implements mark/reset on top of a replay buffer. Characters are only
	retained while a mark is active, and at most `limit` of them past the
	mark position."""

	__slots__ = ["buffer", "offset", "marked", "limit", "markLimit", "eos"]

	def __init__(self, buffer: str = "", markLimit: int = sys.maxsize) -> None:
		if markLimit < 0:
			raise ConfigurationError(f"Mark limit must be positive, got {markLimit}")
		self.buffer: str = buffer
		self.offset: int = 0
		self.marked: int = -1
		self.limit: int = 0
		self.markLimit: int = markLimit
		self.eos: bool = False

	@abstractmethod
	def fill(self) -> str:
		"""Returns the next characters of the underlying data, or an empty
		string at end of stream."""

	def more(self) -> bool:
		"""Loads the next chunk into the buffer, dropping whatever is not
		needed for replay anymore."""
		if self.eos:
			return False
		chunk = self.fill()
		if not chunk:
			self.eos = True
			return False
		if self.marked < 0:
			self.buffer = chunk
			self.offset = 0
		else:
			self.buffer = self.buffer[self.marked :] + chunk
			self.offset -= self.marked
			self.marked = 0
		return True

	def read(self, size: int = -1) -> str:
		if size == 0:
			return ""
		elif size < 0:
			res: list[str] = []
			while chunk := self.read(sys.maxsize):
				res.append(chunk)
			return "".join(res)
		if self.offset >= len(self.buffer) and not self.more():
			return ""
		start = self.offset
		end = min(len(self.buffer), start + size)
		self.offset = end
		if self.marked >= 0 and end - self.marked > self.limit:
			# We've read past the look-ahead, the mark is gone
			self.marked = -1
		return self.buffer[start:end]

	def mark(self, limit: int) -> None:
		if limit < 0:
			raise ConfigurationError(f"Mark limit must be positive, got {limit}")
		elif limit > self.markLimit:
			raise MarkLimitError(limit, self.markLimit)
		self.marked = self.offset
		self.limit = limit

	def reset(self) -> None:
		if self.marked < 0:
			raise InvalidMarkError("Source has no valid mark to reset to")
		self.offset = self.marked

	def unmark(self) -> None:
		self.marked = -1

	def ready(self) -> bool:
		return self.offset < len(self.buffer)

	def close(self) -> None:
		self.buffer = ""
		self.offset = 0
		self.marked = -1
		self.eos = True


class StringSource(BufferedSource):
	"""A source over an in-memory string."""

	def __init__(self, text: str, markLimit: int | None = None) -> None:
		super().__init__(text, sys.maxsize if markLimit is None else markLimit)

	def fill(self) -> str:
		return ""


class StreamSource(BufferedSource):
	"""Adapts anything with a `read(size)` method, like text files,
	`io.StringIO` or socket files. Streams returning bytes are decoded
	incrementally, so characters split between two chunks come out whole."""

	__slots__ = ["stream", "encoding", "errors", "decoder", "chunkSize"]

	def __init__(
		self,
		stream: Readable,
		*,
		encoding: str | None = None,
		errors: str = "strict",
		markLimit: int = config.MARK_LIMIT,
		chunkSize: int = config.CHUNK_SIZE,
	) -> None:
		super().__init__("", markLimit)
		if chunkSize <= 0:
			raise ConfigurationError(f"Chunk size must be positive, got {chunkSize}")
		self.stream: Readable = stream
		self.encoding: str = encoding or "utf8"
		self.errors: str = errors
		self.decoder: codecs.IncrementalDecoder | None = None
		self.chunkSize: int = chunkSize

	def fill(self) -> str:
		while True:
			data = self.stream.read(self.chunkSize)
			if isinstance(data, str):
				return data
			if self.decoder is None:
				try:
					factory = codecs.getincrementaldecoder(self.encoding)
				except LookupError as e:
					raise EncodingConfigurationError(self.encoding) from e
				self.decoder = factory(self.errors)
			text = self.decoder.decode(data, final=not data)
			# An incomplete multi-byte sequence decodes to nothing yet
			if text or not data:
				return text

	def close(self) -> None:
		super().close()
		if close := getattr(self.stream, "close", None):
			close()


def source(value: Any) -> CharSource:
	"""Coerces the given value to a character source."""
	if isinstance(value, CharSource):
		return value
	elif isinstance(value, str):
		return StringSource(value)
	elif hasattr(value, "read"):
		return StreamSource(value)
	else:
		raise ValueError(f"Expected a source, a string or a stream, got: {value!r}")


# EOF
