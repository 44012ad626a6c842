import re
from typing import Any, Iterator
from .model import ConfigurationError, InvalidMarkError, SkipMismatchError
from .source import CharSource, source
from .utils.logging import debug, exception
from . import config

__doc__ = """
Line-oriented decoding of character streams. `\\n`, `\\r` and `\\r\\n` are
equally valid line terminators and are stripped from the returned lines.

- `LineReader` pulls lines from a markable `CharSource`, using a fixed
  capacity buffer and falling back to an overflow accumulator for longer
  lines.
- `LineParser` is the push counterpart, fed with chunks as they arrive.
"""

EOL = re.compile(r"[\r\n]")
CR: str = "\r"
LF: str = "\n"


class LineBuffer:
	"""The fixed-capacity scan buffer of a reader, reused from one line to the
	next."""

	__slots__ = ["chars", "capacity", "pos", "end"]

	def __init__(self, capacity: int) -> None:
		self.chars: list[str] = [""] * capacity
		self.capacity: int = capacity
		# Write position
		self.pos: int = 0
		# Index of the terminator, -1 until one is found
		self.end: int = -1

	def reset(self) -> "LineBuffer":
		self.pos = 0
		self.end = -1
		return self

	def fill(self, chunk: str) -> int:
		n = len(chunk)
		self.chars[self.pos : self.pos + n] = chunk
		return n

	def text(self, end: int) -> str:
		return "".join(self.chars[:end])


class LineReader:
	"""Reads logical lines out of a character source. The source must support
	mark/reset with a look-ahead of at least `capacity + 1` characters, so that
	a `\\r` ending a read can be checked for a following `\\n` and the extra
	character given back.

	Readers are meant for a single owner and can't be copied, as they hold the
	scan buffer exclusively."""

	__slots__ = ["source", "capacity", "buffer", "overflow"]

	def __init__(self, input: Any, capacity: int = config.MAX_LINE_LENGTH) -> None:
		if capacity <= 0:
			raise ConfigurationError(f"Line capacity must be positive, got {capacity}")
		self.source: CharSource | None = source(input)
		self.capacity: int = capacity
		# Allocated on the first `readLine()`
		self.buffer: LineBuffer | None = None
		# Overflow of a line interrupted by a source failure
		self.overflow: list[str] | None = None

	@property
	def closed(self) -> bool:
		return self.source is None

	def _source(self) -> CharSource:
		if self.source is None:
			raise ValueError("I/O operation on closed reader")
		return self.source

	def readLine(self) -> str | None:
		"""Returns the next line without its terminator, or `None` when the
		source is exhausted.

		When the source fails, the error is raised and the source is rewound
		to the start of the current fill, while the overflow is kept, so the
		next call resumes the same line."""
		src = self._source()
		if self.buffer is None:
			self.buffer = LineBuffer(self.capacity)
		buf = self.buffer.reset()
		capacity: int = buf.capacity
		# Number of characters making the line and its terminator, from the mark
		skip: int = -1
		overflow: list[str] | None = self.overflow
		self.overflow = None
		while buf.end < 0:
			src.mark(capacity + 1)
			try:
				while buf.pos < capacity and buf.end < 0:
					chunk = src.read(capacity - buf.pos)
					n = buf.fill(chunk)
					if not n:
						if buf.pos == 0 and overflow is None:
							src.unmark()
							return None
						# End of stream terminates the pending line
						buf.end = buf.pos
						skip = buf.pos
						break
					if match := EOL.search(chunk):
						i = match.start()
						buf.end = buf.pos + i
						skip = buf.end + 1
						if chunk[i] == CR:
							# The `\n` may only be available after this read
							lookahead = chunk[i + 1] if i + 1 < n else src.read(1)
							if lookahead == LF:
								skip += 1
					buf.pos += n
				if buf.end >= 0:
					# We rewind and consume exactly the line and its terminator,
					# giving back anything read past it.
					src.reset()
					skipped = src.skip(skip)
					if skipped != skip:
						raise SkipMismatchError(skip, skipped)
					src.unmark()
			except BaseException:
				self.overflow = overflow
				try:
					src.reset()
				except InvalidMarkError as e:
					exception(e, "Could not rewind source after failure")
				raise
			if buf.end < 0:
				if overflow is None:
					debug("Line exceeds buffer, accumulating", capacity=capacity)
					overflow = []
				overflow.append(buf.text(capacity))
				buf.pos = 0
		line = buf.text(buf.end)
		if overflow is None:
			return line
		else:
			overflow.append(line)
			return "".join(overflow)

	def readLines(self) -> list[str]:
		return list(self)

	def __iter__(self) -> Iterator[str]:
		return self

	def __next__(self) -> str:
		line = self.readLine()
		if line is None:
			raise StopIteration
		return line

	# NOTE: The following just delegate to the source

	def read(self, size: int = -1) -> str:
		return self._source().read(size)

	def skip(self, count: int) -> int:
		return self._source().skip(count)

	def ready(self) -> bool:
		return self._source().ready()

	def markSupported(self) -> bool:
		return self._source().markSupported()

	def mark(self, limit: int) -> None:
		self._source().mark(limit)

	def reset(self) -> None:
		self._source().reset()

	def close(self) -> None:
		if self.source is not None:
			src, self.source = self.source, None
			self.buffer = None
			self.overflow = None
			src.close()

	def __enter__(self) -> "LineReader":
		return self

	def __exit__(self, *args: Any) -> None:
		self.close()

	def __copy__(self) -> "LineReader":
		raise TypeError("LineReader can't be copied")

	def __deepcopy__(self, memo: dict[int, Any]) -> "LineReader":
		raise TypeError("LineReader can't be copied")


class LineParser:
	"""Push-based line parser, fed with chunks as they arrive. A `\\r` ending a
	chunk is a terminator on its own, and a `\\n` starting the next chunk is
	then dropped, so `\\r\\n` split across chunks is a single terminator."""

	__slots__ = ["buffer", "pending"]

	def __init__(self) -> None:
		self.buffer: list[str] = []
		# The previous chunk ended with `\r`
		self.pending: bool = False

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.pending = False
		return self

	def flush(self) -> str | None:
		"""Returns the trailing line, if any, once the input is over."""
		line = "".join(self.buffer) if self.buffer else None
		self.reset()
		return line

	def feed(self, chunk: str, start: int = 0) -> tuple[str | None, int]:
		"""Returns the matching line and how many characters were read in chunk
		from start. When line is None, then the whole chunk has been processed."""
		n = len(chunk)
		i = start
		if self.pending and i < n:
			self.pending = False
			if chunk[i] == LF:
				i += 1
		match = EOL.search(chunk, i)
		if not match:
			if i < n:
				self.buffer.append(chunk[i:])
			return None, n - start
		end = match.start()
		self.buffer.append(chunk[i:end])
		line = "".join(self.buffer)
		self.buffer.clear()
		if chunk[end] == CR and end + 1 == n:
			self.pending = True
			end += 1
		elif chunk[end] == CR and chunk[end + 1] == LF:
			end += 2
		else:
			end += 1
		return line, end - start

	def lines(self, chunk: str) -> list[str]:
		"""Returns all the lines completed by the given chunk."""
		res: list[str] = []
		offset: int = 0
		while True:
			line, read = self.feed(chunk, offset)
			if line is None:
				break
			res.append(line)
			offset += read
		return res


# EOF
