import codecs
import string
from abc import ABC, abstractmethod
from io import StringIO
from typing import Iterable, Iterator
from mypy_extensions import mypyc_attr
from .model import CharSink, ConfigurationError, EncodingConfigurationError
from .utils.logging import LogLevel, debug, logged, warning
from . import config

__doc__ = """
Percent-encoding of text for use in URLs. Characters in the encoder's safe
set are output as-is, every other character is transcoded to bytes (UTF-8
by default) and each byte is output as a `%XX` triplet. Unlike
`urllib.parse.quote_plus`, spaces are never turned into `+`.
"""

SAFE_CHARACTERS: str = string.ascii_letters + string.digits + "$-_.!*'(),"

HEX_LOWER: tuple[str, ...] = tuple(f"%{_:02x}" for _ in range(256))
HEX_UPPER: tuple[str, ...] = tuple(f"%{_:02X}" for _ in range(256))

HIGH_SURROGATE = range(0xD800, 0xDC00)
LOW_SURROGATE = range(0xDC00, 0xE000)


def codepoint(char: str | int) -> int:
	if isinstance(char, int):
		return char
	elif len(char) != 1:
		raise ConfigurationError(f"Expected a single character, got: {char!r}")
	else:
		return ord(char)


def surrogates(high: int, low: int) -> str:
	"""Combines a UTF-16 surrogate pair into the character it stands for."""
	return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))


class SafeCharacters:
	"""A bitmap of the ASCII characters that don't need escaping. Sets only
	ever grow, and each encoder owns its own."""

	__slots__ = ["mask"]

	@staticmethod
	def Mask(chars: Iterable[str | int]) -> int:
		mask: int = 0
		for c in chars:
			cp = codepoint(c)
			if not 0 <= cp < 128:
				raise ConfigurationError(
					f"Safe characters must be ASCII, got: {chr(cp)!r} (U+{cp:04X})"
				)
			mask |= 1 << cp
		return mask

	def __init__(self, mask: int | None = None) -> None:
		self.mask: int = DEFAULT_SAFE_CHARACTERS if mask is None else mask

	def add(self, char: str | int) -> "SafeCharacters":
		self.mask |= SafeCharacters.Mask((char,))
		return self

	def copy(self) -> "SafeCharacters":
		return SafeCharacters(self.mask)

	def __contains__(self, char: str | int) -> bool:
		cp = codepoint(char)
		return 0 <= cp < 128 and bool(self.mask >> cp & 1)

	def __iter__(self) -> Iterator[str]:
		return (chr(_) for _ in range(128) if self.mask >> _ & 1)

	def __len__(self) -> int:
		return bin(self.mask).count("1")


# The template every encoder copies its safe set from. Being an int, it
# can't be mutated through an encoder.
DEFAULT_SAFE_CHARACTERS: int = SafeCharacters.Mask(SAFE_CHARACTERS)


@mypyc_attr(allow_interpreted_subclasses=True)
class Transcoder(ABC):
	"""Converts characters to the bytes that get percent-escaped."""

	@abstractmethod
	def encode(self, text: str, scratch: bytearray) -> None:
		"""Appends the bytes for `text`, a single logical character, to
		`scratch`."""


class CodecTranscoder(Transcoder):
	"""A transcoder backed by Python's codec registry. The codec is looked up
	on first use, and an unknown name raises `EncodingConfigurationError`."""

	__slots__ = ["encoding", "errors", "codec"]

	def __init__(self, encoding: str, errors: str = config.TRANSCODE_ERRORS) -> None:
		self.encoding: str = encoding
		self.errors: str = errors
		self.codec: codecs.CodecInfo | None = None

	def lookup(self) -> codecs.CodecInfo:
		if self.codec is None:
			try:
				self.codec = codecs.lookup(self.encoding)
			except LookupError as e:
				raise EncodingConfigurationError(self.encoding) from e
		return self.codec

	def encode(self, text: str, scratch: bytearray) -> None:
		scratch += self.lookup().encode(text, self.errors)[0]


class PercentEncoder:
	"""Percent-encodes text with a per-instance safe set and target
	encoding. Encoders hold mutable scratch state and are meant for a single
	owner at a time."""

	__slots__ = ["safe", "encoding", "transcoder", "scratch"]

	def __init__(
		self,
		encoding: str = config.ENCODING,
		*,
		transcoder: Transcoder | None = None,
		safe: Iterable[str | int] | None = None,
	) -> None:
		self.safe: SafeCharacters = SafeCharacters()
		for c in safe or ():
			self.safe.add(c)
		self.encoding: str = encoding
		# Created from the encoding on first use when not given
		self.transcoder: Transcoder | None = transcoder
		# Holds the bytes of the character being escaped
		self.scratch: bytearray = bytearray()

	def addSafeCharacter(self, char: str | int) -> "PercentEncoder":
		self.safe.add(char)
		return self

	def setEncoding(self, encoding: str) -> "PercentEncoder":
		"""Sets the target encoding, replacing any transcoder. Unknown
		encodings are reported by the next encode."""
		self.encoding = encoding
		self.transcoder = None
		return self

	def _transcoder(self) -> Transcoder:
		if self.transcoder is None:
			transcoder = CodecTranscoder(self.encoding)
			transcoder.lookup()
			self.transcoder = transcoder
		return self.transcoder

	def encode(
		self, sink: CharSink, text: str, upper: bool = config.HEX_UPPERCASE
	) -> None:
		"""Writes the escaped `text` to the sink. Failures of the transcoder or
		of the sink are propagated."""
		transcoder = self._transcoder()
		safe = self.safe
		scratch = self.scratch
		hexcodes = HEX_UPPER if upper else HEX_LOWER
		tracing: bool = logged(LogLevel.Debug)
		n: int = len(text)
		# Start of the current run of safe characters
		start: int = 0
		i: int = 0
		while i < n:
			char = text[i]
			cp = ord(char)
			if cp in safe:
				i += 1
				continue
			if start < i:
				sink.write(text[start:i])
			i += 1
			if cp in HIGH_SURROGATE and i < n and ord(text[i]) in LOW_SURROGATE:
				char = surrogates(cp, ord(text[i]))
				i += 1
			try:
				transcoder.encode(char, scratch)
				escaped = "".join([hexcodes[_] for _ in scratch])
			finally:
				scratch.clear()
			if tracing:
				debug("Unsafe character", char=char, escaped=escaped)
			sink.write(escaped)
			start = i
		if start < n:
			sink.write(text[start:] if start else text)

	def encodeBytes(
		self, sink: CharSink, data: bytes | bytearray, upper: bool = config.HEX_UPPERCASE
	) -> None:
		"""Writes every byte of `data` as a `%XX` triplet."""
		hexcodes = HEX_UPPER if upper else HEX_LOWER
		sink.write("".join([hexcodes[_] for _ in data]))

	def encodeToString(
		self, text: str, upper: bool = config.HEX_UPPERCASE
	) -> str | None:
		"""Best-effort version of `encode`, returning `None` when the text can't
		be encoded instead of raising. Configuration errors are still raised,
		use `encode` when failures need to be seen."""
		out = StringIO()
		try:
			self.encode(out, text, upper)
		except ConfigurationError:
			raise
		except (UnicodeError, OSError) as e:
			warning(
				"Could not percent-encode text",
				encoding=self.encoding,
				error=f"{e.__class__.__name__}: {e}",
			)
			return None
		return out.getvalue()


def quote(
	text: str,
	safe: Iterable[str | int] = "",
	*,
	upper: bool = config.HEX_UPPERCASE,
	encoding: str = config.ENCODING,
) -> str:
	"""Percent-encodes `text` with a fresh encoder, raising on failure."""
	out = StringIO()
	PercentEncoder(encoding, safe=safe).encode(out, text, upper)
	return out.getvalue()


# EOF
