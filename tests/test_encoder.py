import io
import re
from urllib.parse import unquote, unquote_to_bytes
import pytest
from chario import (
	CodecTranscoder,
	ConfigurationError,
	EncodingConfigurationError,
	PercentEncoder,
	SafeCharacters,
	Transcoder,
	quote,
)
from chario.encoder import DEFAULT_SAFE_CHARACTERS, SAFE_CHARACTERS

TRIPLET_LOWER = re.compile(r"%[0-9a-f]{2}")
TRIPLET_UPPER = re.compile(r"%[0-9A-F]{2}")


def encoded(text: str, encoder: PercentEncoder | None = None, upper: bool = False) -> str:
	out = io.StringIO()
	(encoder or PercentEncoder()).encode(out, text, upper)
	return out.getvalue()


class FailingSink:
	def write(self, text: str) -> int:
		raise OSError("sink is gone")


class RecordingTranscoder(Transcoder):
	def __init__(self) -> None:
		self.calls: list[str] = []

	def encode(self, text: str, scratch: bytearray) -> None:
		self.calls.append(text)
		scratch += text.encode("utf8")


# --
# Spaces are escaped, never turned into `+`.
def test_space() -> None:
	assert encoded("a b") == "a%20b"
	assert PercentEncoder().encodeToString("a b") == "a%20b"
	assert encoded("a+b") == "a%2bb"


def test_add_safe_character() -> None:
	encoder = PercentEncoder()
	assert encoder.encodeToString("a/b") == "a%2fb"
	encoder.addSafeCharacter("/")
	assert encoder.encodeToString("a/b") == "a/b"
	assert encoded("a/b?", PercentEncoder().addSafeCharacter(ord("?"))) == "a%2fb?"


def test_safe_identity() -> None:
	assert encoded(SAFE_CHARACTERS) == SAFE_CHARACTERS
	assert encoded("") == ""
	assert encoded("$-_.!*'(),") == "$-_.!*'(),"


def test_hex_case() -> None:
	assert encoded("é") == "%c3%a9"
	assert encoded("é", upper=True) == "%C3%A9"
	assert encoded("a€b", upper=True) == "a%E2%82%ACb"
	assert PercentEncoder().encodeToString("ü", True) == "%C3%BC"


def test_triplets() -> None:
	for text in ("héllo wörld", "/?#[]@&=+;", "日本語 テキスト", "😀 and 🎉", "\x00\x7f"):
		for upper, triplet in ((False, TRIPLET_LOWER), (True, TRIPLET_UPPER)):
			value = encoded(text, upper=upper)
			# Only triplets and safe characters remain
			assert all(_ in SAFE_CHARACTERS for _ in triplet.sub("", value)), value
			assert unquote(value) == text
			assert unquote_to_bytes(value) == text.encode("utf8")


# --
# A surrogate pair is escaped as the character it stands for.
def test_surrogate_pair() -> None:
	assert encoded("😀") == "%f0%9f%98%80"
	assert encoded("😀") == encoded("😀")
	assert encoded("a😀b", upper=True) == "a%F0%9F%98%80b"
	transcoder = RecordingTranscoder()
	assert encoded("😀 ", PercentEncoder(transcoder=transcoder)) == (
		"%f0%9f%98%80%20"
	)
	assert transcoder.calls == ["😀", " "]


# --
# The same character given as two UTF-16 code units is combined before being
# transcoded, and both units are consumed at once.
def test_surrogate_code_units() -> None:
	text = "a\ud83d\ude00b"
	assert len(text) == 4
	assert encoded(text, upper=True) == "a%F0%9F%98%80b"
	assert encoded("\ud83d\ude00") == encoded("\U0001F600")
	transcoder = RecordingTranscoder()
	encoder = PercentEncoder(transcoder=transcoder)
	assert encoded("\ud83d\ude00", encoder) == "%f0%9f%98%80"
	assert transcoder.calls == ["\U0001F600"]
	# Two pairs in a row, then a pair preceded by a lone low surrogate
	transcoder.calls.clear()
	assert encoded("\ud83d\ude00\ud83c\udf89", encoder) == "%f0%9f%98%80%f0%9f%8e%89"
	assert transcoder.calls == ["\U0001F600", "\U0001F389"]
	assert encoded("\ude00\ud83d\ude00") == "%3f%f0%9f%98%80"


def test_lone_surrogates() -> None:
	# The default transcoder replaces what can't be encoded
	assert encoded("x\ud83dy") == "x%3fy"
	assert encoded("\ud83dA") == "%3fA"
	assert encoded("\ude00\ud83d") == "%3f%3f"


def test_independent_safe_sets() -> None:
	a = PercentEncoder()
	b = PercentEncoder()
	a.addSafeCharacter("/")
	assert a.encodeToString("a/b") == "a/b"
	assert b.encodeToString("a/b") == "a%2fb"
	assert PercentEncoder().encodeToString("a/b") == "a%2fb"
	assert "/" not in SafeCharacters()
	assert DEFAULT_SAFE_CHARACTERS == SafeCharacters.Mask(SAFE_CHARACTERS)


def test_safe_characters() -> None:
	safe = SafeCharacters()
	assert len(safe) == 62 + 10
	assert "".join(safe) == "".join(sorted(SAFE_CHARACTERS))
	assert "é" not in safe
	assert 0x1F600 not in safe
	copied = safe.copy().add("+")
	assert "+" in copied
	assert "+" not in safe
	with pytest.raises(ConfigurationError):
		safe.add("é")
	with pytest.raises(ConfigurationError):
		safe.add("ab")
	with pytest.raises(ConfigurationError):
		PercentEncoder(safe=[128])


def test_encoding() -> None:
	encoder = PercentEncoder()
	assert encoder.encoding == "UTF8"
	assert encoder.setEncoding("latin-1").encodeToString("é") == "%e9"
	assert encoder.setEncoding("utf-16-be").encodeToString("é") == "%00%e9"
	assert PercentEncoder("latin-1").encodeToString("a é") == "a%20%e9"


def test_unknown_encoding() -> None:
	encoder = PercentEncoder()
	# Nothing happens until the encoder is used
	encoder.setEncoding("no-such-encoding")
	with pytest.raises(EncodingConfigurationError) as error:
		encoder.encode(io.StringIO(), "abc")
	assert isinstance(error.value, LookupError)
	assert error.value.encoding == "no-such-encoding"
	# Configuration errors are not swallowed by the string form either
	with pytest.raises(EncodingConfigurationError):
		encoder.encodeToString("abc")


# --
# The sink form raises, the string form gives `None` back.
def test_strict_failures() -> None:
	encoder = PercentEncoder(transcoder=CodecTranscoder("utf8", "strict"))
	assert encoder.encodeToString("ok é") == "ok%20%c3%a9"
	with pytest.raises(UnicodeEncodeError):
		encoder.encode(io.StringIO(), "x\ud83dy")
	assert encoder.encodeToString("x\ud83dy") is None
	# The scratch buffer is not polluted by the failure
	assert encoder.scratch == bytearray()
	assert encoder.encodeToString("é") == "%c3%a9"
	encoder = PercentEncoder("ascii", transcoder=CodecTranscoder("ascii", "strict"))
	with pytest.raises(UnicodeEncodeError):
		encoder.encode(io.StringIO(), "é")
	assert encoder.encodeToString("é") is None


def test_sink_failure() -> None:
	with pytest.raises(OSError, match="sink is gone"):
		PercentEncoder().encode(FailingSink(), "a b")


def test_encode_bytes() -> None:
	out = io.StringIO()
	encoder = PercentEncoder()
	encoder.encodeBytes(out, b"\x00\xffA")
	encoder.encodeBytes(out, bytearray(b"\xab"), upper=True)
	assert out.getvalue() == "%00%ff%41%AB"


def test_deterministic() -> None:
	text = "Grüße, 世界! 😀 100%"
	assert encoded(text) == encoded(text)
	assert quote(text) == encoded(text)


def test_quote() -> None:
	assert quote("a/b c", "/") == "a/b%20c"
	assert quote("a/b c", upper=True) == "a%2Fb%20c"
	assert quote("é", encoding="latin-1") == "%e9"


# EOF
