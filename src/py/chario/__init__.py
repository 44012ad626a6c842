from .model import (
	CharIOError,
	ConfigurationError,
	MarkLimitError,
	InvalidMarkError,
	SkipMismatchError,
	EncodingConfigurationError,
	CharSink,
)  # NOQA: F401
from .source import CharSource, StringSource, StreamSource, source  # NOQA: F401
from .lines import LineReader, LineParser  # NOQA: F401
from .encoder import (
	PercentEncoder,
	SafeCharacters,
	Transcoder,
	CodecTranscoder,
	quote,
)  # NOQA: F401

__version__ = "1.0.0"

# EOF
