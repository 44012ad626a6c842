from os import getenv

# Lines longer than this still work, but go through the overflow accumulator
MAX_LINE_LENGTH: int = int(getenv("CHARIO_MAX_LINE_LENGTH", 4096))

# Look-ahead a stream source accepts for `mark()`
MARK_LIMIT: int = int(getenv("CHARIO_MARK_LIMIT", 65536))

CHUNK_SIZE: int = int(getenv("CHARIO_CHUNK_SIZE", 8192))

# "UTF8" is the historical label, Python resolves it to UTF-8
ENCODING: str = getenv("CHARIO_ENCODING", "UTF8")

# NOTE: "replace" turns a lone surrogate into "?", use "strict" to get errors
TRANSCODE_ERRORS: str = getenv("CHARIO_TRANSCODE_ERRORS", "replace")

HEX_UPPERCASE: bool = getenv("CHARIO_HEX_UPPERCASE", "0") == "1"

LOG_LEVEL: str = getenv("CHARIO_LOG_LEVEL", "Warning")

# EOF
