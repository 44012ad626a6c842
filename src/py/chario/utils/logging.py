import os
import sys
import time
from enum import Enum
from typing import NamedTuple, Any, ClassVar, TextIO
from contextvars import ContextVar
from .. import config

ERR: TextIO = sys.stderr

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
COLOR: bool = "FORCE_COLOR" in os.environ or (not NO_COLOR and ERR.isatty())

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="chario")

TContext = str | int | float | bool | None


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30  # A Warning
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


class Term:
	BOLD: ClassVar[str] = "\033[1m" if COLOR else ""
	RESET: ClassVar[str] = "\033[0m" if COLOR else ""

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogEntry(NamedTuple):
	origin: str
	time: float
	level: LogLevel = LogLevel.Info
	message: str | None = None
	context: dict[str, TContext] | None = None


def asLevel(name: str) -> LogLevel:
	try:
		return LogLevel[name.capitalize()]
	except KeyError:
		return LogLevel.Warning


THRESHOLD: LogLevel = asLevel(config.LOG_LEVEL)


def formatData(value: Any) -> str:
	if value is None or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, str):
		return repr(value) if " " in value or not value.isprintable() else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	ERR.write(
		f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
	)
	ERR.flush()
	return entry


def logged(level: LogLevel) -> bool:
	"""Tells if entries at the given level are currently output. This is used
	to guard against building entries in hot loops when not necessary."""
	return level.value >= THRESHOLD.value


def entry(
	message: str,
	level: LogLevel,
	origin: str | None,
	context: dict[str, TContext],
) -> LogEntry | None:
	if not logged(level):
		return None
	return send(
		LogEntry(
			origin=origin or LogOrigin.get(),
			time=time.time(),
			level=level,
			message=message,
			context=context,
		)
	)


def debug(
	message: str, *, origin: str | None = None, **context: TContext
) -> LogEntry | None:
	return entry(message, LogLevel.Debug, origin, context)


def warning(
	message: str, *, origin: str | None = None, **context: TContext
) -> LogEntry | None:
	return entry(message, LogLevel.Warning, origin, context)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		if logged(LogLevel.Exception):
			ERR.write(
				f"!!! EXCP {f'{message}: ' if message else ''}[{exception.__class__.__name__}] {exception}\n"
			)
			tb = exception.__traceback__
			while tb:
				code = tb.tb_frame.f_code
				ERR.write(
					f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
				)
				tb = tb.tb_next
			ERR.flush()
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an
		# exception handler safely.
		pass
	# Return the exception so that this function can be called like:
	#   raise exception(error)
	return exception


# EOF
