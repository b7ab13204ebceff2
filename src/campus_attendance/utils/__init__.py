from .time import format_countdown, format_relative_time, parse_timestamp, utcnow

__all__ = ["format_countdown", "format_relative_time", "parse_timestamp", "utcnow"]
