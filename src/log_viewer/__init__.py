"""Claude Code log viewer - live tailing of JSONL conversation logs."""

__version__ = "0.3.0"
