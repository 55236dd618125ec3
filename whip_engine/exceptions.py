"""
exceptions.py — Error types raised by the whip engine.

Per-cell and per-row problems are logged and skipped inside the pipeline;
only the structural failures below ever reach the caller.
"""


class WhipEngineError(Exception):
    """Base exception for engine errors"""
    pass


class WorkbookReadError(WhipEngineError):
    """Raised when workbook bytes cannot be decoded"""
    pass


class InvalidWorkbookError(WhipEngineError):
    """Raised when the pipeline is handed something that is not a Workbook"""
    pass


class ConfigError(WhipEngineError):
    """Raised when a config override file has the wrong shape"""
    pass
