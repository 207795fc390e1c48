"""
Exception hierarchy for xcanalyzer.
"""


class XcanalyzerError(Exception):
    """Base class for all xcanalyzer errors"""


class ConfigError(XcanalyzerError):
    """Invalid or unreadable configuration"""


class XcodebuildError(XcanalyzerError):
    """xcodebuild could not be run or did not finish"""


class ParseError(XcanalyzerError):
    """Analyzer output could not be parsed"""

    def __init__(self, message: str, path: str = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class HookError(XcanalyzerError):
    """Git hook installation failed"""
