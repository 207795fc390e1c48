"""Version information for xcanalyzer."""

__version__ = "0.3.0"
__title__ = "xcanalyzer"
__description__ = "Clang static analyzer orchestration, quality gates and reports for Xcode projects"
