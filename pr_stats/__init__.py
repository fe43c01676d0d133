"""PR Stats - leaderboards from merged pull request data."""

from .models import PullRequest, EffectiveMetrics, Leaderboards, RepoBucket, AnalysisResult
from .file_filters import FileFilter, IgnoreRule, should_ignore_file, load_ignore_rules
from .analyzer import PRStatsAnalyzer, build_leaderboards
from .storage import PRDataStore, MissingDataError
from .output import OutputFormatter

__all__ = [
    'PullRequest',
    'EffectiveMetrics',
    'Leaderboards',
    'RepoBucket',
    'AnalysisResult',
    'FileFilter',
    'IgnoreRule',
    'should_ignore_file',
    'load_ignore_rules',
    'PRStatsAnalyzer',
    'build_leaderboards',
    'PRDataStore',
    'MissingDataError',
    'OutputFormatter',
]
