from site_analyzer.core.exceptions import (
    AnalyzerError,
    HTTPStatusError,
    InvalidURLError,
    NetworkError,
    ParseError,
    ProbeError,
)
from site_analyzer.schemas.analysis import AnalysisPatch, AnalysisResult, BrokenLink
from site_analyzer.services.analyzer.seo_analyzer import (
    PageAnalyzer,
    analyze_url,
    analyze_url_sync,
)
from site_analyzer.tasks.analysis_tasks import AnalysisScheduler

__version__ = "0.1.0"
