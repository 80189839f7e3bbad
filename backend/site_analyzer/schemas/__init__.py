from site_analyzer.schemas.analysis import (
    AnalysisPatch,
    AnalysisResult,
    BrokenLink,
)
