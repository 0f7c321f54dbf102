"""Vision model identification of antique and vintage items."""

from vintagevision.analysis.llm_client import (
    LLMClient,
    LLMError,
    LLMProviderError,
    LLMRateLimitError,
    LLMResponse,
    LLMTimeoutError,
)
from vintagevision.analysis.models import (
    HIGH_AUTHENTICITY_RISKS,
    AnalysisResult,
    AuthenticityRisk,
    DomainExpert,
    ProductCategory,
)
from vintagevision.analysis.response_parser import (
    ResponseParseError,
    extract_json_from_response,
    parse_analysis_response,
    safe_parse_analysis,
)

__all__ = [
    "HIGH_AUTHENTICITY_RISKS",
    "AnalysisResult",
    "AuthenticityRisk",
    "DomainExpert",
    "LLMClient",
    "LLMError",
    "LLMProviderError",
    "LLMRateLimitError",
    "LLMResponse",
    "LLMTimeoutError",
    "ProductCategory",
    "ResponseParseError",
    "extract_json_from_response",
    "parse_analysis_response",
    "safe_parse_analysis",
]
