"""Screenshot analysis: data model, prompt building, providers and client.

Use explicit imports:
    from content_mapper.analysis.models import AnalysisRequest, AnalysisResult, ImageInput
    from content_mapper.analysis.prompts import build_analysis_prompt
    from content_mapper.analysis.providers import GeminiProvider, MockProvider, get_provider
    from content_mapper.analysis.client import AnalysisClient, create_client
"""

__all__ = [
    # Models
    "AnalysisRequest",
    "AnalysisResult",
    "BrandVoiceProfile",
    "DetectedSection",
    "ContentVariant",
    "ImageInput",
    # Prompts
    "AnalysisPrompt",
    "build_analysis_prompt",
    # Providers
    "ModelProvider",
    "GeminiProvider",
    "OpenRouterProvider",
    "MockProvider",
    "get_provider",
    # Client
    "AnalysisClient",
    "create_client",
]
