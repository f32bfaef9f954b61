from mermaid_canvas.client.ai_service import (
    AIServiceClient,
    GenerationResult,
    OptimizationResult,
    SuggestionsResult,
)

__all__ = [
    "AIServiceClient",
    "GenerationResult",
    "OptimizationResult",
    "SuggestionsResult",
]
