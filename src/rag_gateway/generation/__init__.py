"""
Generation module - text generation and relevance scoring.

Same shape as the embeddings module: OpenAIGenerationModel for
production, MockGenerationModel for tests, get_generation_model()
factory.
"""

from rag_gateway.generation.openai_generation import (
    DEFAULT_GENERATION_MODEL,
    OpenAIGenerationModel,
    MockGenerationModel,
    RelevanceScores,
    build_rerank_prompt,
    get_generation_model,
)

__all__ = [
    "DEFAULT_GENERATION_MODEL",
    "OpenAIGenerationModel",
    "MockGenerationModel",
    "RelevanceScores",
    "build_rerank_prompt",
    "get_generation_model",
]
