"""Provider implementations."""

from schoolgen.ai.providers.base import ImageModel, ImageResult, ModelResponse, TextModel
from schoolgen.ai.providers.claude import ClaudeModel
from schoolgen.ai.providers.gemini import GeminiImageModel, GeminiModel
from schoolgen.ai.providers.openai_compat import OpenAICompatModel, OpenAIImageModel

__all__ = ["ImageModel", "ImageResult", "ModelResponse", "TextModel", "ClaudeModel", "GeminiImageModel", "GeminiModel", "OpenAICompatModel", "OpenAIImageModel"]
