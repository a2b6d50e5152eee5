from .deepseek import DeepSeekAdapter
from .gemini import GeminiAdapter
from .openai import OpenAIAdapter
from .xai import XAIAdapter

__all__ = ["DeepSeekAdapter", "GeminiAdapter", "OpenAIAdapter", "XAIAdapter"]
