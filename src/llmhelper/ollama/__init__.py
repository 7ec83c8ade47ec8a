"""llmhelper.ollama

Model management for a local Ollama server: list, pull and delete models.

    from llmhelper.ollama import OllamaModelManager

    ollama = OllamaModelManager()
    ollama.download_model("qwen2.5:1.5b-instruct")
"""

from .models import (
    OllamaModel,
    OllamaModelManager,
    ollama_delete_model,
    ollama_download_model,
    ollama_list_models,
)

__all__ = [
    "OllamaModel",
    "OllamaModelManager",
    "ollama_delete_model",
    "ollama_download_model",
    "ollama_list_models",
]
