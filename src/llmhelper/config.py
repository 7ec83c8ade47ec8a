import os

from dotenv import load_dotenv

# Load from .env if it exists (useful for local development)
load_dotenv()

LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper() or "INFO"

# OpenAI-compatible chat endpoints
DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"

# Ollama
OLLAMA_SERVER = os.getenv("OLLAMA_HOST", "http://localhost:11434").rstrip("/")
DEFAULT_OLLAMA_URL = f"{OLLAMA_SERVER}/api/chat"
DEFAULT_OLLAMA_MODEL = "qwen2.5:1.5b-instruct"

# Probing uses its own short timeout so a dead endpoint never blocks as long
# as a real request would.
PROBE_TIMEOUT_S = 30
DIAGNOSE_TIMEOUT_S = 10

# --- Credentials ---
DEFAULT_API_KEY_ENV = "LLM_API_KEY"
PROVIDER_API_KEY_ENVS = {
    "api.openai.com": "OPENAI_API_KEY",
    "api.deepseek.com": "DEEPSEEK_API_KEY",
}

DEFAULT_SYSTEM_PROMPT = "You are an AI assistant specialized in bioinformatics."
