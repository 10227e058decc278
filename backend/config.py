"""Configuration management for Legal Eagle."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# LLM providers
AI_PROVIDER = os.getenv("AI_PROVIDER", "gemini")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")

# Document library storage
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
DOCUMENTS_TABLE = os.getenv("DOCUMENTS_TABLE", "documents")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Model Configuration
GEMINI_MODEL = "gemini-2.5-flash"
GROQ_MODEL = "llama3-70b-8192"
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3")
OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", "120"))
LLM_TEMPERATURE = 0.7
ANSWER_LANGUAGE = os.getenv("ANSWER_LANGUAGE", "European Portuguese")

# Segmentation Configuration
CHUNK_SIZE = 1500  # characters
CHUNK_OVERLAP = 200  # characters
PREAMBLE_MIN_LENGTH = 100

# Retrieval Configuration
TOP_K = 3
MIN_TOKEN_LENGTH = 3
TITLE_MATCH_WEIGHT = 5
CONTENT_MATCH_WEIGHT = 1

# Conversation Configuration
MAX_HISTORY_TURNS = 6
