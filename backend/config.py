"""Configuration management for ArcRider Reading Assistant."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
SCORING_BACKEND = os.getenv("SCORING_BACKEND", "rubric")  # "rubric" or "embedding"
PRIMARY_SCORING_MODEL = os.getenv("PRIMARY_SCORING_MODEL", "openai/gpt-oss-20b")
PRIMARY_REASONING_EFFORT = os.getenv("PRIMARY_REASONING_EFFORT", "low")
FALLBACK_SCORING_MODEL = os.getenv("FALLBACK_SCORING_MODEL", "llama-3.3-70b-versatile")
SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", "llama-3.3-70b-versatile")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Relevance Pipeline Configuration
BATCH_SIZE = 40  # pages per scoring call
RUBRIC_MAX_CHARS = 600  # many pages share one prompt
EMBEDDING_MAX_CHARS = 4000
RELEVANCE_THRESHOLD = 25.0
MAX_REASONED_PAGES = 24

# Extraction Configuration
DOCX_PAGE_CHARS = 2000  # DOCX has no pages, chunk by characters

# Summary Configuration
SUMMARY_MAX_INPUT_TOKENS = 100000
SUMMARY_MAX_OUTPUT_TOKENS = 8000
RELEVANT_SUMMARY_MIN_SCORE = 50.0
RELEVANT_SUMMARY_MAX_PAGES = 8

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
