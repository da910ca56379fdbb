"""Configuration management for the DocQA RAG backend."""
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
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Upload limits
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

# Model Configuration
EMBEDDING_MODEL = "sentence-transformers/all-mpnet-base-v2"  # 768 dimensions
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.3-70b-versatile")
SYSTEM_INSTRUCTION = "You are a helpful AI assistant capable of analyzing PDF documents."
FALLBACK_RESPONSE = "I couldn't generate a response."

# Chunking Configuration
CHUNK_SIZE = 800  # characters
CHUNK_OVERLAP = 100  # characters

# Indexing Configuration
EMBEDDING_BATCH_SIZE = 5  # concurrent embedding calls per batch

# Retrieval Configuration
TOP_K = 4

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
