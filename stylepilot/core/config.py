"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GEMINI_API_KEY               — Primary LLM provider API key (Google Gemini)
    GROQ_API_KEY                 — Fallback LLM provider API key (Groq)
    OPENROUTER_API_KEY           — Second fallback LLM provider (OpenRouter)
    PILOT_MAX_ITERATIONS         — Default refinement iterations per run (default: 3)
    PILOT_MAX_ITERATIONS_CEILING — Highest max_iterations a RunConfig accepts (default: 10)
    PILOT_QUALITY_THRESHOLD      — Default acceptance score (default: 0.8)
    PILOT_MAX_REFERENCE_BYTES    — Reference image size ceiling (default: 10MB)
    PILOT_MAX_REFERENCE_ARTIFACTS — Reference images allowed per session (default: 5)
    PILOT_TARGET_STYLESHEET      — Stylesheet file driven by the built-in target
    PILOT_TARGET_MARKUP          — Optional HTML file describing the styled page structure
    PILOT_SCREENSHOT_PATH        — Optional image file used as the visual capture
    PILOT_RESULTS_PATH           — Where the API writes the session summary (unset = off)
    LOG_DIR                      — Directory for the daily log file (default: logs)

Iteration Bound:
    max_iterations is the only bound on total run duration. The core enforces
    no per-call timeouts; the LLM transport carries its own.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")

# Run defaults
DEFAULT_MAX_ITERATIONS = int(os.getenv("PILOT_MAX_ITERATIONS", 3))
MAX_ITERATIONS_CEILING = int(os.getenv("PILOT_MAX_ITERATIONS_CEILING", 10))
DEFAULT_QUALITY_THRESHOLD = float(os.getenv("PILOT_QUALITY_THRESHOLD", 0.8))

# Reference artifact limits
MAX_REFERENCE_BYTES = int(os.getenv("PILOT_MAX_REFERENCE_BYTES", 10 * 1024 * 1024))
MAX_REFERENCE_ARTIFACTS = int(os.getenv("PILOT_MAX_REFERENCE_ARTIFACTS", 5))
ALLOWED_REFERENCE_TYPES: frozenset[str] = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
})

# Built-in file target
TARGET_STYLESHEET_PATH = os.getenv("PILOT_TARGET_STYLESHEET", "generated.css")
TARGET_MARKUP_PATH = os.getenv("PILOT_TARGET_MARKUP", "")
SCREENSHOT_PATH = os.getenv("PILOT_SCREENSHOT_PATH", "")
RESULTS_PATH = os.getenv("PILOT_RESULTS_PATH", "")

# Provider health cooldown
PROVIDER_COOLDOWN_THRESHOLD = int(os.getenv("PROVIDER_COOLDOWN_THRESHOLD", 4))
PROVIDER_COOLDOWN_SKIP_COUNT = int(os.getenv("PROVIDER_COOLDOWN_SKIP_COUNT", 5))

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")
