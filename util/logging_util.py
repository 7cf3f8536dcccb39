import logging
import sys
from typing import Optional

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.
    
    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)
    
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)
    
    return logger

def log_llm_interaction(logger: logging.Logger, provider: str, prompt: str,
                        response: str, model_name: str, duration_ms: Optional[float] = None):
    """
    Logs a text-completion call with all relevant details.
    
    Args:
        logger: Logger instance to use
        provider: Name of the completion provider (ollama, gemini, ...)
        prompt: The rendered prompt sent to the model
        response: Response from the LLM
        model_name: Name of the model used
        duration_ms: Optional duration of the call in milliseconds
    """
    duration_str = f" ({duration_ms:.2f}ms)" if duration_ms else ""
    logger.info(f"LLM Request{duration_str} - Provider: {provider}, Model: {model_name}")
    logger.debug(f"  Prompt: {prompt[:500]}")
    logger.info(f"  Response: {response[:200]}{'...' if len(response) > 200 else ''}")

def log_fetch_result(logger: logging.Logger, source_name: str, n_items: int,
                     duration_ms: Optional[float] = None):
    """
    Logs the outcome of a single source fetch.

    Args:
        logger: Logger instance to use
        source_name: Display name of the source
        n_items: Number of normalized items produced
        duration_ms: Optional duration of the fetch in milliseconds
    """
    duration_str = f" ({duration_ms:.2f}ms)" if duration_ms else ""
    logger.info(f"📥 Fetched {n_items} item(s) from {source_name}{duration_str}")
