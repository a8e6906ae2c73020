import logging


def setup_logging() -> None:
    logging.basicConfig(level=logging.INFO)
    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("groq").setLevel(logging.WARNING)
