"""FastAPI HTTP gateway in front of the ESME session."""
