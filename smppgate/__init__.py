"""
smppgate - SMPP gateway with a resilient ESME session.

Packages:
- smppgate.esme: session state machine and its components
- smppgate.config: configuration models and environment loading
- smppgate.app: FastAPI HTTP gateway
"""

__version__ = "0.1.0"
