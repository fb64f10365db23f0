"""
Widget Proxy for the storefront product-configurator widget.

Forwards widget requests to the upstream LLM "responses" API while keeping
the API keys on the server:
- Multiple upstream API keys with round-robin rotation
- Automatic failover to the next key on transient failures
- Per-key health tracking exposed through diagnostic endpoints

Architecture: FastAPI proxy + key pool + retry orchestrator + httpx upstream client
"""

__version__ = "2.0.0"
