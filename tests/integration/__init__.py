"""
Integration tests for the Widget Proxy.

Test components together against a scripted upstream (httpx.MockTransport):
- Orchestrator + key pool + upstream client
- API endpoints (FastAPI TestClient)
"""
