"""
Unit tests for the Widget Proxy.

Test individual components in isolation:
- Settings and key config validation
- Key pool (rotation, health tracking, thread safety)
- Failure classification and retry policy
- Retry orchestrator (failover, timeouts, exhaustion)
- Upstream client (MockTransport)
- API models and dependencies
"""
