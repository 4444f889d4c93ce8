"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants, field names, response headers
- exceptions: Custom exception hierarchy
- ratelimit: Per-client fixed-window rate limiting
- ingress: HTTP boundary (method dispatch, parsing, response shaping)
"""
