"""Tool Gateway - authenticated, rate-limited tool execution."""
