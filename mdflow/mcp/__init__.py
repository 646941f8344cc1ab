"""MCP adapter for the workflow store."""
