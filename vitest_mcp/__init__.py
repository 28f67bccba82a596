"""vitest-mcp: run vitest from an MCP client and get results shaped for LLM agents."""

__version__ = "0.1.0"
