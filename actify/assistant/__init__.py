"""
Assistant orchestration: tool router, tool-calling loop and prompt formatting.
"""
