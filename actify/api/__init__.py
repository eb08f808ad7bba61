"""
FastAPI surface for the retrieval core.
"""
