"""
AdComposer API - FastAPI application around the creative agent and the
version streams.
"""
