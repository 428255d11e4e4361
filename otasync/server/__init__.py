"""
OTA Sync Server Package

FastAPI application serving archive indexes and diffs.
"""
