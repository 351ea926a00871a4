"""
Pattern store services: relevance, reinforcement, extraction and tools.
"""
