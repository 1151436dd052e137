"""
API Layer

HTTP polling gateway (FastAPI). Translates requests into store
operations and domain errors into status codes.
"""
