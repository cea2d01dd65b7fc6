"""TRVL web API (FastAPI)."""
